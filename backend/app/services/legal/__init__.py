"""
Legal rules: statutory figures, interest, timeline checks and viability.
"""
from .errors import (
    ClaimEngineError,
    ValidationError,
    IndeterminateBasisError,
    IncompleteDataError,
    TemplateMismatchError,
    GenerationInProgressError,
)
from .statutes import InterestRates
from .interest import (
    select_rate_basis,
    resolve_effective_due_date,
    calculate_compensation,
    calculate_interest,
    interest_for_claim,
)
from .timeline import check_timeline_order, normalize_event_type, timeline_completeness
from .viability import calculate_court_fee, assess_viability

__all__ = [
    "ClaimEngineError",
    "ValidationError",
    "IndeterminateBasisError",
    "IncompleteDataError",
    "TemplateMismatchError",
    "GenerationInProgressError",
    "InterestRates",
    "select_rate_basis",
    "resolve_effective_due_date",
    "calculate_compensation",
    "calculate_interest",
    "interest_for_claim",
    "check_timeline_order",
    "normalize_event_type",
    "timeline_completeness",
    "calculate_court_fee",
    "assess_viability",
]
