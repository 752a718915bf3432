"""
Claim Engine Errors

Every error carries the offending field paths so the caller can map it to an
actionable prompt ("select party type", "enter invoice amount").
Nothing in the engine swallows these or substitutes a default.
"""
from typing import Any, Dict, Iterable, List, Optional


class ClaimEngineError(Exception):
    """Base class for all rules-engine errors."""

    kind = "claim_engine_error"

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields: List[str] = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "fields": self.fields,
        }


class ValidationError(ClaimEngineError):
    """A required field is missing or invalid. Recoverable: user must supply data."""

    kind = "validation_error"


class IndeterminateBasisError(ClaimEngineError):
    """Party types do not determine a statutory interest regime. User must resolve them."""

    kind = "indeterminate_basis"


class IncompleteDataError(ClaimEngineError):
    """Document generation aborted for missing prerequisites. Retryable once populated."""

    kind = "incomplete_data"


class TemplateMismatchError(ClaimEngineError):
    """Official form asset is missing or not the pinned shape. Not retryable without fixing the asset."""

    kind = "template_mismatch"


class GenerationInProgressError(ClaimEngineError):
    """A generation for the same claim and document type is already running."""

    kind = "generation_in_progress"
