"""
Claim Viability

Limitation and track checks plus the issue fee. Advisory: the result tells the
user what the rules say about the claim, not whether it will succeed.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from dateutil.relativedelta import relativedelta

from app.models.claim import ClaimState, InterestResult
from .interest import resolve_effective_due_date, to_pence
from .statutes import LIMITATION_PERIOD_YEARS, SMALL_CLAIMS_LIMIT

logger = logging.getLogger(__name__)


# Civil Proceedings Fees Order: (inclusive upper bound, fee)
COURT_FEE_BANDS: List[Tuple[Decimal, Decimal]] = [
    (Decimal("300"), Decimal("35")),
    (Decimal("500"), Decimal("50")),
    (Decimal("1000"), Decimal("70")),
    (Decimal("1500"), Decimal("80")),
    (Decimal("3000"), Decimal("115")),
    (Decimal("5000"), Decimal("205")),
    (Decimal("10000"), Decimal("455")),
]
PERCENTAGE_FEE_CEILING = Decimal("200000")
PERCENTAGE_FEE_RATE = Decimal("0.05")
MAXIMUM_COURT_FEE = Decimal("10000")


def calculate_court_fee(amount: Decimal) -> Decimal:
    """Issue fee for a money claim of `amount` (principal + interest + compensation)."""
    amount = Decimal(str(amount))
    for upper, fee in COURT_FEE_BANDS:
        if amount <= upper:
            return to_pence(fee)
    if amount <= PERCENTAGE_FEE_CEILING:
        return to_pence(min(amount * PERCENTAGE_FEE_RATE, MAXIMUM_COURT_FEE))
    return to_pence(MAXIMUM_COURT_FEE)


@dataclass
class ViabilityCheck:
    passed: bool
    message: str


@dataclass
class ViabilityAssessment:
    is_viable: bool
    limitation_check: ViabilityCheck
    value_check: ViabilityCheck
    limitation_expires: date
    claim_value: Decimal
    court_fee: Decimal
    recommendation: str
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_viable": self.is_viable,
            "limitation_check": {"passed": self.limitation_check.passed, "message": self.limitation_check.message},
            "value_check": {"passed": self.value_check.passed, "message": self.value_check.message},
            "limitation_expires": self.limitation_expires.isoformat(),
            "claim_value": str(self.claim_value),
            "court_fee": str(self.court_fee),
            "recommendation": self.recommendation,
            "notes": list(self.notes),
        }


def assess_viability(claim: ClaimState, interest: InterestResult, as_of: date) -> ViabilityAssessment:
    """Limitation Act 1980 s.5 and CPR Part 27 checks for a claim."""
    invoice = claim.invoice
    due = interest.effective_due_date or resolve_effective_due_date(
        invoice.date_issued, invoice.due_date, invoice.payment_terms
    )
    expires = due + relativedelta(years=LIMITATION_PERIOD_YEARS)

    in_time = as_of < expires
    limitation = ViabilityCheck(
        passed=in_time,
        message=(
            "Within the 6-year statutory limitation period (Limitation Act 1980)."
            if in_time else
            "Claim is statute-barred (older than 6 years from due date). The debt is unlikely to be recoverable through the courts."
        ),
    )

    value = interest.total_claim
    small = value <= SMALL_CLAIMS_LIMIT
    value_check = ViabilityCheck(
        passed=small,
        message=(
            f"Claim value (£{value:,.2f}) is within the Small Claims Track limit (£10,000)."
            if small else
            f"Claim value (£{value:,.2f}) exceeds £10,000. This requires the Fast Track or Multi-Track (higher legal risk and costs)."
        ),
    )

    notes: List[str] = []
    if in_time and (expires - as_of).days <= 180:
        notes.append(f"Limitation period expires on {expires.isoformat()}. Issue the claim well before then.")

    is_viable = limitation.passed and value_check.passed
    if is_viable:
        recommendation = "Claim appears legally viable for the Small Claims Track."
    elif not limitation.passed:
        recommendation = "Do not proceed. The claim is too old."
    else:
        recommendation = "Proceed with caution. Seek legal advice as this exceeds small claims limits."

    assessment = ViabilityAssessment(
        is_viable=is_viable,
        limitation_check=limitation,
        value_check=value_check,
        limitation_expires=expires,
        claim_value=value,
        court_fee=calculate_court_fee(value),
        recommendation=recommendation,
        notes=notes,
    )
    logger.info(f"Viability assessed for {claim.claim_id}: viable={is_viable} value={value}")
    return assessment
