"""
Statutory Interest & Compensation Calculator

Pure functions over invoice facts. Never persists, never defaults the rate
basis: an unset party type is an error the caller has to resolve.

B2B (both parties companies):
    Late Payment of Commercial Debts (Interest) Act 1998
    rate = statutory addition + reference base rate, plus fixed compensation
B2C (any individual):
    County Courts Act 1984 s.69, fixed rate, no compensation
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from app.models.claim import (
    ClaimState, InterestResult, PartyType, PaymentTerms, RateBasis,
)
from .errors import IndeterminateBasisError, ValidationError
from .statutes import (
    COMPENSATION_BANDS, COMPENSATION_TOP_BAND, DAYS_IN_YEAR,
    INTEREST_LEGISLATION, InterestRates,
)

logger = logging.getLogger(__name__)

PENNY = Decimal("0.01")


def to_pence(value: Decimal) -> Decimal:
    return value.quantize(PENNY, rounding=ROUND_HALF_UP)


def select_rate_basis(
    claimant_type: Optional[PartyType],
    defendant_type: Optional[PartyType],
) -> RateBasis:
    """Both companies -> B2B. Any other complete combination -> B2C."""
    unset: List[str] = []
    if claimant_type is None:
        unset.append("claimant.type")
    if defendant_type is None:
        unset.append("defendant.type")
    if unset:
        raise IndeterminateBasisError(
            "Interest basis cannot be determined until both party types are set",
            fields=unset,
        )

    if claimant_type is PartyType.COMPANY and defendant_type is PartyType.COMPANY:
        return RateBasis.B2B
    return RateBasis.B2C


def resolve_effective_due_date(
    date_issued: Optional[date],
    due_date: Optional[date],
    payment_terms: Optional[PaymentTerms],
) -> date:
    """
    Explicit due date, else issue date plus the payment terms.

    There is no implicit fallback term.
    """
    if due_date is not None:
        if date_issued is not None and due_date < date_issued:
            raise ValidationError(
                f"Due date {due_date.isoformat()} is before the invoice date {date_issued.isoformat()}",
                fields=["invoice.due_date"],
            )
        return due_date

    if date_issued is None:
        raise ValidationError("Invoice date is required", fields=["invoice.date_issued"])
    if payment_terms is None:
        raise ValidationError(
            "Either a due date or payment terms are required",
            fields=["invoice.due_date", "invoice.payment_terms"],
        )
    return payment_terms.due_date_from(date_issued)


def calculate_compensation(amount: Decimal, basis: RateBasis) -> Decimal:
    """Fixed sum per invoice under the Late Payment Act s.5A. Zero for B2C."""
    if basis is not RateBasis.B2B:
        return Decimal("0.00")
    for upper, fee in COMPENSATION_BANDS:
        if amount < upper:
            return to_pence(fee)
    return to_pence(COMPENSATION_TOP_BAND)


def _validate_amount(amount) -> Decimal:
    if amount is None:
        raise ValidationError("Invoice amount is required", fields=["invoice.amount"])
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid invoice amount: {amount!r}", fields=["invoice.amount"]) from e
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invoice amount must be greater than zero", fields=["invoice.amount"])
    return value


def calculate_interest(
    amount: Decimal,
    date_issued: Optional[date],
    due_date: Optional[date],
    payment_terms: Optional[PaymentTerms],
    claimant_type: Optional[PartyType],
    defendant_type: Optional[PartyType],
    as_of_date: date,
    rates: Optional[InterestRates] = None,
) -> InterestResult:
    """
    Simple statutory interest as of `as_of_date`.

    daily = amount * annual% / 100 / 365, accrued for each whole day after the
    effective due date. Rounding to pence happens once, on the totals.
    """
    principal = _validate_amount(amount)
    if as_of_date is None:
        raise ValidationError("Calculation date is required", fields=["as_of_date"])

    basis = select_rate_basis(claimant_type, defendant_type)
    effective_due = resolve_effective_due_date(date_issued, due_date, payment_terms)

    rates = rates or InterestRates.from_env()
    annual = rates.annual_rate(basis)

    days_overdue = max(0, (as_of_date - effective_due).days)
    daily = principal * annual / Decimal(100) / DAYS_IN_YEAR
    total = to_pence(daily * days_overdue)

    result = InterestResult(
        rate_basis=basis,
        annual_rate_percent=annual,
        total_interest=total,
        compensation=calculate_compensation(principal, basis),
        as_of_date=as_of_date,
        principal=to_pence(principal),
        days_overdue=days_overdue,
        daily_interest=to_pence(daily),
        effective_due_date=effective_due,
        legislation=INTEREST_LEGISLATION[basis],
    )
    logger.info(
        f"Interest computed: basis={basis.value} rate={annual}% days={days_overdue} "
        f"interest={result.total_interest} compensation={result.compensation}"
    )
    return result


def interest_for_claim(
    claim: ClaimState,
    as_of_date: date,
    rates: Optional[InterestRates] = None,
) -> InterestResult:
    """Run the calculator over a claim snapshot."""
    invoice = claim.invoice
    return calculate_interest(
        amount=invoice.amount,
        date_issued=invoice.date_issued,
        due_date=invoice.due_date,
        payment_terms=invoice.payment_terms,
        claimant_type=claim.claimant.type,
        defendant_type=claim.defendant.type,
        as_of_date=as_of_date,
        rates=rates,
    )
