"""
UK Debt Recovery Statutes - Single Source of Truth

Statutory rates, bands, response windows and the citation strings printed on
documents and deadlines. Every module that needs a legal figure reads it here.

The reference base rate is configuration, not law: it moves with the Bank of
England and must be supplied (BOE_BASE_RATE) rather than hard-coded into the
B2B formula.
"""
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple

from app.models.claim import DeadlineType, PartyType, RateBasis, exhaustive


# =============================================================================
# INTEREST
# =============================================================================

# Late Payment of Commercial Debts (Interest) Act 1998, s.6 + SI 2002/1675
LATE_PAYMENT_STATUTORY_ADDITION = Decimal("8.0")

# County Courts Act 1984, s.69 (judgment debt rate applied by the county court)
COUNTY_COURTS_ACT_RATE = Decimal("8.0")

DEFAULT_REFERENCE_BASE_RATE = os.getenv("BOE_BASE_RATE", "4.75")

DAYS_IN_YEAR = Decimal("365")


@dataclass(frozen=True)
class InterestRates:
    """
    Parameters of the statutory interest formula.

    B2B annual rate = statutory addition + reference base rate.
    B2C annual rate = fixed County Courts Act rate.
    """
    reference_base_rate: Decimal = Decimal(DEFAULT_REFERENCE_BASE_RATE)
    statutory_addition: Decimal = LATE_PAYMENT_STATUTORY_ADDITION
    county_court_rate: Decimal = COUNTY_COURTS_ACT_RATE

    @classmethod
    def from_env(cls) -> "InterestRates":
        return cls(reference_base_rate=Decimal(os.getenv("BOE_BASE_RATE", "4.75")))

    def annual_rate(self, basis: RateBasis) -> Decimal:
        if basis is RateBasis.B2B:
            return self.statutory_addition + self.reference_base_rate
        if basis is RateBasis.B2C:
            return self.county_court_rate
        raise ValueError(f"Unhandled rate basis: {basis}")


INTEREST_LEGISLATION: Dict[RateBasis, str] = exhaustive({
    RateBasis.B2B: "the Late Payment of Commercial Debts (Interest) Act 1998",
    RateBasis.B2C: "section 69 of the County Courts Act 1984",
}, RateBasis, "INTEREST_LEGISLATION")

INTEREST_RATE_DESCRIPTION: Dict[RateBasis, str] = exhaustive({
    RateBasis.B2B: "8% above the Bank of England base rate",
    RateBasis.B2C: "8% per annum",
}, RateBasis, "INTEREST_RATE_DESCRIPTION")


# =============================================================================
# FIXED COMPENSATION (Late Payment Act s.5A) - B2B only
# =============================================================================

# (exclusive upper bound, fee). Last band has no upper bound.
COMPENSATION_BANDS: List[Tuple[Decimal, Decimal]] = [
    (Decimal("1000"), Decimal("40")),
    (Decimal("10000"), Decimal("70")),
]
COMPENSATION_TOP_BAND = Decimal("100")


# =============================================================================
# PRE-ACTION PROTOCOL
# =============================================================================

# Pre-Action Protocol for Debt Claims applies to individual debtors (30 days);
# business debtors are given the 14 days accepted under the Practice Direction.
LBA_RESPONSE_DAYS: Dict[PartyType, int] = exhaustive({
    PartyType.COMPANY: 14,
    PartyType.INDIVIDUAL: 30,
}, PartyType, "LBA_RESPONSE_DAYS")

# Days after the due date
FIRST_CHASER_DAYS_OVERDUE = 7
FINAL_DEMAND_DAYS_OVERDUE = 14
SEND_LBA_DAYS_OVERDUE = 28

# Recommender: overdue beyond this with no LBA requires one
LBA_REQUIRED_AFTER_DAYS_OVERDUE = 14


# =============================================================================
# COURT PROCESS (CPR)
# =============================================================================

ACKNOWLEDGMENT_DAYS = 14           # CPR 10.3
DEFENCE_AFTER_ACK_DAYS = 14        # CPR 15.4(1)(b)
DEFENCE_WITHOUT_ACK_DAYS = 28      # CPR 15.4(1)(a) read with 10.3
ENFORCEMENT_WAIT_DAYS = 14         # judgment payable within 14 days (CPR 40.11)
LIMITATION_PERIOD_YEARS = 6        # Limitation Act 1980, s.5
SMALL_CLAIMS_LIMIT = Decimal("10000")


# =============================================================================
# DEADLINE REFERENCES
# =============================================================================

DEADLINE_REFERENCES: Dict[DeadlineType, Dict[str, str]] = exhaustive({
    DeadlineType.PAYMENT_DUE: {
        "title": "Payment due",
        "description": "Invoice payment falls due. Statutory interest runs from the day after.",
        "legal_reference": "Contract terms; Late Payment of Commercial Debts (Interest) Act 1998, s.4",
        "priority": "medium",
    },
    DeadlineType.FIRST_CHASER: {
        "title": "Send first payment reminder",
        "description": "Invoice is 7 days overdue. Send a polite reminder.",
        "legal_reference": "Pre-Action Protocol for Debt Claims, para 2 (early communication)",
        "priority": "low",
    },
    DeadlineType.FINAL_DEMAND: {
        "title": "Send final demand",
        "description": "Invoice is 14 days overdue. Send a final demand before formal action.",
        "legal_reference": "Pre-Action Protocol for Debt Claims, para 2",
        "priority": "medium",
    },
    DeadlineType.SEND_LBA: {
        "title": "Send Letter Before Action",
        "description": "Invoice is 28 days overdue. Send a Letter Before Action before issuing a claim.",
        "legal_reference": "Pre-Action Protocol for Debt Claims, para 3.1",
        "priority": "high",
    },
    DeadlineType.LBA_RESPONSE_EXPIRY: {
        "title": "LBA response period ends",
        "description": "The debtor's time to respond to the Letter Before Action expires. A claim may be issued after this date.",
        "legal_reference": "Pre-Action Protocol for Debt Claims, para 3.1 and 6.1",
        "priority": "high",
    },
    DeadlineType.ACKNOWLEDGMENT_OF_SERVICE: {
        "title": "Acknowledgment of service due",
        "description": "Defendant must file an acknowledgment of service or defence.",
        "legal_reference": "CPR 10.3",
        "priority": "medium",
    },
    DeadlineType.DEFENCE_DUE: {
        "title": "Defence due",
        "description": "Defendant must file a defence.",
        "legal_reference": "CPR 15.4",
        "priority": "high",
    },
    DeadlineType.DEFAULT_JUDGMENT: {
        "title": "Default judgment available",
        "description": "If no defence has been filed, request default judgment (Form N225).",
        "legal_reference": "CPR 12.3",
        "priority": "critical",
    },
    DeadlineType.ENFORCEMENT: {
        "title": "Judgment payment period ends",
        "description": "If the judgment is unpaid, enforcement may be considered.",
        "legal_reference": "CPR 40.11; CPR Parts 70-73",
        "priority": "high",
    },
    DeadlineType.LIMITATION_EXPIRY: {
        "title": "Limitation period expires",
        "description": "A claim must be issued before this date or it will be statute-barred.",
        "legal_reference": "Limitation Act 1980, s.5",
        "priority": "critical",
    },
}, DeadlineType, "DEADLINE_REFERENCES")


# =============================================================================
# STATEMENT OF TRUTH (CPR PD 22 para 2.1) - embedded verbatim, never paraphrased
# =============================================================================

STATEMENT_OF_TRUTH: Dict[PartyType, str] = exhaustive({
    PartyType.INDIVIDUAL: (
        "I believe that the facts stated in these particulars of claim are true. "
        "I understand that proceedings for contempt of court may be brought against "
        "anyone who makes, or causes to be made, a false statement in a document "
        "verified by a statement of truth without an honest belief in its truth."
    ),
    PartyType.COMPANY: (
        "The Claimant believes that the facts stated in these particulars of claim are true. "
        "The Claimant understands that proceedings for contempt of court may be brought against "
        "anyone who makes, or causes to be made, a false statement in a document "
        "verified by a statement of truth without an honest belief in its truth."
    ),
}, PartyType, "STATEMENT_OF_TRUTH")
