"""
ClaimCraft Engine - Claim Models

These models are the ONLY data structures passed between the rules engine stages.
ClaimState is an immutable snapshot: the surrounding wizard owns mutation,
the engine only reads it and emits derived values (interest, deadlines, documents).

Interest results are never persisted as a source of truth - the Invoice and
its dates are. Everything derived is recomputed on demand.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from dateutil.relativedelta import relativedelta


E = TypeVar("E", bound=Enum)


def exhaustive(table: Mapping[E, object], enum_cls: Type[E], name: str) -> Mapping[E, object]:
    """
    Assert that a decision table covers every member of a closed enum.

    Called at import time next to each table, so adding an enum member without
    revisiting the table fails loudly instead of falling through silently.
    """
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"Decision table {name} does not cover {enum_cls.__name__}: {missing}")
    return table


# =============================================================================
# ENUMS
# =============================================================================

class PartyType(str, Enum):
    """Closed two-variant discriminator. Sole input to interest-basis selection."""
    INDIVIDUAL = "Individual"
    COMPANY = "Company"


class PaymentTerms(str, Enum):
    IMMEDIATE = "immediate"
    NET_7 = "net_7"
    NET_14 = "net_14"
    NET_30 = "net_30"
    NET_60 = "net_60"
    NET_90 = "net_90"
    END_OF_FOLLOWING_MONTH = "end_of_following_month"

    def due_date_from(self, issued: date) -> date:
        """Resolve the contractual due date for an invoice issued on `issued`."""
        if self is PaymentTerms.END_OF_FOLLOWING_MONTH:
            # day=31 clamps to the last day of the month
            return issued + relativedelta(months=1, day=31)
        return issued + relativedelta(days=PAYMENT_TERMS_DAYS[self])


PAYMENT_TERMS_DAYS: Dict[PaymentTerms, int] = {
    PaymentTerms.IMMEDIATE: 0,
    PaymentTerms.NET_7: 7,
    PaymentTerms.NET_14: 14,
    PaymentTerms.NET_30: 30,
    PaymentTerms.NET_60: 60,
    PaymentTerms.NET_90: 90,
}


class TimelineEventType(str, Enum):
    CONTRACT = "contract"
    SERVICE_DELIVERED = "service_delivered"
    INVOICE = "invoice"
    PAYMENT_DUE = "payment_due"
    PART_PAYMENT = "part_payment"
    PAYMENT_REMINDER = "payment_reminder"
    CHASER = "chaser"
    PROMISE_TO_PAY = "promise_to_pay"
    LBA_SENT = "lba_sent"
    ACKNOWLEDGMENT = "acknowledgment"
    COMMUNICATION = "communication"


class RateBasis(str, Enum):
    """Statutory interest regime."""
    B2B = "B2B"  # Late Payment of Commercial Debts (Interest) Act 1998
    B2C = "B2C"  # County Courts Act 1984, s.69


class DocumentType(str, Enum):
    POLITE_CHASER = "Polite Payment Reminder"
    LBA = "Letter Before Action"
    FORM_N1 = "Form N1 (Claim Form)"


class DeadlineType(str, Enum):
    PAYMENT_DUE = "payment_due"
    FIRST_CHASER = "first_chaser"
    FINAL_DEMAND = "final_demand"
    SEND_LBA = "send_lba"
    LBA_RESPONSE_EXPIRY = "lba_response_expiry"
    ACKNOWLEDGMENT_OF_SERVICE = "acknowledgment_of_service"
    DEFENCE_DUE = "defence_due"
    DEFAULT_JUDGMENT = "default_judgment"
    ENFORCEMENT = "enforcement"
    LIMITATION_EXPIRY = "limitation_expiry"


class DeadlineStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    DISMISSED = "dismissed"


class DeadlinePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# CLAIM INPUTS
# =============================================================================

@dataclass(frozen=True)
class Party:
    """Claimant or defendant."""
    name: str = ""
    type: Optional[PartyType] = None  # None = unset, never guessed
    address_line: str = ""
    city: str = ""
    county: str = ""
    postcode: str = ""
    company_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def address_parts(self) -> Tuple[str, ...]:
        parts = (self.address_line, self.city, self.county, self.postcode)
        return tuple(p.strip() for p in parts if p and p.strip())

    def formatted_address(self, separator: str = "\n") -> str:
        return separator.join(self.address_parts())


@dataclass(frozen=True)
class Invoice:
    """
    The unpaid invoice.

    amount must be > 0. due_date >= date_issued when both are present.
    Those invariants are enforced by the calculator (ValidationError), not here,
    so a half-filled wizard snapshot can still be represented.
    """
    amount: Decimal = Decimal("0")
    date_issued: Optional[date] = None
    due_date: Optional[date] = None
    payment_terms: Optional[PaymentTerms] = None
    invoice_number: str = ""
    currency: str = "GBP"
    description: str = ""


@dataclass(frozen=True)
class TimelineEvent:
    date: date
    type: TimelineEventType
    description: str = ""


@dataclass(frozen=True)
class ClaimState:
    """
    Aggregate root for one debt claim.

    Created at claim start, mutated by the wizard (external), read-only here.
    Use `with_changes` to derive an updated snapshot.
    """
    claim_id: str
    claimant: Party = field(default_factory=Party)
    defendant: Party = field(default_factory=Party)
    invoice: Invoice = field(default_factory=Invoice)
    timeline: Tuple[TimelineEvent, ...] = ()

    # Document selection
    selected_document_type: Optional[DocumentType] = None
    user_selected_doc_type: bool = False

    # LBA lifecycle
    lba_already_sent: bool = False
    lba_sent_date: Optional[date] = None

    # Verification
    interest_confirmed: bool = False

    # Court lifecycle
    claim_served_date: Optional[date] = None
    acknowledgment_date: Optional[date] = None
    judgment_date: Optional[date] = None

    # Not part of any document dependency set
    user_notes: str = ""
    signature_png: Optional[bytes] = None

    def with_changes(self, **changes) -> "ClaimState":
        return replace(self, **changes)

    def events_of(self, *types: TimelineEventType) -> Tuple[TimelineEvent, ...]:
        wanted = set(types)
        return tuple(e for e in self.timeline if e.type in wanted)

    def first_event(self, event_type: TimelineEventType) -> Optional[TimelineEvent]:
        """First event of a type in timeline order (not necessarily earliest date)."""
        for event in self.timeline:
            if event.type == event_type:
                return event
        return None

    def effective_lba_date(self) -> Optional[date]:
        """
        Date the LBA was sent.

        The explicit flag date wins; otherwise the first lba_sent event.
        A flag without a date and no event yields None.
        """
        if self.lba_sent_date is not None:
            return self.lba_sent_date
        event = self.first_event(TimelineEventType.LBA_SENT)
        return event.date if event else None

    @property
    def lba_sent(self) -> bool:
        return self.lba_already_sent or self.first_event(TimelineEventType.LBA_SENT) is not None


# =============================================================================
# DERIVED RESULTS
# =============================================================================

@dataclass(frozen=True)
class InterestResult:
    """
    Statutory interest owed as of a date.

    total_interest never includes compensation; compensation is its own line.
    """
    rate_basis: RateBasis
    annual_rate_percent: Decimal
    total_interest: Decimal
    compensation: Decimal
    as_of_date: date
    principal: Decimal = Decimal("0")
    days_overdue: int = 0
    daily_interest: Decimal = Decimal("0")
    effective_due_date: Optional[date] = None
    legislation: str = ""

    @property
    def total_claim(self) -> Decimal:
        return self.principal + self.total_interest + self.compensation

    def to_dict(self) -> Dict[str, object]:
        return {
            "rate_basis": self.rate_basis.value,
            "annual_rate_percent": str(self.annual_rate_percent),
            "total_interest": str(self.total_interest),
            "compensation": str(self.compensation),
            "as_of_date": self.as_of_date.isoformat(),
            "principal": str(self.principal),
            "days_overdue": self.days_overdue,
            "daily_interest": str(self.daily_interest),
            "effective_due_date": self.effective_due_date.isoformat() if self.effective_due_date else None,
            "legislation": self.legislation,
            "total_claim": str(self.total_claim),
        }


@dataclass(frozen=True)
class Deadline:
    """A procedural deadline. At most one non-dismissed per (claim_id, type)."""
    id: str
    claim_id: str
    type: DeadlineType
    due_date: date
    title: str
    description: str
    legal_reference: str
    status: DeadlineStatus = DeadlineStatus.PENDING
    priority: DeadlinePriority = DeadlinePriority.MEDIUM

    @property
    def is_active(self) -> bool:
        return self.status != DeadlineStatus.DISMISSED

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "claim_id": self.claim_id,
            "type": self.type.value,
            "due_date": self.due_date.isoformat(),
            "title": self.title,
            "description": self.description,
            "legal_reference": self.legal_reference,
            "status": self.status.value,
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class DocumentSection:
    name: str
    text: str


@dataclass(frozen=True)
class GeneratedDocument:
    """
    Assembled document content.

    dependency_key fingerprints the declared input fields the content was
    built from; the generator reuses this object until the key changes.
    """
    document_type: DocumentType
    sections: Tuple[DocumentSection, ...]
    generated_at: datetime
    dependency_key: str = ""

    @property
    def content(self) -> str:
        return "\n\n".join(s.text for s in self.sections if s.text)

    def section(self, name: str) -> Optional[DocumentSection]:
        for s in self.sections:
            if s.name == name:
                return s
        return None

    def section_names(self) -> Iterable[str]:
        return [s.name for s in self.sections]

    def to_dict(self) -> Dict[str, object]:
        return {
            "document_type": self.document_type.value,
            "sections": {s.name: s.text for s in self.sections},
            "content": self.content,
            "generated_at": self.generated_at.isoformat(),
            "dependency_key": self.dependency_key,
        }
