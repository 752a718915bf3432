"""
Timeline Consistency

Advisory checks over the claim chronology. Nothing here blocks generation:
an illogical ordering is surfaced as a warning for the user to review.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.models.claim import TimelineEvent, TimelineEventType

logger = logging.getLogger(__name__)

T = TimelineEventType


# =============================================================================
# CANONICAL ORDER
# =============================================================================

# Checked in this priority order; the first violated pair is reported.
# (earlier, later, warning)
CANONICAL_PAIRS: Tuple[Tuple[TimelineEventType, TimelineEventType, str], ...] = (
    (T.CONTRACT, T.SERVICE_DELIVERED, "Warning: Contract typically comes before service delivery"),
    (T.SERVICE_DELIVERED, T.INVOICE, "Warning: Service delivery typically comes before invoicing"),
    (T.CONTRACT, T.INVOICE, "Warning: Contract event typically comes before Invoice"),
    (T.INVOICE, T.PAYMENT_DUE, "Warning: Invoice should be sent before Payment Due date"),
    (T.PAYMENT_DUE, T.LBA_SENT, "Warning: Letter Before Action should be sent after payment is overdue"),
)


def _first_by_type(events: Iterable[TimelineEvent]) -> Dict[TimelineEventType, TimelineEvent]:
    first: Dict[TimelineEventType, TimelineEvent] = {}
    for event in events:
        first.setdefault(event.type, event)
    return first


def check_timeline_order(events: Sequence[TimelineEvent]) -> Optional[str]:
    """
    Return at most one warning for an illogical event ordering.

    The first event of each type (by type, not array index) is compared on its
    actual date, so an unsorted timeline is checked the same as a sorted one.
    Equal dates are never a violation.
    """
    first = _first_by_type(events)

    for earlier, later, warning in CANONICAL_PAIRS:
        a = first.get(earlier)
        b = first.get(later)
        if a is None or b is None:
            continue
        if a.date > b.date:
            logger.warning(f"Timeline order: {earlier.value} ({a.date}) after {later.value} ({b.date})")
            return warning

    return None


def timeline_completeness(events: Sequence[TimelineEvent]) -> Dict[str, object]:
    """
    Report missing core events.

    Only the invoice is required; the rest strengthen the claim.
    """
    present = {e.type for e in events}
    missing: List[str] = []
    warnings: List[str] = []

    if T.INVOICE not in present:
        missing.append("Invoice date")
    if T.PAYMENT_DUE not in present:
        warnings.append("No explicit payment due date found - the invoice terms will be used")
    if T.CONTRACT not in present:
        warnings.append("Contract date not specified - may weaken claim if disputed")
    if T.SERVICE_DELIVERED not in present:
        warnings.append("Service delivery date not specified - recommended for stronger claim")

    return {
        "is_complete": not missing,
        "missing_events": missing,
        "warnings": warnings,
    }


# =============================================================================
# TYPE NORMALISATION
# =============================================================================

EVENT_TYPE_SYNONYMS: Dict[str, TimelineEventType] = {
    # contract
    "contract": T.CONTRACT, "agreement": T.CONTRACT, "signed": T.CONTRACT,
    "contract_signed": T.CONTRACT, "agreement_signed": T.CONTRACT, "terms_agreed": T.CONTRACT,
    # delivery
    "service_delivered": T.SERVICE_DELIVERED, "services_delivered": T.SERVICE_DELIVERED,
    "delivered": T.SERVICE_DELIVERED, "delivery": T.SERVICE_DELIVERED,
    "goods_delivered": T.SERVICE_DELIVERED, "work_completed": T.SERVICE_DELIVERED,
    "completed": T.SERVICE_DELIVERED, "service_complete": T.SERVICE_DELIVERED,
    # invoice
    "invoice": T.INVOICE, "invoiced": T.INVOICE, "invoice_sent": T.INVOICE,
    "invoice_issued": T.INVOICE, "billed": T.INVOICE,
    # due
    "payment_due": T.PAYMENT_DUE, "due_date": T.PAYMENT_DUE, "due": T.PAYMENT_DUE,
    "payment_deadline": T.PAYMENT_DUE,
    # part payment
    "part_payment": T.PART_PAYMENT, "partial_payment": T.PART_PAYMENT,
    "payment_received": T.PART_PAYMENT, "part_paid": T.PART_PAYMENT,
    # reminders
    "payment_reminder": T.PAYMENT_REMINDER, "reminder": T.PAYMENT_REMINDER,
    "reminder_sent": T.PAYMENT_REMINDER, "first_reminder": T.PAYMENT_REMINDER,
    "second_reminder": T.PAYMENT_REMINDER,
    "chaser": T.CHASER, "chase": T.CHASER, "chased": T.CHASER,
    "follow_up": T.CHASER, "followup": T.CHASER, "final_demand": T.CHASER,
    # promise
    "promise_to_pay": T.PROMISE_TO_PAY, "promised_payment": T.PROMISE_TO_PAY,
    "payment_promised": T.PROMISE_TO_PAY,
    # LBA
    "lba_sent": T.LBA_SENT, "lba": T.LBA_SENT, "letter_before_action": T.LBA_SENT,
    "letter_before_claim": T.LBA_SENT, "pre_action_letter": T.LBA_SENT,
    # acknowledgment
    "acknowledgment": T.ACKNOWLEDGMENT, "acknowledgement": T.ACKNOWLEDGMENT,
    "acknowledged": T.ACKNOWLEDGMENT, "response_received": T.ACKNOWLEDGMENT,
    # communication
    "communication": T.COMMUNICATION, "email": T.COMMUNICATION, "phone": T.COMMUNICATION,
    "call": T.COMMUNICATION, "meeting": T.COMMUNICATION, "letter": T.COMMUNICATION,
    "correspondence": T.COMMUNICATION,
}


def normalize_event_type(raw: Optional[str]) -> TimelineEventType:
    """Map a free-text event label onto the closed event type set."""
    if not raw:
        return T.COMMUNICATION
    key = re.sub(r"[-\s]+", "_", raw.strip().lower())
    key = re.sub(r"[^a-z0-9_]", "", key)
    return EVENT_TYPE_SYNONYMS.get(key, T.COMMUNICATION)


def sort_events(events: Iterable[TimelineEvent]) -> Tuple[TimelineEvent, ...]:
    """Stable date sort."""
    return tuple(sorted(events, key=lambda e: e.date))
