"""
Deadline Engine

Derives procedural deadlines from the claim timeline and document milestones.

Key behaviors:
- Invoice-anchored reminders at fixed days-overdue offsets
- LBA response window by defendant type (14 days Company, 30 days Individual)
- CPR court deadlines once a claim is served or judgment is entered
- Limitation expiry 6 years after the due date

Candidate generation is pure: identical ClaimState and identical existing
deadlines yield an identical, identically ordered list. Ids are uuid5 over
(claim_id, type, due_date) so a re-run never mints a new identity.
"""
import logging
import uuid
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from app.models.claim import (
    ClaimState, Deadline, DeadlinePriority, DeadlineStatus, DeadlineType,
)
from app.services.legal.errors import ValidationError
from app.services.legal.interest import resolve_effective_due_date
from app.services.legal.statutes import (
    ACKNOWLEDGMENT_DAYS, DEADLINE_REFERENCES, DEFENCE_AFTER_ACK_DAYS,
    DEFENCE_WITHOUT_ACK_DAYS, ENFORCEMENT_WAIT_DAYS, FINAL_DEMAND_DAYS_OVERDUE,
    FIRST_CHASER_DAYS_OVERDUE, LBA_RESPONSE_DAYS, LIMITATION_PERIOD_YEARS,
    SEND_LBA_DAYS_OVERDUE,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DEADLINE CONFIGURATION
# =============================================================================

DEADLINE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "claimcraft/deadlines")

# Days after the effective due date
INVOICE_OFFSETS: Dict[DeadlineType, int] = {
    DeadlineType.PAYMENT_DUE: 0,
    DeadlineType.FIRST_CHASER: FIRST_CHASER_DAYS_OVERDUE,
    DeadlineType.FINAL_DEMAND: FINAL_DEMAND_DAYS_OVERDUE,
    DeadlineType.SEND_LBA: SEND_LBA_DAYS_OVERDUE,
}

# Tie-break for deadlines falling on the same day
TYPE_ORDER: Dict[DeadlineType, int] = {t: i for i, t in enumerate(DeadlineType)}


def deadline_id(claim_id: str, deadline_type: DeadlineType, due: date) -> str:
    return str(uuid.uuid5(DEADLINE_NAMESPACE, f"{claim_id}|{deadline_type.value}|{due.isoformat()}"))


def make_deadline(claim_id: str, deadline_type: DeadlineType, due: date) -> Deadline:
    ref = DEADLINE_REFERENCES[deadline_type]
    return Deadline(
        id=deadline_id(claim_id, deadline_type, due),
        claim_id=claim_id,
        type=deadline_type,
        due_date=due,
        title=ref["title"],
        description=ref["description"],
        legal_reference=ref["legal_reference"],
        status=DeadlineStatus.PENDING,
        priority=DeadlinePriority(ref["priority"]),
    )


# =============================================================================
# DEADLINE ENGINE
# =============================================================================

class DeadlineEngine:
    """
    Computes candidate deadlines and upserts them into a store.

    The engine holds no state. Persistence is the caller's `add_deadline`.
    """

    def candidates(self, claim: ClaimState, existing: Sequence[Deadline] = ()) -> List[Deadline]:
        """
        Candidate deadlines for a claim, after deduplication.

        A candidate is suppressed when a non-dismissed deadline of the same
        type already exists for the claim, or when the user dismissed the same
        (type, due_date) before.
        """
        raw = self._invoice_deadlines(claim) + self._milestone_deadlines(claim)

        active_types = {
            d.type for d in existing
            if d.claim_id == claim.claim_id and d.status != DeadlineStatus.DISMISSED
        }
        dismissed = {
            (d.type, d.due_date) for d in existing
            if d.claim_id == claim.claim_id and d.status == DeadlineStatus.DISMISSED
        }

        result = [
            d for d in raw
            if d.type not in active_types and (d.type, d.due_date) not in dismissed
        ]
        result.sort(key=lambda d: (d.due_date, TYPE_ORDER[d.type]))

        logger.info(
            f"Deadline candidates for {claim.claim_id}: {len(result)} new, "
            f"{len(raw) - len(result)} suppressed"
        )
        return result

    def _invoice_deadlines(self, claim: ClaimState) -> List[Deadline]:
        invoice = claim.invoice
        due = resolve_effective_due_date(invoice.date_issued, invoice.due_date, invoice.payment_terms)

        deadlines = [
            make_deadline(claim.claim_id, t, due + timedelta(days=offset))
            for t, offset in INVOICE_OFFSETS.items()
        ]
        deadlines.append(make_deadline(
            claim.claim_id,
            DeadlineType.LIMITATION_EXPIRY,
            due + relativedelta(years=LIMITATION_PERIOD_YEARS),
        ))
        return deadlines

    def _milestone_deadlines(self, claim: ClaimState) -> List[Deadline]:
        deadlines: List[Deadline] = []

        lba_date = claim.effective_lba_date()
        if lba_date is not None:
            defendant_type = claim.defendant.type
            if defendant_type is None:
                raise ValidationError(
                    "Defendant type is required to compute the LBA response period",
                    fields=["defendant.type"],
                )
            deadlines.append(make_deadline(
                claim.claim_id,
                DeadlineType.LBA_RESPONSE_EXPIRY,
                lba_date + timedelta(days=LBA_RESPONSE_DAYS[defendant_type]),
            ))
        elif claim.lba_already_sent:
            logger.info(f"LBA marked sent for {claim.claim_id} without a date; response window not scheduled")

        served = claim.claim_served_date
        if served is not None:
            deadlines.append(make_deadline(
                claim.claim_id,
                DeadlineType.ACKNOWLEDGMENT_OF_SERVICE,
                served + timedelta(days=ACKNOWLEDGMENT_DAYS),
            ))
            defence_due = self.defence_due_date(served, claim.acknowledgment_date)
            deadlines.append(make_deadline(claim.claim_id, DeadlineType.DEFENCE_DUE, defence_due))
            deadlines.append(make_deadline(
                claim.claim_id,
                DeadlineType.DEFAULT_JUDGMENT,
                defence_due + timedelta(days=1),
            ))

        if claim.judgment_date is not None:
            deadlines.append(make_deadline(
                claim.claim_id,
                DeadlineType.ENFORCEMENT,
                claim.judgment_date + timedelta(days=ENFORCEMENT_WAIT_DAYS),
            ))

        return deadlines

    @staticmethod
    def defence_due_date(served: date, acknowledged: Optional[date]) -> date:
        """CPR 15.4: 14 days after acknowledgment, otherwise 28 days after service."""
        if acknowledged is not None:
            return acknowledged + timedelta(days=DEFENCE_AFTER_ACK_DAYS)
        return served + timedelta(days=DEFENCE_WITHOUT_ACK_DAYS)

    def apply(
        self,
        candidates: Iterable[Deadline],
        add_deadline: Callable[[Deadline], Deadline],
    ) -> List[Deadline]:
        """Upsert each candidate through the store collaborator."""
        stored = [add_deadline(d) for d in candidates]
        logger.info(f"Scheduled {len(stored)} deadlines")
        return stored

    def schedule(self, claim: ClaimState, store) -> List[Deadline]:
        """Compute candidates against the store's current rows and upsert them."""
        existing = store.list_for_claim(claim.claim_id)
        return self.apply(self.candidates(claim, existing), store.add_deadline)

    @staticmethod
    def upcoming(
        deadlines: Iterable[Deadline],
        as_of: date,
        days_ahead: int = 7,
    ) -> List[Deadline]:
        """Pending deadlines due between `as_of` and `as_of + days_ahead` inclusive."""
        horizon = as_of + timedelta(days=days_ahead)
        due_soon = [
            d for d in deadlines
            if d.status == DeadlineStatus.PENDING and as_of <= d.due_date <= horizon
        ]
        return sorted(due_soon, key=lambda d: (d.due_date, TYPE_ORDER[d.type], d.claim_id))

    @staticmethod
    def overdue(deadlines: Iterable[Deadline], as_of: date) -> List[Tuple[Deadline, int]]:
        """Pending deadlines already past, with days overdue."""
        late = [
            (d, (as_of - d.due_date).days) for d in deadlines
            if d.status == DeadlineStatus.PENDING and d.due_date < as_of
        ]
        return sorted(late, key=lambda pair: (pair[0].due_date, TYPE_ORDER[pair[0].type]))
