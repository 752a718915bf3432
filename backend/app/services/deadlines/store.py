"""
Deadline Store

The only mutable resource the engine touches. Writes are upserts keyed by
(claim_id, type) among non-dismissed rows, so repeated or concurrent
scheduling of identical candidates converges on one row per type.
"""
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.claim import Deadline, DeadlineStatus
from app.models.db_models import DeadlineDB
from app.services.legal.errors import ClaimEngineError

logger = logging.getLogger(__name__)


class DeadlineNotFoundError(ClaimEngineError):
    """No deadline with the given id."""

    kind = "not_found"


class DeadlineStore(Protocol):
    def add_deadline(self, deadline: Deadline) -> Deadline: ...

    def list_for_claim(self, claim_id: str) -> List[Deadline]: ...

    def list_pending(self) -> List[Deadline]: ...

    def dismiss(self, deadline_id: str) -> Deadline: ...

    def complete(self, deadline_id: str) -> Deadline: ...


# =============================================================================
# IN-MEMORY
# =============================================================================

class InMemoryDeadlineStore:
    """Dict-backed store for tests and single-process callers."""

    def __init__(self):
        self._rows: Dict[str, Deadline] = {}
        self._lock = threading.Lock()

    def add_deadline(self, deadline: Deadline) -> Deadline:
        with self._lock:
            current = self._active(deadline)
            if current is not None:
                # Keep identity and user-set status; refresh the derived fields
                updated = replace(
                    deadline, id=current.id, status=current.status,
                )
                self._rows[current.id] = updated
                return updated
            self._rows[deadline.id] = deadline
            return deadline

    def _active(self, deadline: Deadline) -> Optional[Deadline]:
        for row in self._rows.values():
            if row.claim_id == deadline.claim_id and row.type == deadline.type and row.is_active:
                return row
        return None

    def list_for_claim(self, claim_id: str) -> List[Deadline]:
        return sorted(
            (d for d in self._rows.values() if d.claim_id == claim_id),
            key=lambda d: (d.due_date, d.id),
        )

    def list_pending(self) -> List[Deadline]:
        return [d for d in self._rows.values() if d.status == DeadlineStatus.PENDING]

    def _set_status(self, deadline_id: str, status: DeadlineStatus) -> Deadline:
        with self._lock:
            row = self._rows.get(deadline_id)
            if row is None:
                raise DeadlineNotFoundError(f"Deadline {deadline_id} not found", fields=["deadline_id"])
            updated = replace(row, status=status)
            self._rows[deadline_id] = updated
            return updated

    def dismiss(self, deadline_id: str) -> Deadline:
        return self._set_status(deadline_id, DeadlineStatus.DISMISSED)

    def complete(self, deadline_id: str) -> Deadline:
        return self._set_status(deadline_id, DeadlineStatus.DONE)


# =============================================================================
# SQLALCHEMY
# =============================================================================

class SqlDeadlineStore:
    """
    Deadline store over the `deadlines` table.

    Each write commits; the caller owns the session lifetime (get_db).
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def add_deadline(self, deadline: Deadline) -> Deadline:
        try:
            return self._upsert(deadline)
        except IntegrityError:
            # Another session inserted the active row between our query and commit
            self.db.rollback()
            logger.info(
                f"Concurrent insert of {deadline.type.value} for {deadline.claim_id}; updating existing row"
            )
            return self._upsert(deadline)

    def _find_active(self, deadline: Deadline) -> Optional[DeadlineDB]:
        return self.db.query(DeadlineDB).filter(
            DeadlineDB.claim_id == deadline.claim_id,
            DeadlineDB.type == deadline.type,
            DeadlineDB.status != DeadlineStatus.DISMISSED,
        ).first()

    def _upsert(self, deadline: Deadline) -> Deadline:
        row = self._find_active(deadline)

        if row is None:
            row = DeadlineDB(
                id=deadline.id,
                claim_id=deadline.claim_id,
                type=deadline.type,
                status=deadline.status,
            )
            self.db.add(row)

        row.due_date = deadline.due_date
        row.title = deadline.title
        row.description = deadline.description
        row.legal_reference = deadline.legal_reference
        row.priority = deadline.priority
        row.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(row)
        return row.to_domain()

    def list_for_claim(self, claim_id: str) -> List[Deadline]:
        rows = self.db.query(DeadlineDB).filter(
            DeadlineDB.claim_id == claim_id
        ).order_by(DeadlineDB.due_date, DeadlineDB.id).all()
        return [r.to_domain() for r in rows]

    def list_pending(self) -> List[Deadline]:
        rows = self.db.query(DeadlineDB).filter(
            DeadlineDB.status == DeadlineStatus.PENDING
        ).all()
        return [r.to_domain() for r in rows]

    def _set_status(self, deadline_id: str, status: DeadlineStatus) -> Deadline:
        row = self.db.query(DeadlineDB).filter(DeadlineDB.id == deadline_id).first()
        if row is None:
            raise DeadlineNotFoundError(f"Deadline {deadline_id} not found", fields=["deadline_id"])
        row.status = status
        row.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Deadline {deadline_id} marked {status.value}")
        return row.to_domain()

    def dismiss(self, deadline_id: str) -> Deadline:
        return self._set_status(deadline_id, DeadlineStatus.DISMISSED)

    def complete(self, deadline_id: str) -> Deadline:
        return self._set_status(deadline_id, DeadlineStatus.DONE)
