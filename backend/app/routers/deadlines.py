"""
ClaimCraft Engine - Deadlines API Router

Schedules procedural deadlines from a claim snapshot and manages their status.
"""
from __future__ import annotations
import datetime
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.deadlines import DeadlineEngine, SqlDeadlineStore, build_calendar
from ..services.legal import ClaimEngineError
from .claims import ClaimRequest, engine_error, to_claim_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deadlines", tags=["deadlines"])

engine = DeadlineEngine()


@router.post("/schedule")
def schedule_deadlines(request: ClaimRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Upsert every deadline the claim currently implies.

    Safe to repeat: an unchanged claim leaves the stored deadlines as they were.
    """
    store = SqlDeadlineStore(db)
    try:
        claim = to_claim_state(request.claim)
        scheduled = engine.schedule(claim, store)
    except ClaimEngineError as e:
        raise engine_error(e)

    return {
        "claim_id": claim.claim_id,
        "scheduled": [d.to_dict() for d in scheduled],
        "deadlines": [d.to_dict() for d in store.list_for_claim(claim.claim_id)],
    }


# Declared before /{claim_id} so "upcoming" is not read as a claim id
@router.get("/upcoming")
def upcoming_deadlines(
    days_ahead: int = 7,
    as_of: Optional[datetime.date] = None,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Pending deadlines across all claims due within the window, plus overdue ones."""
    if days_ahead < 0:
        raise HTTPException(status_code=422, detail="days_ahead must not be negative")

    today = as_of or datetime.date.today()
    pending = SqlDeadlineStore(db).list_pending()
    return {
        "as_of": today.isoformat(),
        "days_ahead": days_ahead,
        "upcoming": [d.to_dict() for d in engine.upcoming(pending, today, days_ahead)],
        "overdue": [
            {**d.to_dict(), "days_overdue": days}
            for d, days in engine.overdue(pending, today)
        ],
    }


# Declared before /{claim_id} so "<id>.ics" is not read as a claim id
@router.get("/{claim_id}.ics")
def claim_calendar(claim_id: str, db: Session = Depends(get_db)) -> Response:
    """The claim's active deadlines as an iCalendar file."""
    deadlines = SqlDeadlineStore(db).list_for_claim(claim_id)
    return Response(
        content=build_calendar(deadlines),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="deadlines-{claim_id}.ics"'},
    )


@router.get("/{claim_id}")
def list_claim_deadlines(claim_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    deadlines = SqlDeadlineStore(db).list_for_claim(claim_id)
    return {"claim_id": claim_id, "deadlines": [d.to_dict() for d in deadlines]}


@router.post("/{deadline_id}/dismiss")
def dismiss_deadline(deadline_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Dismiss a deadline; the same date is not proposed again for its type."""
    try:
        deadline = SqlDeadlineStore(db).dismiss(deadline_id)
    except ClaimEngineError as e:
        raise engine_error(e)
    return deadline.to_dict()


@router.post("/{deadline_id}/complete")
def complete_deadline(deadline_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        deadline = SqlDeadlineStore(db).complete(deadline_id)
    except ClaimEngineError as e:
        raise engine_error(e)
    return deadline.to_dict()
