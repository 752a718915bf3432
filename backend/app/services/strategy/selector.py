"""
ClaimCraft Engine - Document Recommender

Takes a ClaimState and decides which legal instrument comes next.

Stages follow the escalation path and never step back:
    NO_CONTACT -> CHASED -> LBA_REQUIRED -> LBA_SENT_AWAITING_RESPONSE -> COURT_READY

A manual selection by the user is never replaced. The recommendation is then
advisory and only contributes warnings.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from app.models.claim import (
    ClaimState, DocumentType, InterestResult, TimelineEventType,
)
from app.services.legal.errors import ValidationError
from app.services.legal.interest import resolve_effective_due_date
from app.services.legal.statutes import (
    LBA_REQUIRED_AFTER_DAYS_OVERDUE, LBA_RESPONSE_DAYS, LIMITATION_PERIOD_YEARS,
    SMALL_CLAIMS_LIMIT,
)

logger = logging.getLogger(__name__)


class ClaimStage(str, Enum):
    NO_CONTACT = "no_contact"
    CHASED = "chased"
    LBA_REQUIRED = "lba_required"
    LBA_SENT_AWAITING_RESPONSE = "lba_sent_awaiting_response"
    COURT_READY = "court_ready"


STAGE_RANK: Dict[ClaimStage, int] = {s: i for i, s in enumerate(ClaimStage)}

STAGE_DOCUMENT: Dict[ClaimStage, DocumentType] = {
    ClaimStage.NO_CONTACT: DocumentType.POLITE_CHASER,
    ClaimStage.CHASED: DocumentType.LBA,
    ClaimStage.LBA_REQUIRED: DocumentType.LBA,
    ClaimStage.LBA_SENT_AWAITING_RESPONSE: DocumentType.LBA,
    ClaimStage.COURT_READY: DocumentType.FORM_N1,
}

STAGE_URGENCY: Dict[ClaimStage, int] = {
    ClaimStage.NO_CONTACT: 1,
    ClaimStage.CHASED: 2,
    ClaimStage.LBA_REQUIRED: 3,
    ClaimStage.LBA_SENT_AWAITING_RESPONSE: 3,
    ClaimStage.COURT_READY: 4,
}

# Lowest stage at which each document is procedurally appropriate
DOCUMENT_MIN_STAGE: Dict[DocumentType, ClaimStage] = {
    DocumentType.POLITE_CHASER: ClaimStage.NO_CONTACT,
    DocumentType.LBA: ClaimStage.NO_CONTACT,
    DocumentType.FORM_N1: ClaimStage.COURT_READY,
}

CHASE_EVENTS = (TimelineEventType.CHASER, TimelineEventType.PAYMENT_REMINDER)


@dataclass
class Alternative:
    document: DocumentType
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"document": self.document.value, "reason": self.reason}


@dataclass
class Recommendation:
    stage: ClaimStage
    primary_document: DocumentType
    reason: str
    warnings: List[str] = field(default_factory=list)
    alternatives: List[Alternative] = field(default_factory=list)
    urgency: int = 1
    prerequisites_met: bool = True
    overridden: bool = False
    applied_document: Optional[DocumentType] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "primary_document": self.primary_document.value,
            "reason": self.reason,
            "warnings": list(self.warnings),
            "alternatives": [a.to_dict() for a in self.alternatives],
            "urgency": self.urgency,
            "prerequisites_met": self.prerequisites_met,
            "overridden": self.overridden,
            "applied_document": self.applied_document.value if self.applied_document else None,
        }


class DocumentRecommender:
    """
    Select the next document for a claim.

    Input: ClaimState (+ optional InterestResult for value warnings)
    Output: Recommendation

    Decision table, first match wins:
        LBA sent and response window elapsed -> COURT_READY     -> Form N1
        LBA sent, window running             -> AWAITING         -> LBA
        overdue by more than 14 days         -> LBA_REQUIRED     -> LBA
        any chaser or payment reminder       -> CHASED           -> LBA
        otherwise                            -> NO_CONTACT       -> Polite chaser
    """

    def recommend(
        self,
        claim: ClaimState,
        as_of: date,
        interest: Optional[InterestResult] = None,
    ) -> Recommendation:
        warnings: List[str] = []
        alternatives: List[Alternative] = []

        days_overdue, due = self._days_overdue(claim, as_of, warnings)
        stage, reason = self._classify(claim, as_of, days_overdue, warnings)
        primary = STAGE_DOCUMENT[stage]

        # Stage-specific alternatives
        if stage is ClaimStage.NO_CONTACT:
            alternatives.append(Alternative(
                DocumentType.LBA,
                "Skip straight to a formal Letter Before Action if the debt is already significantly overdue.",
            ))
        elif stage is ClaimStage.CHASED:
            alternatives.append(Alternative(
                DocumentType.POLITE_CHASER,
                "A further polite reminder keeps the relationship if the debtor has promised to pay.",
            ))

        if claim.first_event(TimelineEventType.PART_PAYMENT) is not None:
            warnings.append(
                "Partial payments show willingness to pay - consider agreeing an installment plan before escalating."
            )

        if interest is not None and interest.total_claim > SMALL_CLAIMS_LIMIT:
            warnings.append(
                f"Your claim amount (£{interest.total_claim:,.2f}) exceeds the small claims limit. "
                "Legal representation is recommended."
            )

        prerequisites_met = self._check_prerequisites(claim, warnings)

        urgency = STAGE_URGENCY[stage]
        if stage is ClaimStage.NO_CONTACT and days_overdue is not None and days_overdue > 0:
            urgency = 2
        if due is not None:
            limitation = due + relativedelta(years=LIMITATION_PERIOD_YEARS)
            if as_of <= limitation <= as_of + timedelta(days=180):
                urgency = 5
                warnings.append(
                    f"The limitation period expires on {limitation.isoformat()}. Issue the claim before then."
                )

        recommendation = Recommendation(
            stage=stage,
            primary_document=primary,
            reason=reason,
            warnings=warnings,
            alternatives=alternatives,
            urgency=urgency,
            prerequisites_met=prerequisites_met,
            applied_document=primary,
        )

        if claim.user_selected_doc_type and claim.selected_document_type is not None:
            self._apply_override(claim, recommendation)

        logger.info(
            f"Recommendation for {claim.claim_id}: stage={stage.value} primary={primary.value} "
            f"applied={recommendation.applied_document.value} warnings={len(warnings)}"
        )
        return recommendation

    # -------------------------------------------------------------------------
    # Stage classification
    # -------------------------------------------------------------------------

    def _days_overdue(self, claim: ClaimState, as_of: date, warnings: List[str]):
        invoice = claim.invoice
        if invoice.date_issued is None and invoice.due_date is None:
            warnings.append("Invoice dates are missing - overdue status cannot be assessed.")
            return None, None
        try:
            due = resolve_effective_due_date(invoice.date_issued, invoice.due_date, invoice.payment_terms)
        except ValidationError as e:
            warnings.append(f"{e.message} - overdue status cannot be assessed.")
            return None, None
        return (as_of - due).days, due

    def _classify(
        self,
        claim: ClaimState,
        as_of: date,
        days_overdue: Optional[int],
        warnings: List[str],
    ):
        if claim.lba_sent:
            lba_date = claim.effective_lba_date()
            defendant_type = claim.defendant.type

            if lba_date is None:
                warnings.append("The date the Letter Before Action was sent is not recorded.")
            elif defendant_type is None:
                warnings.append("Set the defendant type to determine the LBA response period.")
            else:
                window = LBA_RESPONSE_DAYS[defendant_type]
                expiry = lba_date + timedelta(days=window)
                if as_of > expiry:
                    return (
                        ClaimStage.COURT_READY,
                        "The Letter Before Action response period has expired. "
                        "You can now file a claim at court using Form N1.",
                    )
                warnings.append(
                    f"The {window}-day response period has not yet elapsed (ends {expiry.isoformat()}). "
                    "Filing at court before this period expires may result in cost penalties."
                )

            return (
                ClaimStage.LBA_SENT_AWAITING_RESPONSE,
                "The Letter Before Action has been sent. Wait for the response period to end before proceeding to court.",
            )

        if days_overdue is not None and days_overdue > LBA_REQUIRED_AFTER_DAYS_OVERDUE:
            return (
                ClaimStage.LBA_REQUIRED,
                f"The invoice is {days_overdue} days overdue. A formal Letter Before Action "
                "is the required pre-court step.",
            )

        if claim.events_of(*CHASE_EVENTS):
            return (
                ClaimStage.CHASED,
                "Previous reminders have not resulted in payment. "
                "A formal Letter Before Action is the required pre-court step.",
            )

        return (
            ClaimStage.NO_CONTACT,
            "Start with a polite reminder to give the debtor an opportunity to pay before escalating.",
        )

    def _check_prerequisites(self, claim: ClaimState, warnings: List[str]) -> bool:
        met = True
        if not claim.timeline:
            warnings.append("Add timeline events (invoice, reminders) to evidence the claim.")
            met = False
        if not claim.interest_confirmed:
            warnings.append("Confirm the statutory interest rate before generating documents.")
            met = False
        return met

    def _apply_override(self, claim: ClaimState, rec: Recommendation) -> None:
        chosen = claim.selected_document_type
        rec.overridden = True
        rec.applied_document = chosen

        if chosen is rec.primary_document:
            return

        if chosen is DocumentType.FORM_N1:
            if not claim.lba_sent:
                rec.warnings.append(
                    "LBA not yet sent. The Pre-Action Protocol requires a Letter Before Action before issuing a claim."
                )
            elif STAGE_RANK[rec.stage] < STAGE_RANK[DOCUMENT_MIN_STAGE[chosen]]:
                rec.warnings.append(
                    "The LBA response period has not ended. Issuing now may result in cost penalties."
                )
        elif STAGE_RANK[rec.stage] > STAGE_RANK[ClaimStage.CHASED] and chosen is DocumentType.POLITE_CHASER:
            rec.warnings.append(
                f"The claim is at the {rec.stage.value.replace('_', ' ')} stage; "
                f"a {chosen.value} is a step back from the recommended {rec.primary_document.value}."
            )
        else:
            rec.warnings.append(
                f"You selected {chosen.value}; the recommended document is {rec.primary_document.value}."
            )


def recommend_document(
    claim: ClaimState,
    as_of: date,
    interest: Optional[InterestResult] = None,
) -> Recommendation:
    """Convenience function to recommend the next document."""
    return DocumentRecommender().recommend(claim, as_of, interest)
