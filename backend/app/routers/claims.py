"""
ClaimCraft Engine - Claims API Router

Stateless endpoints over a claim snapshot supplied in the request body:
interest, timeline checks, viability, recommendation, documents and Form N1.
The router only converts payloads and maps engine errors to HTTP; every rule
lives in the services.
"""
from __future__ import annotations
import base64
import binascii
import datetime
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.claim import (
    ClaimState, DocumentType, Invoice, Party, PartyType, PaymentTerms, TimelineEvent,
)
from ..services.deadlines import DeadlineNotFoundError, SqlDeadlineStore
from ..services.forms import LetterRenderer, N1FormFiller
from ..services.legal import (
    ClaimEngineError,
    GenerationInProgressError,
    InterestRates,
    TemplateMismatchError,
    ValidationError,
    assess_viability,
    check_timeline_order,
    interest_for_claim,
    normalize_event_type,
    timeline_completeness,
)
from ..services.letter_generation import DocumentGenerator
from ..services.strategy import DocumentRecommender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])

# Cache of generated documents shared across requests
document_generator = DocumentGenerator()


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class PartyPayload(BaseModel):
    name: str = ""
    type: Optional[PartyType] = None
    address_line: str = ""
    city: str = ""
    county: str = ""
    postcode: str = ""
    company_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class InvoicePayload(BaseModel):
    amount: Decimal = Decimal("0")
    date_issued: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    payment_terms: Optional[PaymentTerms] = None
    invoice_number: str = ""
    currency: str = "GBP"
    description: str = ""


class TimelineEventPayload(BaseModel):
    date: datetime.date
    type: str  # free text, normalised onto the event types
    description: str = ""


class ClaimPayload(BaseModel):
    claim_id: str
    claimant: PartyPayload = PartyPayload()
    defendant: PartyPayload = PartyPayload()
    invoice: InvoicePayload = InvoicePayload()
    timeline: List[TimelineEventPayload] = []
    selected_document_type: Optional[DocumentType] = None
    user_selected_doc_type: bool = False
    lba_already_sent: bool = False
    lba_sent_date: Optional[datetime.date] = None
    interest_confirmed: bool = False
    claim_served_date: Optional[datetime.date] = None
    acknowledgment_date: Optional[datetime.date] = None
    judgment_date: Optional[datetime.date] = None
    user_notes: str = ""
    signature_png_base64: Optional[str] = None


class ClaimRequest(BaseModel):
    claim: ClaimPayload
    as_of: Optional[datetime.date] = None
    base_rate: Optional[Decimal] = None  # overrides BOE_BASE_RATE


class DocumentRequest(ClaimRequest):
    document_type: Optional[DocumentType] = None


class TimelineCheckRequest(BaseModel):
    events: List[TimelineEventPayload]


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

ERROR_STATUS = (
    (GenerationInProgressError, 409),
    (TemplateMismatchError, 500),
    (DeadlineNotFoundError, 404),
)


def engine_error(e: ClaimEngineError) -> HTTPException:
    """Map an engine error onto an HTTP error carrying its kind and fields."""
    status = next((code for cls, code in ERROR_STATUS if isinstance(e, cls)), 422)
    logger.info(f"{e.kind} -> {status}: {e.message}")
    return HTTPException(status_code=status, detail=e.to_dict())


def to_party(payload: PartyPayload) -> Party:
    return Party(
        name=payload.name,
        type=payload.type,
        address_line=payload.address_line,
        city=payload.city,
        county=payload.county,
        postcode=payload.postcode,
        company_number=payload.company_number,
        email=payload.email,
        phone=payload.phone,
    )


def to_events(payloads: List[TimelineEventPayload]) -> tuple:
    return tuple(
        TimelineEvent(date=e.date, type=normalize_event_type(e.type), description=e.description)
        for e in payloads
    )


def to_claim_state(payload: ClaimPayload) -> ClaimState:
    """Convert the request body into the engine's immutable snapshot."""
    signature = None
    if payload.signature_png_base64:
        try:
            signature = base64.b64decode(payload.signature_png_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError("Signature is not valid base64", fields=["signature_png_base64"]) from e

    invoice = payload.invoice
    return ClaimState(
        claim_id=payload.claim_id,
        claimant=to_party(payload.claimant),
        defendant=to_party(payload.defendant),
        invoice=Invoice(
            amount=invoice.amount,
            date_issued=invoice.date_issued,
            due_date=invoice.due_date,
            payment_terms=invoice.payment_terms,
            invoice_number=invoice.invoice_number,
            currency=invoice.currency,
            description=invoice.description,
        ),
        timeline=to_events(payload.timeline),
        selected_document_type=payload.selected_document_type,
        user_selected_doc_type=payload.user_selected_doc_type,
        lba_already_sent=payload.lba_already_sent,
        lba_sent_date=payload.lba_sent_date,
        interest_confirmed=payload.interest_confirmed,
        claim_served_date=payload.claim_served_date,
        acknowledgment_date=payload.acknowledgment_date,
        judgment_date=payload.judgment_date,
        user_notes=payload.user_notes,
        signature_png=signature,
    )


def rates_for(request: ClaimRequest) -> InterestRates:
    if request.base_rate is not None:
        return InterestRates(reference_base_rate=request.base_rate)
    return InterestRates.from_env()


def as_of_for(request: ClaimRequest) -> datetime.date:
    return request.as_of or datetime.date.today()


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/interest")
async def calculate_claim_interest(request: ClaimRequest) -> Dict[str, Any]:
    """Statutory interest and compensation as of the request date."""
    try:
        claim = to_claim_state(request.claim)
        interest = interest_for_claim(claim, as_of_for(request), rates_for(request))
    except ClaimEngineError as e:
        raise engine_error(e)
    return interest.to_dict()


@router.post("/timeline/check")
async def check_timeline(request: TimelineCheckRequest) -> Dict[str, Any]:
    """Advisory ordering warning and completeness report for a timeline."""
    events = to_events(request.events)
    return {
        "warning": check_timeline_order(events),
        "completeness": timeline_completeness(events),
        "events": [
            {"date": e.date.isoformat(), "type": e.type.value, "description": e.description}
            for e in events
        ],
    }


@router.post("/viability")
async def claim_viability(request: ClaimRequest) -> Dict[str, Any]:
    try:
        claim = to_claim_state(request.claim)
        as_of = as_of_for(request)
        interest = interest_for_claim(claim, as_of, rates_for(request))
        assessment = assess_viability(claim, interest, as_of)
    except ClaimEngineError as e:
        raise engine_error(e)
    return {"interest": interest.to_dict(), **assessment.to_dict()}


@router.post("/recommendation")
async def recommend_next_document(request: ClaimRequest) -> Dict[str, Any]:
    """
    Recommend the next document.

    Interest is included when the party types allow it; the recommendation
    itself does not need it.
    """
    try:
        claim = to_claim_state(request.claim)
    except ClaimEngineError as e:
        raise engine_error(e)

    as_of = as_of_for(request)
    interest = None
    if claim.claimant.type is not None and claim.defendant.type is not None:
        try:
            interest = interest_for_claim(claim, as_of, rates_for(request))
        except ValidationError as e:
            logger.info(f"Recommendation for {claim.claim_id} without interest: {e.message}")

    recommendation = DocumentRecommender().recommend(claim, as_of, interest)
    return recommendation.to_dict()


@router.post("/documents")
def generate_document(request: DocumentRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Generate (or return the cached) document for the claim."""
    try:
        claim = to_claim_state(request.claim)
        interest = interest_for_claim(claim, as_of_for(request), rates_for(request))
        deadlines = SqlDeadlineStore(db).list_for_claim(claim.claim_id)
        document = document_generator.generate(claim, interest, deadlines, request.document_type)
    except ClaimEngineError as e:
        raise engine_error(e)
    return document.to_dict()


@router.post("/form-n1")
def fill_form_n1(request: ClaimRequest, db: Session = Depends(get_db)) -> Response:
    """Completed Form N1 as a PDF download."""
    try:
        claim = to_claim_state(request.claim)
        as_of = as_of_for(request)
        interest = interest_for_claim(claim, as_of, rates_for(request))
        deadlines = SqlDeadlineStore(db).list_for_claim(claim.claim_id)
        document = document_generator.generate(claim, interest, deadlines, DocumentType.FORM_N1)
        pdf = N1FormFiller().fill(claim, interest, document, signed_on=as_of)
    except ClaimEngineError as e:
        raise engine_error(e)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="N1-{claim.claim_id}.pdf"'},
    )


@router.post("/letter-pdf")
def letter_pdf(request: DocumentRequest, db: Session = Depends(get_db)) -> Response:
    """Payment reminder or Letter Before Action as a PDF download."""
    try:
        claim = to_claim_state(request.claim)
        interest = interest_for_claim(claim, as_of_for(request), rates_for(request))
        deadlines = SqlDeadlineStore(db).list_for_claim(claim.claim_id)
        document = document_generator.generate(claim, interest, deadlines, request.document_type)
        pdf = LetterRenderer().render(document, claim)
    except ClaimEngineError as e:
        raise engine_error(e)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition":
                f'attachment; filename="{document.document_type.name}-{claim.claim_id}.pdf"',
        },
    )
