"""
Document Content Builder

Assembles a GeneratedDocument from a claim snapshot, its interest figures and
its deadlines. Sections are built from the fixed templates; the builder only
chooses which sections apply and fills their fields.

Assembly order per document type:
    Polite chaser:  header, salutation, particulars, amounts, closing
    LBA:            header, salutation, particulars, chronology, amounts,
                    demand, closing, disclaimer
    Form N1:        brief_details, particulars, amounts, statement_of_truth,
                    disclaimer
"""
import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from app.models.claim import (
    ClaimState, Deadline, DeadlineType, DocumentSection, DocumentType,
    GeneratedDocument, InterestResult, PartyType, RateBasis, TimelineEventType,
)
from app.services.legal.errors import IncompleteDataError, ValidationError
from app.services.legal.statutes import LBA_RESPONSE_DAYS, STATEMENT_OF_TRUTH
from app.services.legal.viability import calculate_court_fee

from .formatting import format_date, format_money, format_rate
from . import templates as T


UNFILLED_PLACEHOLDER = re.compile(r"\[([A-Z_]+)\]|\{[a-z_]+\}")

HEDGING_WORDS = ("allegedly", "may have", "possibly", "might", "perhaps", "probably")

# Case names and neutral or law-report citations
CASE_CITATION_PATTERNS = (
    re.compile(r"\b[A-Z][a-z]+ v\.? [A-Z][a-z]+\b"),     # Smith v Jones
    re.compile(r"\[\d{4}\]\s+[A-Z]{2,}"),                 # [2023] EWCA
    re.compile(r"\(\d{4}\)\s+[A-Z]{2,}"),                 # (2023) QB
    re.compile(r"\bEWCA Civ\s+\d+", re.IGNORECASE),
    re.compile(r"\bUKSC\s+\d+", re.IGNORECASE),
    re.compile(r"\b\d+\s+[A-Z]{2,}\s+\d+\b"),            # 2 AC 123
)

REQUIRED_ACT: Dict[RateBasis, str] = {
    RateBasis.B2B: "Late Payment of Commercial Debts",
    RateBasis.B2C: "County Courts Act 1984",
}

EVENT_LABELS: Dict[TimelineEventType, str] = {
    TimelineEventType.CONTRACT: "Contract agreed",
    TimelineEventType.SERVICE_DELIVERED: "Goods or services delivered",
    TimelineEventType.INVOICE: "Invoice issued",
    TimelineEventType.PAYMENT_DUE: "Payment due",
    TimelineEventType.PART_PAYMENT: "Part payment received",
    TimelineEventType.PAYMENT_REMINDER: "Payment reminder sent",
    TimelineEventType.CHASER: "Chaser sent",
    TimelineEventType.PROMISE_TO_PAY: "Promise to pay",
    TimelineEventType.LBA_SENT: "Letter Before Action sent",
    TimelineEventType.ACKNOWLEDGMENT: "Acknowledgment received",
    TimelineEventType.COMMUNICATION: "Communication",
}


# =============================================================================
# PREREQUISITES
# =============================================================================

def require_generation_inputs(claim: ClaimState) -> None:
    """Both party names and a positive amount, or IncompleteDataError naming what is missing."""
    missing: List[str] = []
    if not claim.claimant.name.strip():
        missing.append("claimant.name")
    if not claim.defendant.name.strip():
        missing.append("defendant.name")
    if claim.invoice.amount is None or claim.invoice.amount <= 0:
        missing.append("invoice.amount")
    if missing:
        raise IncompleteDataError(
            f"Cannot generate document, missing: {', '.join(missing)}",
            fields=missing,
        )


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _invoice_reference(claim: ClaimState) -> str:
    number = claim.invoice.invoice_number.strip()
    return f"invoice {number}" if number else "the invoice"


def _addressee(claim: ClaimState) -> str:
    if claim.defendant.type is PartyType.INDIVIDUAL:
        return claim.defendant.name
    return "Sir/Madam"


def _sign_off(claim: ClaimState) -> str:
    return "Yours sincerely" if claim.defendant.type is PartyType.INDIVIDUAL else "Yours faithfully"


def _party_description(party) -> str:
    if party.type is PartyType.COMPANY:
        text = f"{party.name}, a company"
        if party.company_number:
            text += f" (company number {party.company_number})"
    else:
        text = f"{party.name}, an individual"
    address = party.formatted_address(", ")
    if address:
        text += f", of {address}"
    return text


def _event_lines(claim: ClaimState, numbered: bool) -> str:
    events = sorted(claim.timeline, key=lambda e: e.date)
    lines = []
    for i, event in enumerate(events, start=1):
        label = event.description.strip() or EVENT_LABELS[event.type]
        prefix = f"   ({i}) " if numbered else "- "
        lines.append(f"{prefix}{format_date(event.date)}: {label}")
    if not lines:
        invoice = claim.invoice
        if invoice.date_issued is not None:
            prefix = "   (1) " if numbered else "- "
            lines.append(f"{prefix}{format_date(invoice.date_issued)}: {EVENT_LABELS[TimelineEventType.INVOICE]}")
    return "\n".join(lines)


def _amount_fields(interest: InterestResult) -> Dict[str, str]:
    compensation_line = ""
    if interest.compensation > 0:
        compensation_line = T.COMPENSATION_LINE_TEMPLATE.format(
            compensation=format_money(interest.compensation)
        ) + "\n"
    return {
        "principal": format_money(interest.principal),
        "interest": format_money(interest.total_interest),
        "total": format_money(interest.total_claim),
        "daily": format_money(interest.daily_interest),
        "rate": format_rate(interest.annual_rate_percent),
        "legislation": interest.legislation,
        "interest_start": format_date(interest.effective_due_date + timedelta(days=1)),
        "as_of": format_date(interest.as_of_date),
        "compensation_line": compensation_line,
    }


def _interest_line(fields: Dict[str, str]) -> str:
    return T.INTEREST_LINE_TEMPLATE.format(**fields)


def _header(claim: ClaimState, letter_date: date) -> DocumentSection:
    return DocumentSection("header", T.HEADER_TEMPLATE.format(
        claimant_name=claim.claimant.name,
        claimant_address=claim.claimant.formatted_address(),
        letter_date=format_date(letter_date),
        defendant_name=claim.defendant.name,
        defendant_address=claim.defendant.formatted_address(),
    ).replace("\n\n\n", "\n\n"))


def _lba_expiry(claim: ClaimState, deadlines: Sequence[Deadline]) -> Optional[date]:
    for d in deadlines:
        if d.type == DeadlineType.LBA_RESPONSE_EXPIRY and d.is_active:
            return d.due_date
    lba_date = claim.effective_lba_date()
    if lba_date is not None and claim.defendant.type is not None:
        return lba_date + timedelta(days=LBA_RESPONSE_DAYS[claim.defendant.type])
    return None


# =============================================================================
# DOCUMENT BUILDERS
# =============================================================================

def _build_chaser(claim: ClaimState, interest: InterestResult, letter_date: date) -> List[DocumentSection]:
    amounts = _amount_fields(interest)
    due_fields = {
        "due_date": format_date(interest.effective_due_date),
        "days_overdue": interest.days_overdue,
    }
    due_clause = (
        T.CHASER_DUE_OVERDUE if interest.days_overdue > 0 else T.CHASER_DUE_CURRENT
    ).format(**due_fields)

    return [
        _header(claim, letter_date),
        DocumentSection("salutation", T.SALUTATION_TEMPLATE.format(addressee=_addressee(claim))),
        DocumentSection("particulars", T.CHASER_PARTICULARS_TEMPLATE.format(
            invoice_reference=_invoice_reference(claim),
            invoice_date=format_date(claim.invoice.date_issued or interest.effective_due_date),
            principal=amounts["principal"],
            due_clause=due_clause,
        )),
        DocumentSection("amounts", T.CHASER_AMOUNTS_TEMPLATE.format(
            principal=amounts["principal"],
            interest_line=_interest_line(amounts),
            compensation_line=amounts["compensation_line"],
            total=amounts["total"],
            daily_line=T.DAILY_INTEREST_TEMPLATE.format(daily=amounts["daily"]),
        )),
        DocumentSection("closing", T.CHASER_CLOSING_TEMPLATE.format(
            total=amounts["total"],
            sign_off=_sign_off(claim),
            claimant_name=claim.claimant.name,
        )),
    ]


def _build_lba(claim: ClaimState, interest: InterestResult, letter_date: date) -> List[DocumentSection]:
    defendant_type = claim.defendant.type
    if defendant_type is None:
        raise IncompleteDataError(
            "Defendant type is required to state the response period",
            fields=["defendant.type"],
        )
    response_days = LBA_RESPONSE_DAYS[defendant_type]
    amounts = _amount_fields(interest)
    invoice_date = format_date(claim.invoice.date_issued or interest.effective_due_date)

    demand = T.LBA_DEMAND_TEMPLATE.format(
        response_days=response_days,
        response_deadline=format_date(letter_date + timedelta(days=response_days)),
    )
    if defendant_type is PartyType.INDIVIDUAL:
        demand += "\n\n" + T.LBA_PROTOCOL_ANNEX

    return [
        _header(claim, letter_date),
        DocumentSection("salutation", T.SALUTATION_TEMPLATE.format(addressee=_addressee(claim))),
        DocumentSection("particulars", T.LBA_PARTICULARS_TEMPLATE.format(
            total=amounts["total"],
            claimant_name=claim.claimant.name,
            invoice_reference=_invoice_reference(claim),
            invoice_date=invoice_date,
            principal=amounts["principal"],
            due_date=format_date(interest.effective_due_date),
        )),
        DocumentSection("chronology", T.LBA_CHRONOLOGY_TEMPLATE.format(
            events=_event_lines(claim, numbered=False),
        )),
        DocumentSection("amounts", T.LBA_AMOUNTS_TEMPLATE.format(
            invoice_number=claim.invoice.invoice_number or "N/A",
            invoice_date=invoice_date,
            principal=amounts["principal"],
            interest_line=_interest_line(amounts),
            compensation_line=amounts["compensation_line"],
            total=amounts["total"],
            daily_line=T.DAILY_INTEREST_TEMPLATE.format(daily=amounts["daily"]),
        )),
        DocumentSection("demand", demand),
        DocumentSection("closing", T.LBA_CLOSING_TEMPLATE.format(
            sign_off=_sign_off(claim),
            claimant_name=claim.claimant.name,
        )),
        DocumentSection("disclaimer", T.LBA_DISCLAIMER),
    ]


def _build_n1(
    claim: ClaimState,
    interest: InterestResult,
    deadlines: Sequence[Deadline],
) -> List[DocumentSection]:
    claimant_type = claim.claimant.type
    if claimant_type is None:
        raise IncompleteDataError(
            "Claimant type is required to select the Statement of Truth wording",
            fields=["claimant.type"],
        )
    amounts = _amount_fields(interest)
    invoice = claim.invoice

    contract = claim.first_event(TimelineEventType.CONTRACT)
    if contract is not None and contract.description.strip():
        contract_description = f"On {format_date(contract.date)} the parties agreed: {contract.description.strip().rstrip('.')}."
    elif contract is not None:
        contract_description = f"On {format_date(contract.date)} the parties entered into an agreement for the supply of goods or services."
    else:
        subject = invoice.description.strip() or "goods or services"
        contract_description = f"The Claimant agreed to supply {subject} to the Defendant."

    if invoice.due_date is not None or invoice.payment_terms is None:
        payment_due = f"on {format_date(interest.effective_due_date)}"
    else:
        payment_due = f"on {format_date(interest.effective_due_date)} under the agreed payment terms"

    requests = len(claim.events_of(TimelineEventType.CHASER, TimelineEventType.PAYMENT_REMINDER))
    breach = []
    if requests:
        breach.append(f"The Claimant requested payment on {requests} occasion{'s' if requests != 1 else ''}.")
    lba_date = claim.effective_lba_date()
    if lba_date is not None:
        text = f"A Letter Before Action was sent on {format_date(lba_date)}"
        expiry = _lba_expiry(claim, deadlines)
        if expiry is not None:
            text += f" and the period for a response ended on {format_date(expiry)}"
        breach.append(text + ".")
    breach.append("The sum remains outstanding.")

    compensation_clause = (
        f"fixed compensation of {format_money(interest.compensation)} pursuant to "
        "the Late Payment of Commercial Debts (Interest) Act 1998"
        if interest.compensation > 0 else "no compensation is claimed"
    )

    total_claim = interest.total_claim
    court_fee = calculate_court_fee(total_claim)
    legal_costs = Decimal("0.00")

    return [
        DocumentSection("brief_details", brief_details(claim)),
        DocumentSection("particulars", T.N1_PARTICULARS_TEMPLATE.format(
            claimant_description=_party_description(claim.claimant),
            defendant_description=_party_description(claim.defendant),
            contract_description=contract_description,
            invoice_reference=_invoice_reference(claim),
            invoice_date=format_date(invoice.date_issued or interest.effective_due_date),
            payment_due_description=payment_due,
            breach_details=" ".join(breach),
            events=_event_lines(claim, numbered=True),
            compensation_clause=compensation_clause,
            **{k: v for k, v in amounts.items() if k != "compensation_line"},
        )),
        DocumentSection("amounts", T.N1_AMOUNTS_TEMPLATE.format(
            total=format_money(total_claim),
            court_fee=format_money(court_fee),
            legal_costs=format_money(legal_costs),
            total_with_fees=format_money(total_claim + court_fee + legal_costs),
        )),
        DocumentSection("statement_of_truth", STATEMENT_OF_TRUTH[claimant_type]),
        DocumentSection("disclaimer", T.N1_DISCLAIMER),
    ]


def build_document(
    claim: ClaimState,
    interest: InterestResult,
    deadlines: Sequence[Deadline],
    document_type: DocumentType,
    generated_at: datetime,
    dependency_key: str = "",
) -> GeneratedDocument:
    """
    Assemble the named sections of one document.

    Raises:
        IncompleteDataError: a party name, the amount, or a party type the
            document needs is missing
    """
    require_generation_inputs(claim)
    letter_date = generated_at.date()

    if document_type is DocumentType.POLITE_CHASER:
        sections = _build_chaser(claim, interest, letter_date)
    elif document_type is DocumentType.LBA:
        sections = _build_lba(claim, interest, letter_date)
    elif document_type is DocumentType.FORM_N1:
        sections = _build_n1(claim, interest, deadlines)
    else:
        raise ValueError(f"Unhandled document type: {document_type}")

    return GeneratedDocument(
        document_type=document_type,
        sections=tuple(sections),
        generated_at=generated_at,
        dependency_key=dependency_key,
    )


# =============================================================================
# BRIEF DETAILS & VALIDATION
# =============================================================================

def brief_details(claim: ClaimState) -> str:
    """Front-page summary for Form N1, at most 24 words."""
    text = T.BRIEF_DETAILS_TEMPLATE.format(
        invoice_reference=_invoice_reference(claim).replace("the invoice", "invoice"),
        description=claim.invoice.description.strip() or "goods/services",
        defendant_name=claim.defendant.name,
    )
    words = text.split()
    if len(words) > T.BRIEF_DETAILS_MAX_WORDS:
        return " ".join(words[:T.BRIEF_DETAILS_MAX_WORDS]) + "..."
    return text


def _case_citations(content: str, claim: ClaimState) -> List[str]:
    """Citation-like matches that do not mention either party."""
    party_words = set()
    for name in (claim.claimant.name, claim.defendant.name):
        words = name.split()
        if words:
            party_words.update((words[0], words[-1]))

    found: List[str] = []
    for pattern in CASE_CITATION_PATTERNS:
        for match in pattern.finditer(content):
            text = match.group(0)
            if any(word in text for word in party_words) or text in found:
                continue
            found.append(text)
    return found


def validate_document(content: str, claim: ClaimState, interest: InterestResult) -> None:
    """
    Check generated text before it reaches the user.

    Raises ValidationError listing every problem found.
    """
    errors: List[str] = []

    placeholders = sorted({m.group(0) for m in UNFILLED_PLACEHOLDER.finditer(content)})
    if placeholders:
        errors.append(f"Document contains unfilled placeholders: {', '.join(placeholders)}")

    total = format_money(interest.total_claim)
    if total not in content:
        errors.append(f"Total claim amount {total} is missing from the document")

    principal = format_money(interest.principal)
    if principal not in content:
        errors.append(f"Principal amount {principal} is missing")

    act = REQUIRED_ACT[interest.rate_basis]
    if act not in content:
        errors.append(f"Missing required interest legislation citation: {act}")

    lowered = content.lower()
    hedging = [w for w in HEDGING_WORDS if re.search(rf"\b{re.escape(w)}\b", lowered)]
    if hedging:
        errors.append(f"Uncertain language detected: {', '.join(hedging)}")

    if claim.claimant.name and claim.claimant.name not in content:
        errors.append("Claimant name missing from document")
    if claim.defendant.name and claim.defendant.name not in content:
        errors.append("Defendant name missing from document")

    citations = _case_citations(content, claim)
    if citations:
        errors.append(f"Case law citations are not permitted in generated documents: {', '.join(citations)}")

    if errors:
        raise ValidationError("; ".join(errors), fields=["content"])
