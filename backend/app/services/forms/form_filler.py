"""
Form N1 Filler

Overlays claim data onto the official N1 template with PyMuPDF. Interactive
form widgets are never touched: every value is drawn as page text at the
calibrated coordinates in n1_layout.

No partial output. The template is verified before anything is drawn, the
document is serialised only after every field has been written, and
fill_to_path touches the filesystem only on success.
"""
import logging
import os
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from app.models.claim import (
    ClaimState, DocumentType, GeneratedDocument, InterestResult, PartyType,
)
from app.services.legal.errors import (
    IncompleteDataError, TemplateMismatchError, ValidationError,
)
from app.services.legal.statutes import STATEMENT_OF_TRUTH
from app.services.legal.viability import calculate_court_fee
from app.services.letter_generation.formatting import format_money, format_money_for_form

from .n1_layout import (
    CONTINUATION_FONT_SIZE, CONTINUATION_LINE_HEIGHT, CONTINUATION_MARGIN,
    CONTINUATION_NOTICE, N1_CHECKBOXES, N1_IMAGES, N1_TEMPLATE_PATH,
    N1_TEXT_FIELDS, PINNED_N1_TEMPLATE, FieldSpec, TemplateSpec,
)

logger = logging.getLogger(__name__)

REGULAR_FONT = "helv"
BOLD_FONT = "hebo"
BLACK = (0, 0, 0)

COURT_NAME = "County Court Business Centre"
COMPANY_SIGNER_ROLE = "Director / Authorised Signatory"


# =============================================================================
# TEXT LAYOUT
# =============================================================================

def text_width(text: str, font_size: float, bold: bool = False) -> float:
    return fitz.get_text_length(text, fontname=BOLD_FONT if bold else REGULAR_FONT, fontsize=font_size)


def wrap_text(text: str, max_width: float, font_size: float, bold: bool = False) -> List[str]:
    """
    Greedy word wrap. Explicit newlines are kept; blank lines survive as "".
    A single word wider than the box is broken by character.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        indent = paragraph[:len(paragraph) - len(paragraph.lstrip(" "))]
        words = paragraph.split()
        if not words:
            lines.append("")
            continue

        current = indent
        for word in words:
            candidate = f"{current} {word}" if current.strip() else f"{current}{word}"
            if text_width(candidate, font_size, bold) <= max_width:
                current = candidate
                continue
            if current.strip():
                lines.append(current)
            current = indent + word
            while text_width(current, font_size, bold) > max_width and len(current) > 1:
                cut = len(current) - 1
                while cut > 1 and text_width(current[:cut], font_size, bold) > max_width:
                    cut -= 1
                lines.append(current[:cut])
                current = current[cut:]
        lines.append(current)
    return lines


def _line_height(spec: FieldSpec) -> float:
    return spec.line_height or spec.font_size * 1.2


def fits_box(spec: FieldSpec, text: str) -> bool:
    if spec.max_width is None or spec.box_height is None:
        return True
    lines = wrap_text(text, spec.max_width, spec.font_size, spec.bold)
    return len(lines) * _line_height(spec) <= spec.box_height


# =============================================================================
# FIELD VALUES
# =============================================================================

def n1_field_values(
    claim: ClaimState,
    interest: InterestResult,
    document: GeneratedDocument,
    signed_on: date,
) -> Dict[str, str]:
    """Map claim data onto N1 field names. Empty values are left out."""
    if document.document_type is not DocumentType.FORM_N1:
        raise ValidationError(
            f"Form N1 needs Form N1 content, got {document.document_type.value}",
            fields=["document_type"],
        )
    if claim.claimant.type is None:
        raise IncompleteDataError(
            "Claimant type is required to select the Statement of Truth wording",
            fields=["claimant.type"],
        )

    claimant = claim.claimant
    defendant = claim.defendant

    amount_claimed = interest.total_claim
    court_fee = calculate_court_fee(amount_claimed)
    legal_costs = Decimal("0.00")
    total = amount_claimed + court_fee + legal_costs

    brief = document.section("brief_details")
    particulars = document.section("particulars")

    building, _, street = claimant.address_line.partition(",")

    values = {
        "court_name": COURT_NAME,

        "claimant_name": claimant.name,
        "claimant_address": claimant.address_line,
        "claimant_city": claimant.city,
        "claimant_county": claimant.county,
        "claimant_postcode": claimant.postcode,

        "defendant_name": defendant.name,
        "defendant_address": defendant.address_line,
        "defendant_city": defendant.city,
        "defendant_county": defendant.county,
        "defendant_postcode": defendant.postcode,

        "brief_details": brief.text if brief else "",
        "value_description": f"The claimant expects to recover {format_money(total)}",

        "service_name": defendant.name,
        "service_address": ", ".join(p for p in (defendant.address_line, defendant.city, defendant.county) if p),
        "service_postcode": defendant.postcode,

        "amount_claimed": format_money_for_form(amount_claimed),
        "court_fee": format_money_for_form(court_fee),
        "legal_costs": format_money_for_form(legal_costs),
        "total_amount": format_money_for_form(total),

        "hearing_centre": f"{claimant.city} County Court" if claimant.city else "",

        "particulars": particulars.text if particulars else "",

        "statement_of_truth": STATEMENT_OF_TRUTH[claimant.type],
        "date_day": f"{signed_on.day:02d}",
        "date_month": f"{signed_on.month:02d}",
        "date_year": str(signed_on.year),
        "signer_name": claimant.name,
        "signer_role": COMPANY_SIGNER_ROLE if claimant.type is PartyType.COMPANY else "",

        "service_building": building.strip(),
        "service_street": street.strip(),
        "service_city": claimant.city,
        "service_county": claimant.county,
        "service_postcode_spaced": "  ".join(claimant.postcode.replace(" ", "")),
        "service_phone": claimant.phone or "",
        "service_reference": claim.invoice.invoice_number,
        "service_email": claimant.email or "",
    }
    return {name: value for name, value in values.items() if value}


def n1_checkbox_values(claim: ClaimState) -> Dict[str, bool]:
    return {
        "vulnerable_no": True,
        "human_rights_no": True,
        "sot_individual": claim.claimant.type is PartyType.INDIVIDUAL,
        "sot_company": claim.claimant.type is PartyType.COMPANY,
        "signer_is_claimant": True,
    }


# =============================================================================
# FILLER
# =============================================================================

class N1FormFiller:
    """
    Fills the pinned N1 template.

    Input: ClaimState + InterestResult + Form N1 GeneratedDocument
    Output: PDF bytes
    """

    def __init__(self, template_path: Optional[str] = None, spec: TemplateSpec = PINNED_N1_TEMPLATE):
        self.template_path = template_path or N1_TEMPLATE_PATH
        self.spec = spec

    # -------------------------------------------------------------------------
    # Template
    # -------------------------------------------------------------------------

    def _open_template(self) -> "fitz.Document":
        if not os.path.isfile(self.template_path):
            raise TemplateMismatchError(
                f"Form template {self.spec.name} not found at {self.template_path}",
                fields=["template"],
            )
        try:
            return fitz.open(self.template_path)
        except (RuntimeError, ValueError) as e:
            raise TemplateMismatchError(
                f"Form template at {self.template_path} cannot be read: {e}",
                fields=["template"],
            ) from e

    def verify_template(self, doc: "fitz.Document") -> None:
        """Page count and every page's size must match the pinned template."""
        if doc.page_count != self.spec.page_count:
            raise TemplateMismatchError(
                f"Template has {doc.page_count} pages; {self.spec.name} has {self.spec.page_count}",
                fields=["template"],
            )
        for index, page in enumerate(doc):
            width, height = page.rect.width, page.rect.height
            if not self.spec.matches_size(width, height):
                raise TemplateMismatchError(
                    f"Template page {index + 1} is {width:.2f}x{height:.2f}pt; "
                    f"{self.spec.name} pages are {self.spec.page_width}x{self.spec.page_height}pt",
                    fields=["template"],
                )

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _draw_line(self, page, x: float, y_from_bottom: float, text: str, font_size: float, bold: bool) -> None:
        page.insert_text(
            fitz.Point(x, page.rect.height - y_from_bottom),
            text,
            fontname=BOLD_FONT if bold else REGULAR_FONT,
            fontsize=font_size,
            color=BLACK,
        )

    def _draw_field(self, page, spec: FieldSpec, text: str) -> None:
        if spec.max_width is None:
            x = spec.x
            if spec.align == "right":
                x -= text_width(text, spec.font_size, spec.bold)
            self._draw_line(page, x, spec.y, text, spec.font_size, spec.bold)
            return

        line_height = _line_height(spec)
        for i, line in enumerate(wrap_text(text, spec.max_width, spec.font_size, spec.bold)):
            if line:
                self._draw_line(page, spec.x, spec.y - i * line_height, line, spec.font_size, spec.bold)

    def _append_continuation(self, doc: "fitz.Document", text: str, title: str) -> int:
        width = self.spec.page_width - 2 * CONTINUATION_MARGIN
        lines = [title, ""] + wrap_text(text, width, CONTINUATION_FONT_SIZE)
        per_page = int((self.spec.page_height - 2 * CONTINUATION_MARGIN) // CONTINUATION_LINE_HEIGHT)

        pages = 0
        for start in range(0, len(lines), per_page):
            page = doc.new_page(width=self.spec.page_width, height=self.spec.page_height)
            pages += 1
            for i, line in enumerate(lines[start:start + per_page]):
                if line:
                    page.insert_text(
                        fitz.Point(CONTINUATION_MARGIN, CONTINUATION_MARGIN + (i + 1) * CONTINUATION_LINE_HEIGHT),
                        line,
                        fontname=REGULAR_FONT,
                        fontsize=CONTINUATION_FONT_SIZE,
                        color=BLACK,
                    )
        return pages

    def _draw_signature(self, doc: "fitz.Document", png: bytes) -> None:
        spec = N1_IMAGES["signature"]
        page = doc[spec.page]
        height = page.rect.height
        rect = fitz.Rect(spec.x, height - spec.y - spec.max_height, spec.x + spec.max_width, height - spec.y)
        try:
            page.insert_image(rect, stream=png, keep_proportion=True)
        except (RuntimeError, ValueError) as e:
            raise ValidationError(f"Signature image cannot be placed: {e}", fields=["signature_png"]) from e

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def fill(
        self,
        claim: ClaimState,
        interest: InterestResult,
        document: GeneratedDocument,
        signed_on: Optional[date] = None,
    ) -> bytes:
        """
        Return the completed N1 as PDF bytes.

        Raises:
            TemplateMismatchError: template missing, unreadable, wrong shape, or
                the Statement of Truth does not fit its box
            IncompleteDataError / ValidationError: claim data cannot fill the
                form, including brief details too long for their box
        """
        signed_on = signed_on or interest.as_of_date
        values = n1_field_values(claim, interest, document, signed_on)
        checkboxes = n1_checkbox_values(claim)

        doc = self._open_template()
        try:
            self.verify_template(doc)

            overflow: List[Tuple[str, str]] = []
            for name, spec in N1_TEXT_FIELDS.items():
                text = values.get(name)
                if not text:
                    continue
                if not fits_box(spec, text):
                    if spec.overflow == "continue":
                        overflow.append((name, text))
                        text = CONTINUATION_NOTICE
                    elif spec.overflow == "template":
                        raise TemplateMismatchError(
                            f"{name.replace('_', ' ').capitalize()} does not fit its box on {self.spec.name}",
                            fields=[name],
                        )
                    else:
                        raise ValidationError(
                            f"{name.replace('_', ' ').capitalize()} is too long for its box on {self.spec.name}; shorten it",
                            fields=[name],
                        )
                self._draw_field(doc[spec.page], spec, text)

            for name, checked in checkboxes.items():
                if checked:
                    box = N1_CHECKBOXES[name]
                    self._draw_line(doc[box.page], box.x, box.y, "X", box.size, True)

            if claim.signature_png:
                self._draw_signature(doc, claim.signature_png)

            continuation_pages = 0
            for name, text in overflow:
                continuation_pages += self._append_continuation(
                    doc, text, f"{name.replace('_', ' ').title()} (continued) - {claim.claimant.name} v {claim.defendant.name}",
                )

            output = doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

        logger.info(
            f"Filled {self.spec.name} for {claim.claim_id}: {len(values)} fields, "
            f"{continuation_pages} continuation pages"
        )
        return output

    def fill_to_path(
        self,
        path: str,
        claim: ClaimState,
        interest: InterestResult,
        document: GeneratedDocument,
        signed_on: Optional[date] = None,
    ) -> str:
        """Fill and write to `path`. Nothing is written if filling fails."""
        output = self.fill(claim, interest, document, signed_on)
        with open(path, "wb") as f:
            f.write(output)
        return path
