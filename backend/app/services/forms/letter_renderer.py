"""
Letter PDF Renderer

Lays out the sections of a generated chaser or Letter Before Action on A4
pages with PyMuPDF. Text stays vector text: the output is searchable and
small, unlike a rasterised page capture.

Layout rules:
    header        sender block and date right-aligned, recipient left-aligned
    headings      all-capital lines ("DEBT DETAILS", "RE: ...") drawn bold
    paragraphs    wrapped to the content width, never split mid-line across pages
    closing       signature image (when supplied) above the signer's name
    footer        "Page X of N" on every page
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import fitz  # PyMuPDF

from app.models.claim import ClaimState, DocumentType, GeneratedDocument
from app.services.legal.errors import ValidationError

from .form_filler import BLACK, BOLD_FONT, REGULAR_FONT, text_width, wrap_text

logger = logging.getLogger(__name__)

LETTER_DOCUMENTS = (DocumentType.POLITE_CHASER, DocumentType.LBA)

PRODUCER = "ClaimCraft UK - Debt Recovery Assistant"


@dataclass(frozen=True)
class LetterLayout:
    """A4 in points, 25mm margins."""
    page_width: float = 595.28
    page_height: float = 841.89
    margin_top: float = 72
    margin_bottom: float = 72
    margin_left: float = 72
    margin_right: float = 72
    font_size: float = 11
    line_spacing: float = 1.4
    paragraph_spacing: float = 8
    footer_font_size: float = 8
    signature_width: float = 150
    signature_height: float = 50

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right

    @property
    def line_height(self) -> float:
        return self.font_size * self.line_spacing


DEFAULT_LETTER_LAYOUT = LetterLayout()


def is_heading(line: str) -> bool:
    """All-capital lines such as "CHRONOLOGY OF EVENTS" or "RE: PAYMENT REMINDER - ..."."""
    letters = [c for c in line if c.isalpha()]
    if len(letters) < 3:
        return False
    prefix = line.split(" - ")[0]
    return all(c.isupper() for c in prefix if c.isalpha())


class _PageCursor:
    """Current page and baseline; starts a new page when the next line will not fit."""

    def __init__(self, doc: "fitz.Document", layout: LetterLayout):
        self.doc = doc
        self.layout = layout
        self.page = None
        self.y = 0.0
        self.new_page()

    def new_page(self) -> None:
        layout = self.layout
        self.page = self.doc.new_page(width=layout.page_width, height=layout.page_height)
        self.y = layout.margin_top

    def ensure_space(self, height: float) -> None:
        if self.y + height > self.layout.page_height - self.layout.margin_bottom:
            self.new_page()

    def line(self, text: str, bold: bool = False, align: str = "left") -> None:
        layout = self.layout
        self.ensure_space(layout.line_height)
        x = layout.margin_left
        if align == "right":
            x = layout.page_width - layout.margin_right - text_width(text, layout.font_size, bold)
        self.y += layout.line_height
        if text:
            self.page.insert_text(
                fitz.Point(x, self.y),
                text,
                fontname=BOLD_FONT if bold else REGULAR_FONT,
                fontsize=layout.font_size,
                color=BLACK,
            )

    def gap(self, height: float) -> None:
        self.y += height


class LetterRenderer:
    """
    Renders a GeneratedDocument letter to PDF bytes.

    Input: GeneratedDocument (Polite Payment Reminder or Letter Before Action) + ClaimState
    Output: PDF bytes
    """

    def __init__(self, layout: LetterLayout = DEFAULT_LETTER_LAYOUT):
        self.layout = layout

    def render(self, document: GeneratedDocument, claim: ClaimState) -> bytes:
        """
        Raises:
            ValidationError: the document is not a letter, or the signature
                image cannot be placed
        """
        if document.document_type not in LETTER_DOCUMENTS:
            raise ValidationError(
                f"{document.document_type.value} is not rendered as a letter",
                fields=["document_type"],
            )

        doc = fitz.open()
        try:
            cursor = _PageCursor(doc, self.layout)
            for section in document.sections:
                if not section.text:
                    continue
                if section.name == "header":
                    self._draw_header(cursor, section.text)
                elif section.name == "closing":
                    self._draw_closing(cursor, section.text, claim.signature_png)
                else:
                    self._draw_paragraphs(cursor, section.text.split("\n\n"))
                cursor.gap(self.layout.paragraph_spacing)

            self._number_pages(doc)
            doc.set_metadata({
                "title": f"{document.document_type.value} - {claim.defendant.name}",
                "subject": f"Invoice: {claim.invoice.invoice_number or 'N/A'}",
                "author": claim.claimant.name,
                "creator": "ClaimCraft UK",
                "producer": PRODUCER,
            })
            page_count = doc.page_count
            output = doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

        logger.info(
            f"Rendered {document.document_type.value} for {claim.claim_id}: {page_count} pages"
        )
        return output

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _draw_block(self, cursor: _PageCursor, text: str, align: str = "left", headings: bool = True) -> None:
        width = self.layout.content_width
        for source in text.split("\n"):
            bold = headings and is_heading(source)
            for line in wrap_text(source, width, self.layout.font_size, bold):
                cursor.line(line, bold=bold, align=align)

    def _draw_paragraphs(self, cursor: _PageCursor, paragraphs: List[str]) -> None:
        for i, paragraph in enumerate(paragraphs):
            if i:
                cursor.gap(self.layout.paragraph_spacing)
            self._draw_block(cursor, paragraph)

    def _draw_header(self, cursor: _PageCursor, text: str) -> None:
        # sender, date, recipient; postcodes are not headings
        blocks = text.split("\n\n")
        for i, block in enumerate(blocks):
            if i:
                cursor.gap(self.layout.paragraph_spacing)
            self._draw_block(cursor, block, align="right" if i < 2 else "left", headings=False)

    def _draw_closing(self, cursor: _PageCursor, text: str, signature: Optional[bytes]) -> None:
        paragraphs = text.split("\n\n")
        body, signer = paragraphs[:-1], paragraphs[-1]
        self._draw_paragraphs(cursor, body)

        layout = self.layout
        cursor.ensure_space(layout.signature_height + 2 * layout.line_height)
        if signature:
            rect = fitz.Rect(
                layout.margin_left,
                cursor.y + 4,
                layout.margin_left + layout.signature_width,
                cursor.y + 4 + layout.signature_height,
            )
            try:
                cursor.page.insert_image(rect, stream=signature, keep_proportion=True)
            except (RuntimeError, ValueError) as e:
                raise ValidationError(f"Signature image cannot be placed: {e}", fields=["signature_png"]) from e
        cursor.gap(layout.signature_height)
        self._draw_block(cursor, signer)

    def _number_pages(self, doc: "fitz.Document") -> None:
        layout = self.layout
        total = doc.page_count
        for number, page in enumerate(doc, start=1):
            label = f"Page {number} of {total}"
            x = (layout.page_width - fitz.get_text_length(
                label, fontname=REGULAR_FONT, fontsize=layout.footer_font_size,
            )) / 2
            page.insert_text(
                fitz.Point(x, layout.page_height - layout.margin_bottom / 2),
                label,
                fontname=REGULAR_FONT,
                fontsize=layout.footer_font_size,
                color=BLACK,
            )


def render_letter(document: GeneratedDocument, claim: ClaimState) -> bytes:
    """Convenience function to render a letter with the default layout."""
    return LetterRenderer().render(document, claim)
