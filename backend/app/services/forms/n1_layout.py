"""
Form N1 Layout

Overlay coordinates for the official claim form, calibrated against one
pinned template revision. Coordinates are PDF user space (origin bottom-left,
points); the filler converts them to PyMuPDF's top-left space.

A template that does not match PINNED_N1_TEMPLATE is rejected before any
field is written.
"""
import os
from dataclasses import dataclass
from typing import Dict, Optional


N1_TEMPLATE_PATH = os.getenv("N1_TEMPLATE_PATH", "assets/N1.pdf")


@dataclass(frozen=True)
class TemplateSpec:
    name: str
    page_count: int
    page_width: float
    page_height: float
    tolerance: float = 1.0

    def matches_size(self, width: float, height: float) -> bool:
        return (
            abs(width - self.page_width) <= self.tolerance
            and abs(height - self.page_height) <= self.tolerance
        )


PINNED_N1_TEMPLATE = TemplateSpec(
    name="N1 (04.24)",
    page_count=5,
    page_width=595.28,   # A4
    page_height=841.89,
)


@dataclass(frozen=True)
class FieldSpec:
    """
    One text overlay.

    overflow:
        "error"     - raise ValidationError when claim text does not fit
        "template"  - raise TemplateMismatchError; the fixed wording no longer fits
        "continue"  - print CONTINUATION_NOTICE and append the text on new pages
        None        - single line, written as is
    """
    page: int
    x: float
    y: float
    font_size: float = 10
    bold: bool = False
    align: str = "left"
    max_width: Optional[float] = None
    line_height: Optional[float] = None
    box_height: Optional[float] = None
    overflow: Optional[str] = None


@dataclass(frozen=True)
class CheckboxSpec:
    page: int
    x: float
    y: float
    size: float = 14


@dataclass(frozen=True)
class ImageSpec:
    page: int
    x: float
    y: float
    max_width: float
    max_height: float


CONTINUATION_NOTICE = "See attached Particulars of Claim."

# Continuation pages for long particulars
CONTINUATION_MARGIN = 56.0
CONTINUATION_FONT_SIZE = 10
CONTINUATION_LINE_HEIGHT = 14


# =============================================================================
# TEXT FIELDS
# =============================================================================

N1_TEXT_FIELDS: Dict[str, FieldSpec] = {
    # --- Page 1: claim form ---
    "court_name": FieldSpec(page=0, x=375, y=792, bold=True),

    "claimant_name": FieldSpec(page=0, x=45, y=700, bold=True),
    "claimant_address": FieldSpec(page=0, x=45, y=686),
    "claimant_city": FieldSpec(page=0, x=45, y=672),
    "claimant_county": FieldSpec(page=0, x=45, y=658),
    "claimant_postcode": FieldSpec(page=0, x=45, y=644),

    "defendant_name": FieldSpec(page=0, x=45, y=555, bold=True),
    "defendant_address": FieldSpec(page=0, x=45, y=541),
    "defendant_city": FieldSpec(page=0, x=45, y=527),
    "defendant_county": FieldSpec(page=0, x=45, y=513),
    "defendant_postcode": FieldSpec(page=0, x=45, y=499),

    "brief_details": FieldSpec(
        page=0, x=310, y=680, max_width=230, line_height=14, box_height=100, overflow="error",
    ),
    "value_description": FieldSpec(page=0, x=45, y=410, max_width=230, line_height=14, box_height=42, overflow="error"),

    "service_name": FieldSpec(page=0, x=45, y=280),
    "service_address": FieldSpec(page=0, x=45, y=265),
    "service_postcode": FieldSpec(page=0, x=45, y=220),

    "amount_claimed": FieldSpec(page=0, x=530, y=260, font_size=11, align="right"),
    "court_fee": FieldSpec(page=0, x=530, y=238, font_size=11, align="right"),
    "legal_costs": FieldSpec(page=0, x=530, y=216, font_size=11, align="right"),
    "total_amount": FieldSpec(page=0, x=530, y=194, font_size=11, align="right", bold=True),

    # --- Page 2: hearing centre ---
    "hearing_centre": FieldSpec(page=1, x=80, y=735, font_size=11),

    # --- Page 3: particulars of claim ---
    "particulars": FieldSpec(
        page=2, x=75, y=730, max_width=460, line_height=14, box_height=600, overflow="continue",
    ),

    # --- Page 4: statement of truth ---
    "statement_of_truth": FieldSpec(
        page=3, x=75, y=790, font_size=9, max_width=460, line_height=11, box_height=90, overflow="template",
    ),
    "date_day": FieldSpec(page=3, x=110, y=440, font_size=11),
    "date_month": FieldSpec(page=3, x=160, y=440, font_size=11),
    "date_year": FieldSpec(page=3, x=210, y=440, font_size=11),
    "signer_name": FieldSpec(page=3, x=95, y=405, font_size=11),
    "signer_role": FieldSpec(page=3, x=95, y=280, font_size=11),

    # --- Page 5: claimant's address for service ---
    "service_building": FieldSpec(page=4, x=95, y=690, font_size=11),
    "service_street": FieldSpec(page=4, x=95, y=660, font_size=11),
    "service_city": FieldSpec(page=4, x=95, y=630, font_size=11),
    "service_county": FieldSpec(page=4, x=95, y=600, font_size=11),
    "service_postcode_spaced": FieldSpec(page=4, x=98, y=550, font_size=14),
    "service_phone": FieldSpec(page=4, x=250, y=485, font_size=11),
    "service_reference": FieldSpec(page=4, x=250, y=415, font_size=11),
    "service_email": FieldSpec(page=4, x=250, y=380, font_size=11),
}


# =============================================================================
# CHECKBOXES
# =============================================================================

N1_CHECKBOXES: Dict[str, CheckboxSpec] = {
    "vulnerable_no": CheckboxSpec(page=1, x=132, y=535),
    "human_rights_no": CheckboxSpec(page=1, x=132, y=440),
    "sot_individual": CheckboxSpec(page=3, x=95, y=672),
    "sot_company": CheckboxSpec(page=3, x=95, y=625),
    "signer_is_claimant": CheckboxSpec(page=3, x=95, y=495),
}


# =============================================================================
# IMAGES
# =============================================================================

N1_IMAGES: Dict[str, ImageSpec] = {
    "signature": ImageSpec(page=3, x=100, y=520, max_width=150, max_height=50),
}


