"""
Official court forms filled from claim data, and letters laid out as PDFs.
"""
from .n1_layout import PINNED_N1_TEMPLATE, TemplateSpec, FieldSpec, CheckboxSpec, ImageSpec
from .form_filler import N1FormFiller, n1_field_values, n1_checkbox_values, wrap_text
from .letter_renderer import DEFAULT_LETTER_LAYOUT, LetterLayout, LetterRenderer, render_letter

__all__ = [
    "PINNED_N1_TEMPLATE",
    "TemplateSpec",
    "FieldSpec",
    "CheckboxSpec",
    "ImageSpec",
    "N1FormFiller",
    "n1_field_values",
    "n1_checkbox_values",
    "wrap_text",
    "DEFAULT_LETTER_LAYOUT",
    "LetterLayout",
    "LetterRenderer",
    "render_letter",
]
