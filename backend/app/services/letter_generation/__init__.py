"""
Letter Generation - Document Content Assembly

Documents are ASSEMBLED from fixed section templates, never written freely.

Components:
- formatting: money and date rendering shared with the N1 form
- templates: fixed section wording per document type
- content_builder: ClaimState + InterestResult -> GeneratedDocument sections
- generator: dependency-keyed cache with one in-flight generation per claim
"""

from .formatting import format_date, format_money, format_money_for_form, format_rate

from .content_builder import (
    build_document,
    brief_details,
    require_generation_inputs,
    validate_document,
)

from .generator import (
    DocumentGenerator,
    dependency_key,
)

__all__ = [
    # Formatting
    "format_date",
    "format_money",
    "format_money_for_form",
    "format_rate",
    # Content Builder
    "build_document",
    "brief_details",
    "require_generation_inputs",
    "validate_document",
    # Generator
    "DocumentGenerator",
    "dependency_key",
]
