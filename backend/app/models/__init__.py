"""ClaimCraft Engine - Data Models"""
from .claim import (
    # Enums
    PartyType, PaymentTerms, TimelineEventType, RateBasis, DocumentType,
    DeadlineType, DeadlineStatus, DeadlinePriority,
    # Claim inputs
    Party, Invoice, TimelineEvent, ClaimState,
    # Derived results
    InterestResult, Deadline, DocumentSection, GeneratedDocument,
)

__all__ = [
    "PartyType", "PaymentTerms", "TimelineEventType", "RateBasis", "DocumentType",
    "DeadlineType", "DeadlineStatus", "DeadlinePriority",
    "Party", "Invoice", "TimelineEvent", "ClaimState",
    "InterestResult", "Deadline", "DocumentSection", "GeneratedDocument",
]
