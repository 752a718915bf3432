"""
ClaimCraft Engine - SQLAlchemy ORM Models

Only deadlines are persisted. Claims, interest and documents are derived from
the caller's ClaimState on every request.
"""
from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime, Date, Enum as SQLEnum, Index, text

from ..database import Base
from .claim import Deadline, DeadlinePriority, DeadlineStatus, DeadlineType


class DeadlineDB(Base):
    """
    A scheduled procedural deadline.

    At most one non-dismissed row per (claim_id, type), enforced by a partial
    unique index. Dismissed rows are kept so the scheduler can suppress
    re-creating the same (type, due_date).
    """
    __tablename__ = "deadlines"

    id = Column(String(36), primary_key=True)  # uuid5 of claim, type, due date
    claim_id = Column(String(64), nullable=False, index=True)

    type = Column(SQLEnum(DeadlineType), nullable=False)
    due_date = Column(Date, nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    legal_reference = Column(String(255), nullable=True)

    status = Column(SQLEnum(DeadlineStatus), default=DeadlineStatus.PENDING, nullable=False)
    priority = Column(SQLEnum(DeadlinePriority), default=DeadlinePriority.MEDIUM, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_deadlines_claim_type", "claim_id", "type"),
        # One non-dismissed row per (claim_id, type); Enum columns store member names
        Index(
            "uq_deadlines_active_claim_type",
            "claim_id",
            "type",
            unique=True,
            sqlite_where=text("status != 'DISMISSED'"),
            postgresql_where=text("status != 'DISMISSED'"),
        ),
    )

    def to_domain(self) -> Deadline:
        return Deadline(
            id=self.id,
            claim_id=self.claim_id,
            type=self.type,
            due_date=self.due_date,
            title=self.title,
            description=self.description or "",
            legal_reference=self.legal_reference or "",
            status=self.status,
            priority=self.priority,
        )
