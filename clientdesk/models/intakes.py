"""
Intake ("briefing") model - a prospective client's structured project request.

Status changes go through clientdesk.core.intakes only. The owner reference is
nullable: retention detaches it for legal-hold records and anonymized intakes.
"""

import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from clientdesk.db.base import Base
from clientdesk.utils import utcnow
from clientdesk.models.enums import IntakeStatus, ServiceType


class Intake(Base):
    __tablename__ = "intakes"

    intake_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    service_type = Column(String, nullable=True, index=True)

    company_name = Column(String, nullable=True)
    segment = Column(String, nullable=True)
    objectives = Column(Text, nullable=True)
    budget = Column(String, nullable=True)
    deadline = Column(String, nullable=True)
    features = Column(Text, nullable=True)
    references = Column(Text, nullable=True)
    integrations = Column(Text, nullable=True)
    additional_info = Column(JSON, nullable=True)

    status = Column(
        String, nullable=False, default=IntakeStatus.DRAFT.value, index=True
    )
    rejection_reason = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )

    # Legal hold: kept (owner detached) when the owner's account is deleted
    is_contractual = Column(Boolean, default=False, nullable=False)
    anonymized_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="intakes", foreign_keys=[user_id])
    project = relationship("Project", back_populates="intake", uselist=False)

    __table_args__ = (
        CheckConstraint(
            status.in_([e.value for e in IntakeStatus]),
            name="ck_intake_status",
        ),
        CheckConstraint(
            service_type.is_(None) | service_type.in_([e.value for e in ServiceType]),
            name="ck_intake_service_type",
        ),
    )
