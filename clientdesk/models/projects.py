"""
Project and Milestone models.

A project is created only by the approval transaction, together with its four
fixed milestones. ``progress`` is derived from the milestones and written only
by the approval transaction and the milestone toggle.
"""

import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from clientdesk.db.base import Base
from clientdesk.utils import utcnow
from clientdesk.models.enums import ProjectStatus

# (name, description) in milestone order 1..4
DEFAULT_MILESTONES = (
    ("Planning", "Scope, requirements and schedule definition"),
    ("Development", "Feature implementation and integrations"),
    ("Testing", "Quality assurance, fixes and final adjustments"),
    ("Delivery", "Deployment, training and final handover"),
)
MILESTONES_PER_PROJECT = len(DEFAULT_MILESTONES)


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(
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

    # unique: an intake converts into at most one project
    intake_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("intakes.intake_id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    status = Column(
        String,
        nullable=False,
        default=ProjectStatus.AWAITING_APPROVAL.value,
        index=True,
    )
    progress = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    is_contractual = Column(Boolean, default=False, nullable=False)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="projects")
    intake = relationship("Intake", back_populates="project")
    milestones = relationship(
        "Milestone",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Milestone.order",
    )

    __table_args__ = (
        CheckConstraint(
            status.in_([e.value for e in ProjectStatus]),
            name="ck_project_status",
        ),
        CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_project_progress_range"
        ),
    )


class Milestone(Base):
    __tablename__ = "milestones"

    milestone_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False)

    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    project = relationship("Project", back_populates="milestones")

    __table_args__ = (
        UniqueConstraint("project_id", "order", name="uq_milestone_project_order"),
        CheckConstraint(
            f'"order" >= 1 AND "order" <= {MILESTONES_PER_PROJECT}',
            name="ck_milestone_order_range",
        ),
    )
