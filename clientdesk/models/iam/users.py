"""
User model.

Clients own intakes and projects; staff (admin / super_admin) run the
approval and project workflows. ``inactivity_warning_sent_at`` is the
retention marker: set once per inactivity episode and cleared on login.
"""

from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clientdesk.db.base import Base
from clientdesk.utils import utcnow
from .enums import UserRole
import uuid


class User(Base):
    __tablename__ = "users"

    user_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        unique=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    company = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.CLIENT.value)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)

    # User-level hold: never warned or deleted by the retention policies
    legal_hold = Column(Boolean, default=False, nullable=False)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=True)
    inactivity_warning_sent_at = Column(DateTime(timezone=True), nullable=True)

    intakes = relationship(
        "Intake", back_populates="user", foreign_keys="Intake.user_id"
    )
    projects = relationship("Project", back_populates="user")
    tokens = relationship("Token", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    notification_preferences = relationship(
        "NotificationPreference", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            role.in_([e.value for e in UserRole]),
            name="ck_user_role",
        ),
    )

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None
