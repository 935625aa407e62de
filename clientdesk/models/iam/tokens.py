"""
API token model. Only the SHA-256 hash of the token is stored.
"""

from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clientdesk.db.base import Base
from clientdesk.utils import utcnow
import uuid


class Token(Base):
    __tablename__ = "tokens"

    token_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        unique=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    token_hash = Column(String, nullable=False, unique=True, index=True)
    prefix = Column(String, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    user = relationship("User", back_populates="tokens")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_token_user_name"),
    )
