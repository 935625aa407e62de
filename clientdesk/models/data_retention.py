"""
Audit trail for retention deletions. Append-only; ``user_id`` is a plain
column (no FK) because the user row is gone once the entry matters.
"""

import uuid
from sqlalchemy import Column, DateTime, JSON, String, Uuid
from sqlalchemy.sql import func

from clientdesk.db.base import Base


class DataDeletionLog(Base):
    __tablename__ = "data_deletion_logs"

    log_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    user_email = Column(String, nullable=False)
    reason = Column(String, nullable=False)

    # null for scheduler-driven deletions
    deleted_by = Column(Uuid(as_uuid=True), nullable=True)

    # data categories removed, e.g. ["user", "intakes", "projects", ...]
    data_types = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
