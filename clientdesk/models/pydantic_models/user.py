"""
Pydantic model for User entity.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from uuid import UUID


class UserModel(BaseModel):
    """Public profile of a user. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    full_name: str | None = None
    phone: str | None = None
    company: str | None = None
    role: str
    is_active: bool
    email_verified_at: datetime | None = None
    created_at: datetime | None = None
    last_login: datetime | None = None
