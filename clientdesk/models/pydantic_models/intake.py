"""
Pydantic models for Intake entities.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class IntakeOwnerModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    full_name: str | None = None
    company: str | None = None


class IntakeModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    intake_id: UUID
    user_id: UUID | None = None
    service_type: str | None = None
    company_name: str | None = None
    segment: str | None = None
    objectives: str | None = None
    budget: str | None = None
    deadline: str | None = None
    features: str | None = None
    references: str | None = None
    integrations: str | None = None
    additional_info: dict[str, Any] | None = None
    status: str
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    is_contractual: bool
    anonymized_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class IntakeListItem(IntakeModel):
    user: IntakeOwnerModel | None = None
    project_id: UUID | None = None


class IntakeStats(BaseModel):
    total: int = 0
    draft: int = 0
    submitted: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0
