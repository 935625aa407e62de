"""
Pydantic models for Project and Milestone entities.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MilestoneModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    milestone_id: UUID
    project_id: UUID
    name: str
    description: str | None = None
    order: int
    completed: bool
    completed_at: datetime | None = None


class ProjectModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: UUID
    user_id: UUID | None = None
    intake_id: UUID | None = None
    name: str
    description: str | None = None
    status: str
    progress: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    is_contractual: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectDetailModel(ProjectModel):
    milestones: list[MilestoneModel] = []


class ProjectStats(BaseModel):
    total: int = 0
    awaiting_approval: int = 0
    active: int = 0
    paused: int = 0
    completed: int = 0
    cancelled: int = 0
    archived: int = 0


class ProjectDashboardStats(BaseModel):
    total: int
    active: int
    completed_this_month: int
    completion_rate: int
    average_days_to_complete: int
