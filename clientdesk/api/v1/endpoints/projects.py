"""
Projects API - project listing, status transitions and milestone toggles.
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from clientdesk.api.v1.deps import get_notification_gateway
from clientdesk.api.v1.helpers.authentication import (
    AuthenticatedUser,
    get_optional_user,
)
from clientdesk.core import projects as project_service
from clientdesk.core.notifications import NotificationGateway
from clientdesk.core.projects import MilestoneToggleResult, ProjectFilters
from clientdesk.db.session import get_db
from clientdesk.models.enums import ProjectStatus, ServiceType
from clientdesk.models.pydantic_models.project import (
    ProjectDashboardStats,
    ProjectDetailModel,
    ProjectModel,
    ProjectStats,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class ProjectStatusUpdateRequest(BaseModel):
    status: str


class MilestoneToggleRequest(BaseModel):
    completed: bool


class ProjectListResponse(BaseModel):
    projects: list[ProjectDetailModel]
    stats: ProjectStats


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    status: ProjectStatus | None = Query(None),
    user_id: UUID | None = Query(None),
    service_type: ServiceType | None = Query(None),
    search: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    filters = ProjectFilters(
        status=status,
        user_id=user_id,
        service_type=service_type,
        search_term=search,
        date_from=date_from,
        date_to=date_to,
    )
    projects = await project_service.list_projects(db, user, filters)
    stats = await project_service.project_stats(db, user)
    return ProjectListResponse(projects=projects, stats=stats)


@router.get("/stats", response_model=ProjectDashboardStats)
async def get_dashboard_stats(
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Totals, completions this month, completion rate and average duration."""
    return await project_service.project_dashboard_stats(db, user)


@router.patch("/milestones/{milestone_id}", response_model=MilestoneToggleResult)
async def toggle_milestone(
    milestone_id: UUID,
    data: MilestoneToggleRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    return await project_service.toggle_milestone(
        db, user, milestone_id, data.completed, gateway=gateway
    )


@router.get("/{project_id}", response_model=ProjectDetailModel)
async def get_project(
    project_id: UUID,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.get_project(db, user, project_id)


@router.patch("/{project_id}/status", response_model=ProjectModel)
async def update_project_status(
    project_id: UUID,
    data: ProjectStatusUpdateRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    project = await project_service.update_project_status(
        db, user, project_id, data.status, gateway=gateway
    )
    return ProjectModel.model_validate(project)
