"""
Intakes API - client submissions and the staff review workflow.

Authorization is enforced by the service layer, so every route takes the
optional identity and lets ``clientdesk.core.intakes`` raise.
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
from clientdesk.core import intakes as intake_service
from clientdesk.core.intakes import IntakeData, IntakeFilters
from clientdesk.core.notifications import NotificationGateway
from clientdesk.db.session import get_db
from clientdesk.models.enums import IntakeStatus, ServiceType
from clientdesk.models.pydantic_models.intake import (
    IntakeListItem,
    IntakeModel,
    IntakeStats,
)
from clientdesk.models.pydantic_models.project import ProjectDetailModel

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class IntakeCreateRequest(IntakeData):
    submit: bool = False


class IntakeStatusUpdateRequest(BaseModel):
    status: str


class IntakeRejectRequest(BaseModel):
    reason: str


class IntakeListResponse(BaseModel):
    intakes: list[IntakeListItem]
    stats: IntakeStats


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/", response_model=IntakeModel, status_code=201)
async def create_intake(
    data: IntakeCreateRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    """Create a draft intake, or submit it directly with ``submit=true``."""
    intake = await intake_service.create_intake(
        db,
        user,
        IntakeData(**data.model_dump(exclude={"submit"})),
        submit=data.submit,
        gateway=gateway,
    )
    return IntakeModel.model_validate(intake)


@router.get("/", response_model=IntakeListResponse)
async def list_intakes(
    status: IntakeStatus | None = Query(None),
    service_type: ServiceType | None = Query(None),
    search: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    filters = IntakeFilters(
        status=status,
        service_type=service_type,
        search_term=search,
        date_from=date_from,
        date_to=date_to,
    )
    intakes = await intake_service.list_intakes(db, user, filters)
    stats = await intake_service.intake_stats(db, user)
    return IntakeListResponse(intakes=intakes, stats=stats)


@router.get("/{intake_id}", response_model=IntakeListItem)
async def get_intake(
    intake_id: UUID,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await intake_service.get_intake(db, user, intake_id)


@router.patch("/{intake_id}", response_model=IntakeModel)
async def update_intake_draft(
    intake_id: UUID,
    data: IntakeData,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Save edits to the caller's draft. Omitted fields are left unchanged."""
    intake = await intake_service.update_intake_draft(db, user, intake_id, data)
    return IntakeModel.model_validate(intake)


@router.post("/{intake_id}/submit", response_model=IntakeModel)
async def submit_intake(
    intake_id: UUID,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    intake = await intake_service.submit_intake(db, user, intake_id, gateway=gateway)
    return IntakeModel.model_validate(intake)


@router.patch("/{intake_id}/status", response_model=IntakeModel)
async def update_intake_status(
    intake_id: UUID,
    data: IntakeStatusUpdateRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Generic staff status change. Approval and rejection have their own routes."""
    intake = await intake_service.update_intake_status(
        db, user, intake_id, data.status
    )
    return IntakeModel.model_validate(intake)


@router.post("/{intake_id}/analyze", response_model=IntakeModel)
async def analyze_intake(
    intake_id: UUID,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    intake = await intake_service.analyze_intake(db, user, intake_id)
    return IntakeModel.model_validate(intake)


@router.post("/{intake_id}/approve", response_model=ProjectDetailModel, status_code=201)
async def approve_intake(
    intake_id: UUID,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    """Approve the intake and return the created project with its milestones."""
    project = await intake_service.approve_intake(db, user, intake_id, gateway=gateway)
    return ProjectDetailModel.model_validate(project)


@router.post("/{intake_id}/reject", response_model=IntakeModel)
async def reject_intake(
    intake_id: UUID,
    data: IntakeRejectRequest,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    gateway: NotificationGateway | None = Depends(get_notification_gateway),
):
    intake = await intake_service.reject_intake(
        db, user, intake_id, data.reason, gateway=gateway
    )
    return IntakeModel.model_validate(intake)
