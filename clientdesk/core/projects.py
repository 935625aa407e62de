"""
Project lifecycle service: status transitions, the milestone toggle and the
read side used by the dashboards.

Both write paths lock the project row, check legality against the locked
row and commit once. ``progress`` is only ever written from
``calculate_progress`` over the persisted milestones.
"""

import logging
import math
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clientdesk.api.v1.helpers.auth_interface import AuthenticatedContext
from clientdesk.api.v1.helpers.permissions import (
    is_staff,
    require_authenticated,
    require_staff,
)
from clientdesk.core.errors import (
    ClientDeskError,
    NotFoundError,
    TransactionFailureError,
    ValidationError,
)
from clientdesk.core.intakes import MAX_SEARCH_TERM_LENGTH
from clientdesk.core.notifications import NotificationGateway, notify_safely
from clientdesk.core.progress import calculate_progress
from clientdesk.core.transitions import check_project_transition, parse_project_status
from clientdesk.models.enums import NotificationType, ProjectStatus, ServiceType
from clientdesk.models.iam.users import User
from clientdesk.models.intakes import Intake
from clientdesk.models.projects import Milestone, Project
from clientdesk.models.pydantic_models.project import (
    ProjectDashboardStats,
    ProjectDetailModel,
    ProjectStats,
)
from clientdesk.utils import ensure_aware, start_of_month, utcnow

logger = logging.getLogger(__name__)


class ProjectFilters(BaseModel):
    status: ProjectStatus | None = None
    user_id: UUID | None = None
    service_type: ServiceType | None = None
    search_term: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class MilestoneToggleResult(BaseModel):
    milestone_id: UUID
    project_id: UUID
    completed: bool
    progress: int


async def _get_project(
    db: AsyncSession, project_id: UUID, lock: bool = False
) -> Project:
    query = select(Project).where(Project.project_id == project_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def update_project_status(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    project_id: UUID,
    status: str | ProjectStatus,
    gateway: NotificationGateway | None = None,
) -> Project:
    """
    Move a project along PROJECT_TRANSITIONS.

    Entering ACTIVE stamps ``started_at`` once; entering COMPLETED stamps
    ``completed_at`` and notifies the owner.
    """
    require_staff(actor)
    target = parse_project_status(status)

    try:
        project = await _get_project(db, project_id, lock=True)
        current = project.status
        target = check_project_transition(current, target)

        now = utcnow()
        if target == ProjectStatus.ACTIVE and project.started_at is None:
            project.started_at = now
        if target == ProjectStatus.COMPLETED:
            project.completed_at = now
        project.status = target.value

        await db.commit()
    except ClientDeskError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            f"Status update of project {project_id} failed: {exc}", exc_info=True
        )
        raise TransactionFailureError("Failed to update project status") from exc

    logger.info(f"Project {project_id} moved {current} -> {target.value}")

    if target == ProjectStatus.COMPLETED:
        await notify_safely(
            gateway,
            project.user_id,
            NotificationType.PROJECT_COMPLETED,
            "Project completed",
            f'Your project "{project.name}" has been completed.',
            metadata={"project_id": str(project.project_id)},
        )
    return project


async def toggle_milestone(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    milestone_id: UUID,
    completed: bool,
    gateway: NotificationGateway | None = None,
) -> MilestoneToggleResult:
    """
    Set a milestone's ``completed`` flag and recompute the project's progress
    in the same transaction.

    ``completed_at`` is stamped on the first completion and kept on repeated
    ones; un-completing clears it.
    """
    require_staff(actor)

    try:
        result = await db.execute(
            select(Milestone.project_id).where(Milestone.milestone_id == milestone_id)
        )
        project_id = result.scalar_one_or_none()
        if project_id is None:
            raise NotFoundError("Milestone not found")

        # Lock the parent first so concurrent toggles on sibling milestones
        # serialize on the progress read-recompute-write.
        project = await _get_project(db, project_id, lock=True)

        result = await db.execute(
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.order)
            .execution_options(populate_existing=True)
        )
        milestones = result.scalars().all()
        milestone = next(m for m in milestones if m.milestone_id == milestone_id)

        newly_completed = completed and not milestone.completed
        milestone.completed = completed
        if completed:
            if milestone.completed_at is None:
                milestone.completed_at = utcnow()
        else:
            milestone.completed_at = None

        progress = calculate_progress(milestones)
        project.progress = progress

        await db.commit()
    except ClientDeskError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Toggle of milestone {milestone_id} failed: {exc}", exc_info=True)
        raise TransactionFailureError("Failed to update milestone") from exc

    logger.info(
        f"Milestone {milestone_id} completed={completed}, project {project_id} at {progress}%"
    )

    if newly_completed:
        await notify_safely(
            gateway,
            project.user_id,
            NotificationType.MILESTONE_COMPLETED,
            "Milestone completed",
            f'The milestone "{milestone.name}" of project "{project.name}" '
            f"was completed. Progress: {progress}%.",
            metadata={
                "project_id": str(project_id),
                "milestone_id": str(milestone_id),
                "progress": progress,
            },
        )

    return MilestoneToggleResult(
        milestone_id=milestone_id,
        project_id=project_id,
        completed=completed,
        progress=progress,
    )


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


def _visible_to(query, actor: AuthenticatedContext):
    if not is_staff(actor):
        query = query.where(Project.user_id == actor.user_id)
    return query


async def list_projects(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    filters: ProjectFilters | None = None,
) -> list[ProjectDetailModel]:
    """Most recently updated first. Clients only see their own projects."""
    actor = require_authenticated(actor)
    filters = filters or ProjectFilters()
    if filters.search_term and len(filters.search_term) > MAX_SEARCH_TERM_LENGTH:
        raise ValidationError(
            f"Search term must be at most {MAX_SEARCH_TERM_LENGTH} characters"
        )
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise ValidationError("date_from must not be after date_to")

    query = (
        select(Project)
        .outerjoin(User, Project.user_id == User.user_id)
        .outerjoin(Intake, Project.intake_id == Intake.intake_id)
        .options(selectinload(Project.milestones))
        .order_by(Project.updated_at.desc())
    )
    query = _visible_to(query, actor)

    if filters.status:
        query = query.where(Project.status == filters.status.value)
    if filters.user_id:
        query = query.where(Project.user_id == filters.user_id)
    if filters.service_type:
        query = query.where(Intake.service_type == filters.service_type.value)
    if filters.search_term:
        pattern = f"%{filters.search_term}%"
        query = query.where(
            or_(
                Project.name.ilike(pattern),
                User.full_name.ilike(pattern),
                User.email.ilike(pattern),
                User.company.ilike(pattern),
                Intake.company_name.ilike(pattern),
            )
        )
    if filters.date_from:
        query = query.where(Project.created_at >= filters.date_from)
    if filters.date_to:
        query = query.where(Project.created_at <= filters.date_to)

    result = await db.execute(query)
    return [ProjectDetailModel.model_validate(p) for p in result.scalars().all()]


async def get_project(
    db: AsyncSession, actor: AuthenticatedContext | None, project_id: UUID
) -> ProjectDetailModel:
    actor = require_authenticated(actor)
    query = (
        select(Project)
        .options(selectinload(Project.milestones))
        .where(Project.project_id == project_id)
    )
    result = await db.execute(_visible_to(query, actor))
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found")
    return ProjectDetailModel.model_validate(project)


async def project_stats(
    db: AsyncSession, actor: AuthenticatedContext | None
) -> ProjectStats:
    """Project counts per status."""
    actor = require_authenticated(actor)
    query = _visible_to(
        select(Project.status, func.count(Project.project_id)).group_by(
            Project.status
        ),
        actor,
    )
    result = await db.execute(query)
    counts = dict(result.all())
    return ProjectStats(total=sum(counts.values()), **counts)


async def project_dashboard_stats(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    now: datetime | None = None,
) -> ProjectDashboardStats:
    """
    Staff dashboard figures.

    ``completion_rate`` is the share of all projects that completed with both
    timestamps set; ``average_days_to_complete`` rounds each project's
    duration up to whole days, then averages.
    """
    require_staff(actor)
    now = now or utcnow()

    total = await db.scalar(select(func.count(Project.project_id)))
    active = await db.scalar(
        select(func.count(Project.project_id)).where(
            Project.status == ProjectStatus.ACTIVE.value
        )
    )
    completed_this_month = await db.scalar(
        select(func.count(Project.project_id)).where(
            Project.status == ProjectStatus.COMPLETED.value,
            Project.completed_at >= start_of_month(now),
        )
    )
    result = await db.execute(
        select(Project.started_at, Project.completed_at).where(
            Project.status == ProjectStatus.COMPLETED.value,
            Project.started_at.is_not(None),
            Project.completed_at.is_not(None),
        )
    )
    durations = [
        math.ceil(
            (ensure_aware(completed_at) - ensure_aware(started_at)).total_seconds()
            / 86400
        )
        for started_at, completed_at in result.all()
    ]

    average_days = (
        math.floor(sum(durations) / len(durations) + 0.5) if durations else 0
    )
    completion_rate = (
        math.floor(100 * len(durations) / total + 0.5) if total else 0
    )

    return ProjectDashboardStats(
        total=total or 0,
        active=active or 0,
        completed_this_month=completed_this_month or 0,
        completion_rate=completion_rate,
        average_days_to_complete=average_days,
    )
