"""
Intake lifecycle service.

Every change to an intake goes through this module: creation, draft edits
and submission by the owner, the generic staff status update, and the two
review decisions. Approval is the one place a Project is created; it runs
as a single transaction with the intake row locked, so a second approver
either sees the new status or trips the unique ``projects.intake_id``
constraint.

Notifications are sent after commit and never change the outcome.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clientdesk.api.v1.helpers.auth_interface import AuthenticatedContext
from clientdesk.api.v1.helpers.permissions import (
    is_staff,
    require_authenticated,
    require_staff,
)
from clientdesk.core.errors import (
    AlreadyLinkedError,
    ClientDeskError,
    InvalidTransitionError,
    NotFoundError,
    TransactionFailureError,
    UnauthorizedError,
    ValidationError,
)
from clientdesk.core.notifications import NotificationGateway, notify_safely
from clientdesk.core.progress import calculate_progress
from clientdesk.core.transitions import (
    check_intake_reviewable,
    check_intake_transition,
    parse_intake_status,
)
from clientdesk.models.enums import IntakeStatus, NotificationType, ServiceType
from clientdesk.models.iam.enums import STAFF_ROLES
from clientdesk.models.iam.users import User
from clientdesk.models.intakes import Intake
from clientdesk.models.projects import DEFAULT_MILESTONES, Milestone, Project
from clientdesk.models.pydantic_models.intake import IntakeListItem, IntakeStats
from clientdesk.utils import utcnow

logger = logging.getLogger(__name__)

REJECTION_REASON_MIN_LENGTH = 10
REJECTION_REASON_MAX_LENGTH = 500
MAX_SEARCH_TERM_LENGTH = 100

# (field, min, max) checked on submission
SUBMISSION_TEXT_LIMITS = (
    ("company_name", 2, 100),
    ("segment", 2, 100),
    ("objectives", 10, 2000),
)


class IntakeData(BaseModel):
    """Client-editable intake fields."""

    service_type: ServiceType | None = None
    company_name: str | None = None
    segment: str | None = None
    objectives: str | None = None
    budget: str | None = None
    deadline: str | None = None
    features: str | None = None
    references: str | None = None
    integrations: str | None = None
    additional_info: dict[str, Any] | None = None


class IntakeFilters(BaseModel):
    status: IntakeStatus | None = None
    service_type: ServiceType | None = None
    search_term: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


def validate_submission(intake: Intake) -> None:
    """Raise ``ValidationError`` listing every field that blocks submission."""
    errors = []
    if not intake.service_type:
        errors.append("service_type is required")
    for field, min_length, max_length in SUBMISSION_TEXT_LIMITS:
        value = (getattr(intake, field) or "").strip()
        if not min_length <= len(value) <= max_length:
            errors.append(
                f"{field} must be between {min_length} and {max_length} characters"
            )
    if errors:
        raise ValidationError("Intake is incomplete", errors=errors)


def validate_rejection_reason(reason: str | None) -> str:
    if reason is None or not (
        REJECTION_REASON_MIN_LENGTH <= len(reason) <= REJECTION_REASON_MAX_LENGTH
    ):
        raise ValidationError(
            f"Rejection reason must be between {REJECTION_REASON_MIN_LENGTH} "
            f"and {REJECTION_REASON_MAX_LENGTH} characters"
        )
    return reason


def validate_filters(filters: IntakeFilters | None) -> IntakeFilters:
    filters = filters or IntakeFilters()
    if filters.search_term and len(filters.search_term) > MAX_SEARCH_TERM_LENGTH:
        raise ValidationError(
            f"Search term must be at most {MAX_SEARCH_TERM_LENGTH} characters"
        )
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise ValidationError("date_from must not be after date_to")
    return filters


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_intake(
    db: AsyncSession, intake_id: UUID, lock: bool = False
) -> Intake:
    query = select(Intake).where(Intake.intake_id == intake_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    intake = result.scalar_one_or_none()
    if intake is None:
        raise NotFoundError("Intake not found")
    return intake


async def _linked_project_id(db: AsyncSession, intake_id: UUID) -> UUID | None:
    result = await db.execute(
        select(Project.project_id).where(Project.intake_id == intake_id)
    )
    return result.scalar_one_or_none()


async def _commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Failed to {action}: {exc}", exc_info=True)
        raise TransactionFailureError(f"Failed to {action}") from exc


async def _notify_staff_new_intake(
    db: AsyncSession, gateway: NotificationGateway | None, intake: Intake
) -> None:
    if gateway is None:
        return
    result = await db.execute(
        select(User.user_id).where(
            User.role.in_(STAFF_ROLES), User.is_active.is_(True)
        )
    )
    for staff_id in result.scalars().all():
        await notify_safely(
            gateway,
            staff_id,
            NotificationType.NEW_INTAKE,
            "New intake submitted",
            f"{intake.company_name} submitted a new intake for review.",
            metadata={"intake_id": str(intake.intake_id)},
        )


def _apply_status(intake: Intake, target: IntakeStatus) -> None:
    if target == IntakeStatus.SUBMITTED and intake.submitted_at is None:
        intake.submitted_at = utcnow()
    elif target == IntakeStatus.DRAFT:
        intake.submitted_at = None
    intake.status = target.value


# ---------------------------------------------------------------------------
# Client operations
# ---------------------------------------------------------------------------


async def create_intake(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    data: IntakeData,
    submit: bool = False,
    gateway: NotificationGateway | None = None,
) -> Intake:
    """Create a draft intake, or a submitted one when ``submit`` is set."""
    actor = require_authenticated(actor)

    values = data.model_dump()
    if data.service_type is not None:
        values["service_type"] = data.service_type.value
    intake = Intake(
        user_id=actor.user_id, status=IntakeStatus.DRAFT.value, **values
    )
    if submit:
        validate_submission(intake)
        _apply_status(intake, IntakeStatus.SUBMITTED)

    db.add(intake)
    await _commit(db, "create intake")
    logger.info(f"Intake {intake.intake_id} created with status {intake.status}")

    if submit:
        await _notify_staff_new_intake(db, gateway, intake)
    return intake


async def submit_intake(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    intake_id: UUID,
    gateway: NotificationGateway | None = None,
) -> Intake:
    actor = require_authenticated(actor)
    try:
        intake = await _get_intake(db, intake_id, lock=True)
        if intake.user_id != actor.user_id:
            raise UnauthorizedError("Only the owner can submit an intake")
        target = check_intake_transition(intake.status, IntakeStatus.SUBMITTED)
        validate_submission(intake)
        _apply_status(intake, target)
    except ClientDeskError:
        await db.rollback()
        raise

    await _commit(db, "submit intake")
    logger.info(f"Intake {intake_id} submitted")

    await _notify_staff_new_intake(db, gateway, intake)
    return intake


async def update_intake_draft(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    intake_id: UUID,
    data: IntakeData,
) -> Intake:
    """
    Save the owner's edits to a draft intake.

    Only fields present in ``data`` are written, so partial saves keep the
    rest of the draft. Completeness is checked on submission, not here.
    """
    actor = require_authenticated(actor)
    try:
        intake = await _get_intake(db, intake_id, lock=True)
        if intake.user_id != actor.user_id:
            raise UnauthorizedError("Only the owner can edit an intake")
        if intake.status != IntakeStatus.DRAFT.value:
            raise InvalidTransitionError(
                intake.status,
                IntakeStatus.DRAFT.value,
                message="Only draft intakes can be edited",
            )
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "service_type" and value is not None:
                value = ServiceType(value).value
            setattr(intake, field, value)
    except ClientDeskError:
        await db.rollback()
        raise

    await _commit(db, "save intake draft")
    logger.info(f"Intake {intake_id} draft saved")
    return intake


# ---------------------------------------------------------------------------
# Staff operations
# ---------------------------------------------------------------------------


async def update_intake_status(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    intake_id: UUID,
    status: str | IntakeStatus,
) -> Intake:
    """
    Generic status change along INTAKE_TRANSITIONS.

    APPROVED and REJECTED are refused here; they belong to
    ``approve_intake`` / ``reject_intake``.
    """
    require_staff(actor)
    target = parse_intake_status(status)
    try:
        intake = await _get_intake(db, intake_id, lock=True)
        current = intake.status
        target = check_intake_transition(current, target)
        _apply_status(intake, target)
    except ClientDeskError:
        await db.rollback()
        raise

    await _commit(db, "update intake status")
    logger.info(f"Intake {intake_id} moved {current} -> {target.value}")
    return intake


async def analyze_intake(
    db: AsyncSession, actor: AuthenticatedContext | None, intake_id: UUID
) -> Intake:
    return await update_intake_status(db, actor, intake_id, IntakeStatus.UNDER_REVIEW)


async def approve_intake(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    intake_id: UUID,
    gateway: NotificationGateway | None = None,
) -> Project:
    """
    Approve an intake and create its project with the four default milestones.

    All or nothing: the intake update, the project and the milestones are
    committed together or not at all.

    Raises:
        NotFoundError: unknown intake.
        InvalidTransitionError: intake is not SUBMITTED or UNDER_REVIEW, or
            was anonymized by the retention run.
        AlreadyLinkedError: a project already exists for the intake.
        TransactionFailureError: the store failed; nothing was written.
    """
    actor = require_staff(actor)

    try:
        intake = await _get_intake(db, intake_id, lock=True)
        check_intake_reviewable(intake.status, IntakeStatus.APPROVED)
        if intake.anonymized_at is not None:
            raise InvalidTransitionError(
                intake.status,
                IntakeStatus.APPROVED.value,
                message="Anonymized intakes cannot be approved",
            )
        if await _linked_project_id(db, intake_id) is not None:
            raise AlreadyLinkedError("Intake already has a project")

        intake.status = IntakeStatus.APPROVED.value
        intake.reviewed_at = utcnow()
        intake.reviewed_by_id = actor.user_id

        project = Project(
            user_id=intake.user_id,
            intake_id=intake.intake_id,
            name=intake.company_name or f"Project {intake.intake_id}",
            description=intake.objectives,
            is_contractual=intake.is_contractual,
        )
        project.milestones = [
            Milestone(name=name, description=description, order=order, completed=False)
            for order, (name, description) in enumerate(DEFAULT_MILESTONES, start=1)
        ]
        project.progress = calculate_progress(project.milestones)
        db.add(project)

        await db.commit()
    except ClientDeskError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.warning(f"Concurrent approval of intake {intake_id} lost: {exc}")
        raise AlreadyLinkedError("Intake already has a project") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Approval of intake {intake_id} failed: {exc}", exc_info=True)
        raise TransactionFailureError("Failed to approve intake") from exc

    logger.info(f"Intake {intake_id} approved, project {project.project_id} created")

    await notify_safely(
        gateway,
        project.user_id,
        NotificationType.INTAKE_APPROVED,
        "Intake approved",
        f'Your intake was approved and the project "{project.name}" has been created.',
        metadata={
            "intake_id": str(intake_id),
            "project_id": str(project.project_id),
        },
    )
    return project


async def reject_intake(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    intake_id: UUID,
    reason: str,
    gateway: NotificationGateway | None = None,
) -> Intake:
    actor = require_staff(actor)
    reason = validate_rejection_reason(reason)

    try:
        intake = await _get_intake(db, intake_id, lock=True)
        check_intake_reviewable(intake.status, IntakeStatus.REJECTED)
        if await _linked_project_id(db, intake_id) is not None:
            raise AlreadyLinkedError("Intake already has a project")

        intake.status = IntakeStatus.REJECTED.value
        intake.rejection_reason = reason
        intake.reviewed_at = utcnow()
        intake.reviewed_by_id = actor.user_id
    except ClientDeskError:
        await db.rollback()
        raise

    await _commit(db, "reject intake")
    logger.info(f"Intake {intake_id} rejected")

    await notify_safely(
        gateway,
        intake.user_id,
        NotificationType.INTAKE_REJECTED,
        "Intake not approved",
        f"Your intake was not approved. Reason: {reason}",
        metadata={"intake_id": str(intake_id)},
    )
    return intake


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


def _visible_to(query, actor: AuthenticatedContext):
    if not is_staff(actor):
        query = query.where(Intake.user_id == actor.user_id)
    return query


async def list_intakes(
    db: AsyncSession,
    actor: AuthenticatedContext | None,
    filters: IntakeFilters | None = None,
) -> list[IntakeListItem]:
    """Newest first. Clients only see their own intakes."""
    actor = require_authenticated(actor)
    filters = validate_filters(filters)

    query = (
        select(Intake, Project.project_id)
        .outerjoin(Project, Project.intake_id == Intake.intake_id)
        .options(selectinload(Intake.user))
        .order_by(Intake.created_at.desc())
    )
    query = _visible_to(query, actor)

    if filters.status:
        query = query.where(Intake.status == filters.status.value)
    if filters.service_type:
        query = query.where(Intake.service_type == filters.service_type.value)
    if filters.search_term:
        pattern = f"%{filters.search_term}%"
        query = query.where(
            or_(
                Intake.company_name.ilike(pattern),
                Intake.segment.ilike(pattern),
                Intake.objectives.ilike(pattern),
            )
        )
    if filters.date_from:
        query = query.where(Intake.created_at >= filters.date_from)
    if filters.date_to:
        query = query.where(Intake.created_at <= filters.date_to)

    result = await db.execute(query)
    items = []
    for intake, project_id in result.all():
        item = IntakeListItem.model_validate(intake)
        item.project_id = project_id
        items.append(item)
    return items


async def get_intake(
    db: AsyncSession, actor: AuthenticatedContext | None, intake_id: UUID
) -> IntakeListItem:
    actor = require_authenticated(actor)
    query = (
        select(Intake)
        .options(selectinload(Intake.user))
        .where(Intake.intake_id == intake_id)
    )
    result = await db.execute(_visible_to(query, actor))
    intake = result.scalar_one_or_none()
    if intake is None:
        raise NotFoundError("Intake not found")

    item = IntakeListItem.model_validate(intake)
    item.project_id = await _linked_project_id(db, intake_id)
    return item


async def intake_stats(
    db: AsyncSession, actor: AuthenticatedContext | None
) -> IntakeStats:
    actor = require_authenticated(actor)
    query = _visible_to(
        select(Intake.status, func.count(Intake.intake_id)).group_by(Intake.status),
        actor,
    )
    result = await db.execute(query)
    counts = dict(result.all())
    return IntakeStats(total=sum(counts.values()), **counts)
