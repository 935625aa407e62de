"""
Data retention policies.

Three independent batch policies, run in this order by
``run_data_retention``:

1. Inactivity warning: clients inactive for [11, 12) months get one email
   per inactivity episode. The marker (``users.inactivity_warning_sent_at``)
   is claimed with a conditional UPDATE before sending, so two overlapping
   runs cannot both send, and released again when the send fails.
2. Inactive-data deletion: clients inactive for 12+ months are deleted
   together with their non-contractual intakes and projects. Contractual
   records are kept with the owner detached (5-year statutory retention).
3. Intake anonymization: intakes older than 24 months that never became a
   project lose their identifying text and their owner.

Age is measured from ``last_login``, falling back to ``created_at``, in
calendar months. A failure on one record is recorded and the batch moves on.
"""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clientdesk.config import settings
from clientdesk.core.errors import NotFoundError
from clientdesk.core.notifications import EmailSender, LoggingEmailSender
from clientdesk.models.data_retention import DataDeletionLog
from clientdesk.models.iam.enums import UserRole
from clientdesk.models.iam.users import User
from clientdesk.models.intakes import Intake
from clientdesk.models.projects import Project
from clientdesk.utils import ensure_aware, subtract_months, utcnow

logger = logging.getLogger(__name__)

ANONYMIZED_COMPANY_NAME = "[ANONYMIZED]"
ANONYMIZED_OBJECTIVES = "[Data removed under the data retention policy]"

INACTIVITY_DELETION_REASON = "Inactive for 12 months"
CONTRACTUAL_PRESERVED_MARKER = "contractual_data_preserved_5_years"

# Categories removed with every user; recorded in the deletion log
DELETED_DATA_TYPES = (
    "user",
    "intakes",
    "projects",
    "milestones",
    "notifications",
    "notification_preferences",
    "tokens",
)

# Free-text intake fields cleared on anonymization
ANONYMIZED_NULL_FIELDS = (
    "segment",
    "budget",
    "deadline",
    "features",
    "references",
    "integrations",
    "additional_info",
    "rejection_reason",
)


class WarningResult(BaseModel):
    success: bool = True
    warnings_sent: int = 0
    errors: list[str] = []


class DeletionResult(BaseModel):
    success: bool = True
    users_deleted: int = 0
    contractual_preserved: int = 0
    errors: list[str] = []


class AnonymizationResult(BaseModel):
    success: bool = True
    intakes_anonymized: int = 0
    errors: list[str] = []


class RetentionSummary(BaseModel):
    warnings_sent: int = 0
    users_deleted: int = 0
    contractual_preserved: int = 0
    intakes_anonymized: int = 0


class RetentionReport(BaseModel):
    success: bool
    summary: RetentionSummary
    errors: list[str] = []


def _last_activity():
    return func.coalesce(User.last_login, User.created_at)


def _retention_candidates():
    """Clients that may be warned or deleted: not on hold and email-verified."""
    return select(User).where(
        User.role == UserRole.CLIENT.value,
        User.legal_hold.is_(False),
        User.email_verified_at.is_not(None),
    )


def _warning_email(user: User, now: datetime) -> tuple[str, str]:
    last_activity = ensure_aware(user.last_login or user.created_at)
    deletion_date = subtract_months(
        last_activity, -settings.retention_deletion_months
    )
    days_left = max((deletion_date - now).days, 0)
    subject = "Your account will be deleted due to inactivity"
    body = (
        f"Hello {user.full_name or 'there'},\n\n"
        f"We have not seen you since {last_activity:%d %B %Y}. Under our data "
        f"retention policy your account and its data will be deleted in about "
        f"{days_left} days. Sign in at {settings.frontend_url} to keep your "
        f"account."
    )
    return subject, body


# ---------------------------------------------------------------------------
# Warning
# ---------------------------------------------------------------------------


async def _claim_warning_marker(
    db: AsyncSession, user_id: UUID, claimed_at: datetime
) -> bool:
    result = await db.execute(
        update(User)
        .where(
            User.user_id == user_id,
            User.inactivity_warning_sent_at.is_(None),
        )
        .values(inactivity_warning_sent_at=claimed_at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def _release_warning_marker(
    db: AsyncSession, user_id: UUID, claimed_at: datetime
) -> None:
    await db.execute(
        update(User)
        .where(
            User.user_id == user_id,
            User.inactivity_warning_sent_at == claimed_at,
        )
        .values(inactivity_warning_sent_at=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def send_inactivity_warnings(
    db: AsyncSession,
    now: datetime | None = None,
    email_sender: EmailSender | None = None,
) -> WarningResult:
    now = now or utcnow()
    email_sender = email_sender or LoggingEmailSender()
    warning_cutoff = subtract_months(now, settings.retention_warning_months)
    deletion_cutoff = subtract_months(now, settings.retention_deletion_months)

    result = await db.execute(
        _retention_candidates().where(
            User.inactivity_warning_sent_at.is_(None),
            _last_activity() <= warning_cutoff,
            _last_activity() > deletion_cutoff,
        )
    )
    # Plain values: a rollback below expires the loaded rows
    candidates = [
        (user.user_id, user.email, *_warning_email(user, now))
        for user in result.scalars().all()
    ]
    logger.info(f"Data retention: {len(candidates)} inactive users due a warning")

    report = WarningResult()
    for user_id, email, subject, body in candidates:
        try:
            if not await _claim_warning_marker(db, user_id, now):
                logger.info(f"Data retention: warning for {email} already claimed")
                continue
        except Exception as exc:
            await db.rollback()
            logger.error(f"Could not claim warning for {email}: {exc}", exc_info=True)
            report.errors.append(f"Error sending warning to {email}: {exc}")
            continue

        try:
            await email_sender.send(email, subject, body)
        except Exception as exc:
            logger.error(f"Warning email to {email} failed: {exc}", exc_info=True)
            report.errors.append(f"Error sending warning to {email}: {exc}")
            try:
                await _release_warning_marker(db, user_id, now)
            except Exception as release_exc:
                await db.rollback()
                logger.error(
                    f"Could not release warning marker for {email}: {release_exc}",
                    exc_info=True,
                )
            continue

        report.warnings_sent += 1
        logger.info(f"Data retention: inactivity warning sent to {email}")

    logger.info(f"Data retention: {report.warnings_sent} inactivity warnings sent")
    return report


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


async def delete_user_data(
    db: AsyncSession,
    user_id: UUID,
    reason: str,
    deleted_by: UUID | None = None,
) -> bool:
    """
    Delete one user in a single transaction.

    Non-contractual intakes and projects are deleted (milestones cascade);
    contractual ones keep existing with ``user_id`` set to NULL. Returns
    whether any contractual record was preserved.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    contractual_intakes = await db.scalar(
        select(func.count(Intake.intake_id)).where(
            Intake.user_id == user_id, Intake.is_contractual.is_(True)
        )
    )
    contractual_projects = await db.scalar(
        select(func.count(Project.project_id)).where(
            Project.user_id == user_id, Project.is_contractual.is_(True)
        )
    )
    has_contractual = bool(contractual_intakes or contractual_projects)

    data_types = list(DELETED_DATA_TYPES)
    if has_contractual:
        data_types.append(CONTRACTUAL_PRESERVED_MARKER)

    db.add(
        DataDeletionLog(
            user_id=user_id,
            user_email=user.email,
            reason=reason,
            deleted_by=deleted_by,
            data_types=data_types,
        )
    )

    projects = await db.execute(
        select(Project).where(
            Project.user_id == user_id, Project.is_contractual.is_(False)
        )
    )
    for project in projects.scalars().all():
        await db.delete(project)

    intakes = await db.execute(
        select(Intake).where(
            Intake.user_id == user_id, Intake.is_contractual.is_(False)
        )
    )
    for intake in intakes.scalars().all():
        await db.delete(intake)

    if has_contractual:
        await db.execute(
            update(Intake)
            .where(Intake.user_id == user_id, Intake.is_contractual.is_(True))
            .values(user_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Project)
            .where(Project.user_id == user_id, Project.is_contractual.is_(True))
            .values(user_id=None)
            .execution_options(synchronize_session=False)
        )

    await db.delete(user)
    await db.commit()
    return has_contractual


async def delete_inactive_data(
    db: AsyncSession, now: datetime | None = None
) -> DeletionResult:
    now = now or utcnow()
    deletion_cutoff = subtract_months(now, settings.retention_deletion_months)

    result = await db.execute(
        _retention_candidates().where(_last_activity() <= deletion_cutoff)
    )
    candidates = [(user.user_id, user.email) for user in result.scalars().all()]
    logger.info(f"Data retention: {len(candidates)} users inactive for 12+ months")

    report = DeletionResult()
    for user_id, email in candidates:
        try:
            preserved = await delete_user_data(
                db, user_id, INACTIVITY_DELETION_REASON
            )
        except Exception as exc:
            await db.rollback()
            logger.error(f"Deleting data of {email} failed: {exc}", exc_info=True)
            report.errors.append(f"Error deleting data of {email}: {exc}")
            continue

        report.users_deleted += 1
        if preserved:
            report.contractual_preserved += 1
        logger.info(
            f"Data retention: deleted {email}"
            + (" (contractual data preserved)" if preserved else "")
        )

    logger.info(
        f"Data retention: {report.users_deleted} users deleted, "
        f"{report.contractual_preserved} with contractual data preserved"
    )
    return report


# ---------------------------------------------------------------------------
# Anonymization
# ---------------------------------------------------------------------------


async def anonymize_intakes(
    db: AsyncSession, now: datetime | None = None
) -> AnonymizationResult:
    now = now or utcnow()
    cutoff = subtract_months(now, settings.retention_anonymization_months)

    result = await db.execute(
        select(Intake.intake_id).where(
            Intake.created_at <= cutoff,
            Intake.anonymized_at.is_(None),
            ~Intake.project.has(),
        )
    )
    intake_ids = result.scalars().all()
    logger.info(f"Data retention: {len(intake_ids)} unconverted intakes to anonymize")

    report = AnonymizationResult()
    for intake_id in intake_ids:
        try:
            intake = await db.get(Intake, intake_id)
            if intake is None:
                continue
            intake.company_name = ANONYMIZED_COMPANY_NAME
            intake.objectives = ANONYMIZED_OBJECTIVES
            for field in ANONYMIZED_NULL_FIELDS:
                setattr(intake, field, None)
            intake.user_id = None
            intake.anonymized_at = now
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.error(f"Anonymizing intake {intake_id} failed: {exc}", exc_info=True)
            report.errors.append(f"Error anonymizing intake {intake_id}: {exc}")
            continue
        report.intakes_anonymized += 1

    logger.info(f"Data retention: {report.intakes_anonymized} intakes anonymized")
    return report


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def run_data_retention(
    db: AsyncSession,
    now: datetime | None = None,
    email_sender: EmailSender | None = None,
) -> RetentionReport:
    """
    Run warning, deletion and anonymization in order.

    A policy that fails as a whole is reported as an error; the remaining
    policies still run.
    """
    now = now or utcnow()
    logger.info("Data retention: starting run")

    errors: list[str] = []
    summary = RetentionSummary()

    try:
        warnings = await send_inactivity_warnings(db, now, email_sender)
        summary.warnings_sent = warnings.warnings_sent
        errors.extend(warnings.errors)
    except Exception as exc:
        await db.rollback()
        logger.error(f"Inactivity warning policy failed: {exc}", exc_info=True)
        errors.append(f"Inactivity warning policy failed: {exc}")

    try:
        deletion = await delete_inactive_data(db, now)
        summary.users_deleted = deletion.users_deleted
        summary.contractual_preserved = deletion.contractual_preserved
        errors.extend(deletion.errors)
    except Exception as exc:
        await db.rollback()
        logger.error(f"Inactive data deletion policy failed: {exc}", exc_info=True)
        errors.append(f"Inactive data deletion policy failed: {exc}")

    try:
        anonymization = await anonymize_intakes(db, now)
        summary.intakes_anonymized = anonymization.intakes_anonymized
        errors.extend(anonymization.errors)
    except Exception as exc:
        await db.rollback()
        logger.error(f"Intake anonymization policy failed: {exc}", exc_info=True)
        errors.append(f"Intake anonymization policy failed: {exc}")

    report = RetentionReport(success=not errors, summary=summary, errors=errors)
    logger.info(f"Data retention: run finished {summary.model_dump()}")
    return report
