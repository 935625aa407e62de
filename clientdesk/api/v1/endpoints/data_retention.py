"""
Data retention triggers.

The scheduled run is the Celery Beat task; these routes run the same policies
on demand (super admin) or from an external cron that authenticates with the
shared ``CRON_SECRET``.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clientdesk.api.v1.deps import get_email_sender
from clientdesk.api.v1.helpers.authentication import (
    AuthenticatedUser,
    get_optional_user,
)
from clientdesk.api.v1.helpers.permissions import require_super_admin
from clientdesk.api.v1.helpers.responses import unauthorized_response
from clientdesk.config import settings
from clientdesk.core.data_retention import RetentionReport, run_data_retention
from clientdesk.core.notifications import EmailSender
from clientdesk.db.session import get_db

logger = logging.getLogger(__name__)

admin_router = APIRouter()
cron_router = APIRouter()


def verify_cron_secret(request: Request) -> None:
    auth_header = request.headers.get("Authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        raise unauthorized_response("Missing cron secret")
    if not secrets.compare_digest(auth_header[7:], settings.cron_secret):
        raise unauthorized_response("Invalid cron secret")


@admin_router.post("/run", response_model=RetentionReport)
async def run_retention_manually(
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender | None = Depends(get_email_sender),
):
    """Run all retention policies now. Super admin only."""
    require_super_admin(user)
    logger.info(f"Data retention run triggered manually by {user.email}")
    return await run_data_retention(db, email_sender=email_sender)


@cron_router.get(
    "/data-retention",
    response_model=RetentionReport,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_retention_from_cron(
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender | None = Depends(get_email_sender),
):
    logger.info("Data retention run triggered by cron")
    return await run_data_retention(db, email_sender=email_sender)
