"""
Bootstrap: provision a super admin on first startup when the database has
no users yet.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientdesk.api.v1.helpers.authentication import hash_password
from clientdesk.config import settings
from clientdesk.models.iam.enums import UserRole
from clientdesk.models.iam.users import User
from clientdesk.utils import utcnow

logger = logging.getLogger(__name__)


async def ensure_default_user(db: AsyncSession) -> None:
    """Create the default super admin on first run.

    If *any* user already exists the function returns immediately, so the
    bootstrap only ever runs on a completely fresh database.
    """
    result = await db.execute(select(User).limit(1))
    if result.scalar_one_or_none() is not None:
        return  # already provisioned

    user = User(
        email=settings.default_admin_email,
        full_name="Admin",
        hashed_password=hash_password(settings.default_admin_password),
        role=UserRole.SUPER_ADMIN.value,
        is_active=True,
        email_verified_at=utcnow(),
    )
    db.add(user)
    await db.commit()

    logger.info(
        "=== FIRST RUN: provisioned default super admin ===\n"
        "  email:        %s\n"
        "  password:     %s\n"
        "Change the default password after first login.",
        settings.default_admin_email,
        settings.default_admin_password,
    )
