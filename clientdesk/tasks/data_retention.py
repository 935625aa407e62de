"""
Data retention task - warns, deletes and anonymizes by inactivity age.

Runs daily via Celery Beat. Guarded by a Valkey lock so a slow run is never
overlapped by the next one.
"""

import asyncio
import logging
from datetime import datetime

from celery import shared_task

from clientdesk.core.data_retention import RetentionReport, RetentionSummary
from clientdesk.core.data_retention import run_data_retention as run_retention_policies
from clientdesk.db.session import dispose_engine, get_session_local
from clientdesk.tasks.task_lock import with_task_lock

logger = logging.getLogger(__name__)

LOCK_NAME = "data_retention"


def _skipped_report(job_name: str) -> dict:
    return {
        **RetentionReport(
            success=False,
            summary=RetentionSummary(),
            errors=[f"{job_name} skipped: previous run still in progress"],
        ).model_dump(),
        "skipped": True,
    }


async def _run_data_retention(now: datetime | None = None) -> dict:
    try:
        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as session:
            report = await run_retention_policies(session, now=now)
        if not report.success:
            logger.warning(
                f"Data retention finished with {len(report.errors)} errors"
            )
        return report.model_dump()
    except Exception as exc:
        logger.error(f"Data retention run failed: {exc}", exc_info=True)
        raise
    finally:
        await dispose_engine()


@shared_task(name="data_retention.run_data_retention")
@with_task_lock(LOCK_NAME, on_skip=_skipped_report)
def run_data_retention() -> dict:
    """
    Celery task running the three retention policies.

    Returns:
        Dict with ``success``, ``summary`` counts and ``errors``. A run that
        finds the lock taken does nothing and also sets ``skipped``.
    """
    return asyncio.run(_run_data_retention())
