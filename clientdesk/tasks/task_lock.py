"""
Valkey run locks for scheduled jobs.

The nightly retention run must never overlap itself: two runs could both
pick the same user for deletion, or race on the warning marker. A lock is
taken per job name and held for the whole run. ``task_lock_timeout_seconds``
only matters when a worker dies while holding it.
"""

import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any
from collections.abc import Callable, Iterator
from valkey import Valkey

from clientdesk.config import settings

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "clientdesk:lock:"


def get_valkey_client() -> Valkey:
    return Valkey(
        host=settings.valkey_host,
        port=settings.valkey_port,
        db=settings.valkey_db,
        password=settings.valkey_auth_token if settings.valkey_auth_token else None,
        ssl=True if settings.valkey_auth_token else False,
        decode_responses=False,
    )


def lock_key(job_name: str) -> str:
    return f"{LOCK_KEY_PREFIX}{job_name}"


@contextmanager
def acquire_task_lock(job_name: str) -> Iterator[bool]:
    """
    Try once to take the run lock for ``job_name``.

    Yields whether the lock was taken. It is released on exit, including
    when the body raises; a failed release is logged and left to expire.
    """
    lock = get_valkey_client().lock(
        lock_key(job_name),
        timeout=settings.task_lock_timeout_seconds,
        blocking_timeout=0,
    )

    acquired = False
    try:
        acquired = lock.acquire(blocking=False)
        if acquired:
            logger.info(f"Run lock taken: {job_name}")
        else:
            logger.info(f"Run lock busy, {job_name} is still running elsewhere")
        yield acquired
    finally:
        if acquired:
            try:
                lock.release()
                logger.info(f"Run lock released: {job_name}")
            except Exception as e:
                logger.warning(f"Could not release run lock {job_name}: {e}")


def skipped_run(job_name: str) -> dict[str, Any]:
    return {
        "status": "skipped",
        "reason": "previous_run_in_progress",
        "message": f"{job_name} is already running, this run was skipped",
    }


def with_task_lock(
    job_name: str,
    on_skip: Callable[[str], dict[str, Any]] = skipped_run,
):
    """
    Run the decorated Celery task body only while holding ``job_name``'s lock.

    When the lock is busy the body is not called and ``on_skip(job_name)``
    is returned instead.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            with acquire_task_lock(job_name) as acquired:
                if not acquired:
                    return on_skip(job_name)
                return func(*args, **kwargs)

        return wrapper

    return decorator
