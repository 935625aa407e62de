"""
Valkey-backed run lock used to keep retention runs from overlapping.

The Valkey client is replaced by a MagicMock; only the lock protocol
(acquire, release, key naming, skip result) is exercised.
"""

from unittest.mock import MagicMock

import pytest

from clientdesk.config import settings
from clientdesk.tasks.task_lock import (
    acquire_task_lock,
    lock_key,
    skipped_run,
    with_task_lock,
)


@pytest.fixture()
def valkey_lock():
    lock = MagicMock()
    lock.acquire.return_value = True
    return lock


@pytest.fixture()
def valkey_client(valkey_lock):
    client = MagicMock()
    client.lock.return_value = valkey_lock
    return client


@pytest.fixture(autouse=True)
def patch_valkey(monkeypatch, valkey_client):
    monkeypatch.setattr(
        "clientdesk.tasks.task_lock.get_valkey_client", lambda: valkey_client
    )


class TestAcquireTaskLock:
    def test_key_and_timeout(self, valkey_client, valkey_lock, monkeypatch):
        monkeypatch.setattr(settings, "task_lock_timeout_seconds", 120)

        with acquire_task_lock("data_retention") as acquired:
            assert acquired is True

        args, kwargs = valkey_client.lock.call_args
        assert args[0] == "clientdesk:lock:data_retention"
        assert kwargs["timeout"] == 120
        assert kwargs["blocking_timeout"] == 0
        valkey_lock.acquire.assert_called_once_with(blocking=False)

    def test_busy_lock_is_not_released(self, valkey_lock):
        valkey_lock.acquire.return_value = False

        with acquire_task_lock("data_retention") as acquired:
            assert acquired is False
        valkey_lock.release.assert_not_called()

    def test_released_when_body_raises(self, valkey_lock):
        with pytest.raises(ValueError):
            with acquire_task_lock("data_retention"):
                raise ValueError("policy crashed")
        valkey_lock.release.assert_called_once()

    def test_release_failure_is_logged_not_raised(self, valkey_lock):
        valkey_lock.release.side_effect = ConnectionError("valkey gone")

        with acquire_task_lock("data_retention"):
            pass
        valkey_lock.release.assert_called_once()


def test_lock_key():
    assert lock_key("data_retention") == "clientdesk:lock:data_retention"


class TestWithTaskLock:
    def test_runs_body_and_returns_its_result(self, valkey_lock):
        @with_task_lock("nightly")
        def nightly():
            return {"success": True}

        assert nightly() == {"success": True}
        valkey_lock.release.assert_called_once()

    def test_default_skip_result(self, valkey_lock):
        valkey_lock.acquire.return_value = False
        body = MagicMock()

        @with_task_lock("nightly")
        def nightly():
            body()
            return {"success": True}

        result = nightly()

        body.assert_not_called()
        assert result == skipped_run("nightly")
        assert result["status"] == "skipped"
        assert result["reason"] == "previous_run_in_progress"

    def test_custom_skip_result(self, valkey_lock):
        valkey_lock.acquire.return_value = False

        @with_task_lock("nightly", on_skip=lambda name: {"skipped": name})
        def nightly():
            return {"success": True}

        assert nightly() == {"skipped": "nightly"}
        assert nightly.__name__ == "nightly"
