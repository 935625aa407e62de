"""Manual and cron triggers of the data retention run."""

import pytest
from sqlalchemy import func, select

from clientdesk.models.iam.users import User
from clientdesk.utils import subtract_months, utcnow

ADMIN_RUN = "/api/v1/admin/data-retention/run"
CRON_RUN = "/api/v1/cron/data-retention"


@pytest.mark.asyncio
async def test_cron_requires_secret(test_client):
    missing = await test_client.get(CRON_RUN)
    assert missing.status_code == 401

    wrong = await test_client.get(
        CRON_RUN, headers={"Authorization": "Bearer wrong-secret"}
    )
    assert wrong.status_code == 401
    assert wrong.json()["detail"]["message"] == "Invalid cron secret"


@pytest.mark.asyncio
async def test_cron_runs_policies(
    test_client, db_session, user_factory, email_sender, monkeypatch
):
    from clientdesk.config import settings

    monkeypatch.setattr(settings, "cron_secret", "nightly-secret")
    stale = await user_factory(last_login=subtract_months(utcnow(), 13))
    await user_factory(
        email="idle@example.com", last_login=subtract_months(utcnow(), 11)
    )
    await db_session.commit()
    stale_id = stale.user_id

    resp = await test_client.get(
        CRON_RUN, headers={"Authorization": "Bearer nightly-secret"}
    )

    assert resp.status_code == 200
    report = resp.json()
    assert report["success"] is True
    assert report["summary"]["users_deleted"] == 1
    assert report["summary"]["warnings_sent"] == 1
    assert [to for to, _, _ in email_sender.sent] == ["idle@example.com"]
    assert (
        await db_session.scalar(
            select(func.count(User.user_id)).where(User.user_id == stale_id)
        )
        == 0
    )


@pytest.mark.asyncio
async def test_manual_run_requires_super_admin(
    test_client, admin_user, super_admin_user, bearer_headers
):
    admin = await test_client.post(ADMIN_RUN, headers=bearer_headers(admin_user.user_id))
    assert admin.status_code == 403

    anonymous = await test_client.post(ADMIN_RUN)
    assert anonymous.status_code == 401

    root = await test_client.post(
        ADMIN_RUN, headers=bearer_headers(super_admin_user.user_id)
    )
    assert root.status_code == 200
    assert root.json()["summary"] == {
        "warnings_sent": 0,
        "users_deleted": 0,
        "contractual_preserved": 0,
        "intakes_anonymized": 0,
    }
