"""Tests for the first-run bootstrap logic."""

from sqlalchemy import select


async def test_bootstrap_creates_super_admin(db_session):
    """ensure_default_user creates a verified super admin on an empty DB."""
    from clientdesk.bootstrap import ensure_default_user
    from clientdesk.config import settings
    from clientdesk.models.iam.users import User

    await ensure_default_user(db_session)

    users = (await db_session.execute(select(User))).scalars().all()
    assert len(users) == 1
    assert users[0].email == settings.default_admin_email
    assert users[0].role == "super_admin"
    assert users[0].is_verified is True


async def test_bootstrap_is_idempotent(db_session):
    from clientdesk.bootstrap import ensure_default_user
    from clientdesk.models.iam.users import User

    await ensure_default_user(db_session)
    await ensure_default_user(db_session)

    count = len((await db_session.execute(select(User))).scalars().all())
    assert count == 1


async def test_bootstrap_skips_populated_database(db_session, client_user):
    from clientdesk.bootstrap import ensure_default_user
    from clientdesk.models.iam.users import User

    await ensure_default_user(db_session)

    roles = (await db_session.execute(select(User.role))).scalars().all()
    assert roles == ["client"]


async def test_default_user_can_login(db_session, test_client):
    from clientdesk.bootstrap import ensure_default_user
    from clientdesk.config import settings

    await ensure_default_user(db_session)

    resp = await test_client.post(
        "/api/v1/iam/users/login",
        json={
            "email": settings.default_admin_email,
            "password": settings.default_admin_password,
        },
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "super_admin"
