"""
Shared test fixtures for clientdesk.

Uses the database at TEST_DATABASE_URL (a local Postgres) or, by
default, an in-memory SQLite database, with per-test table create/drop.
Notifications and email go to in-memory recorders.
"""

import os
from datetime import datetime
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from clientdesk.db.base import Base  # noqa: E402
import clientdesk.models  # noqa: E402,F401
from clientdesk.main import app  # noqa: E402
from clientdesk.models.enums import ALL_CHANNELS  # noqa: E402
from clientdesk.core.notifications import NotificationResult  # noqa: E402

TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

VALID_INTAKE = {
    "service_type": "erp_basic",
    "company_name": "Acme Bakery",
    "segment": "Food retail",
    "objectives": "Automate orders, stock and invoicing for three stores.",
    "budget": "10k-20k",
    "deadline": "Q3",
    "features": "Orders, stock, invoices",
    "references": "https://example.com",
    "integrations": "WhatsApp",
    "additional_info": {"stores": 3},
}


# ---------------------------------------------------------------------------
# Recorders
# ---------------------------------------------------------------------------


class RecordingGateway:
    """NotificationGateway double that records every event."""

    def __init__(self, fail: bool = False):
        self.calls: list[dict[str, Any]] = []
        self.fail = fail

    async def notify(
        self,
        user_id,
        event_type,
        title,
        message,
        channels=ALL_CHANNELS,
        metadata=None,
    ) -> NotificationResult:
        self.calls.append(
            {
                "user_id": user_id,
                "event_type": event_type,
                "title": title,
                "message": message,
                "metadata": metadata,
            }
        )
        if self.fail:
            raise RuntimeError("notification backend down")
        return NotificationResult(success=True, delivered=["in_app"])

    def events(self) -> list[str]:
        return [call["event_type"].value for call in self.calls]


class RecordingEmailSender:
    def __init__(self, fail_for: set[str] | None = None):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = fail_for or set()

    async def send(self, to: str, subject: str, body: str) -> None:
        from clientdesk.core.notifications import EmailDeliveryError

        if to in self.fail_for:
            raise EmailDeliveryError(f"mailbox unavailable: {to}")
        self.sent.append((to, subject, body))


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    if TEST_DB_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DB_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    else:
        engine = create_async_engine(TEST_DB_URL, pool_pre_ping=True, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    """Fresh tables per test: drop → create → yield session → drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture()
async def session_factory(test_engine):
    """Session factory bound to the test engine, for components that open their own sessions."""
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )


# ---------------------------------------------------------------------------
# Notification / email doubles
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def gateway():
    return RecordingGateway()


@pytest_asyncio.fixture()
async def failing_gateway():
    return RecordingGateway(fail=True)


@pytest_asyncio.fixture()
async def email_sender():
    return RecordingEmailSender()


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session, gateway, email_sender):
    from clientdesk.db.session import get_db
    from clientdesk.api.v1.helpers.authentication import (
        JWTOrTokenAuthenticationProvider,
    )

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.authentication_provider = JWTOrTokenAuthenticationProvider()
    app.state.notification_gateway = gateway
    app.state.email_sender = email_sender

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session):
    from clientdesk.api.v1.helpers.authentication import hash_password
    from clientdesk.models.iam.users import User
    from clientdesk.utils import utcnow

    async def _create(
        email: str | None = None,
        role: str = "client",
        full_name: str = "Test User",
        password: str = "password123",
        verified: bool = True,
        legal_hold: bool = False,
        last_login: datetime | None = None,
        created_at: datetime | None = None,
        inactivity_warning_sent_at: datetime | None = None,
    ) -> User:
        user = User(
            email=email or f"user+{uuid4().hex[:6]}@example.com",
            full_name=full_name,
            hashed_password=hash_password(password),
            role=role,
            is_active=True,
            email_verified_at=utcnow() if verified else None,
            legal_hold=legal_hold,
            last_login=last_login,
            inactivity_warning_sent_at=inactivity_warning_sent_at,
        )
        if created_at is not None:
            user.created_at = created_at
        db_session.add(user)
        await db_session.flush()
        return user

    return _create


@pytest_asyncio.fixture(scope="function")
async def intake_factory(db_session):
    from clientdesk.models.intakes import Intake
    from clientdesk.utils import utcnow

    async def _create(
        user_id,
        status: str = "submitted",
        is_contractual: bool = False,
        created_at: datetime | None = None,
        **overrides,
    ) -> Intake:
        values = {**VALID_INTAKE, **overrides}
        intake = Intake(
            user_id=user_id,
            status=status,
            is_contractual=is_contractual,
            submitted_at=utcnow() if status != "draft" else None,
            **values,
        )
        if created_at is not None:
            intake.created_at = created_at
        db_session.add(intake)
        await db_session.flush()
        return intake

    return _create


@pytest_asyncio.fixture(scope="function")
async def project_factory(db_session):
    """Project with the four default milestones, created outside the approval flow."""
    from clientdesk.models.projects import DEFAULT_MILESTONES, Milestone, Project

    async def _create(
        user_id,
        intake_id=None,
        name: str = "Acme Bakery",
        status: str = "active",
        is_contractual: bool = False,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        completed_milestones: int = 0,
    ) -> Project:
        project = Project(
            user_id=user_id,
            intake_id=intake_id,
            name=name,
            status=status,
            is_contractual=is_contractual,
            started_at=started_at,
            completed_at=completed_at,
            progress=25 * completed_milestones,
        )
        project.milestones = [
            Milestone(
                name=milestone_name,
                description=description,
                order=order,
                completed=order <= completed_milestones,
            )
            for order, (milestone_name, description) in enumerate(
                DEFAULT_MILESTONES, start=1
            )
        ]
        db_session.add(project)
        await db_session.flush()
        return project

    return _create


def _actor_for(user):
    from clientdesk.api.v1.helpers.authentication import AuthenticatedUser
    from clientdesk.models.pydantic_models.user import UserModel

    return AuthenticatedUser(user=UserModel.model_validate(user))


@pytest.fixture
def make_actor():
    """AuthenticatedUser for an ORM user, as the API dependency builds it."""
    return _actor_for


@pytest.fixture
def bearer_headers():
    from clientdesk.api.v1.helpers.authentication import create_access_token

    def _headers(user_id) -> dict[str, str]:
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def client_user(user_factory, db_session):
    user = await user_factory(email="client@example.com", full_name="Client")
    await db_session.commit()
    return user


@pytest_asyncio.fixture(scope="function")
async def admin_user(user_factory, db_session):
    user = await user_factory(email="staff@example.com", role="admin", full_name="Staff")
    await db_session.commit()
    return user


@pytest_asyncio.fixture(scope="function")
async def super_admin_user(user_factory, db_session):
    user = await user_factory(
        email="root@example.com", role="super_admin", full_name="Root"
    )
    await db_session.commit()
    return user


@pytest_asyncio.fixture(scope="function")
async def client_actor(client_user):
    return _actor_for(client_user)


@pytest_asyncio.fixture(scope="function")
async def admin_actor(admin_user):
    return _actor_for(admin_user)
