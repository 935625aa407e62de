"""
Auth interface protocols.

The domain services only see an ``AuthenticatedContext`` (or ``None`` for an
anonymous caller); how that context is produced is up to the
``AuthenticationProvider`` registered on ``app.state`` at startup:

* ``app.state.authentication_provider``: ``AuthenticationProvider``
"""

from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession


# ---------------------------------------------------------------------------
# Authenticated context
# ---------------------------------------------------------------------------


@runtime_checkable
class AuthenticatedContext(Protocol):
    """Represents an authenticated caller, either a user session or an API token."""

    user_id: UUID
    email: str
    role: str
    token_id: UUID | None  # set when auth is via token

    @property
    def is_staff(self) -> bool: ...


# ---------------------------------------------------------------------------
# Authentication provider
# ---------------------------------------------------------------------------


@runtime_checkable
class AuthenticationProvider(Protocol):
    """Authenticates an incoming request and returns context."""

    async def authenticate(
        self,
        request: Any,
        db: AsyncSession,
    ) -> Any:
        """Return an ``AuthenticatedContext``-compatible object or raise 401."""
        ...
