"""
Role guards used by the domain services.

Both guards run before any read or write: a missing identity is
``Unauthenticated``, a known identity without the role is ``Unauthorized``.
"""

from clientdesk.api.v1.helpers.auth_interface import AuthenticatedContext
from clientdesk.core.errors import UnauthenticatedError, UnauthorizedError
from clientdesk.models.iam.enums import STAFF_ROLES, UserRole


def require_authenticated(actor: AuthenticatedContext | None) -> AuthenticatedContext:
    if actor is None:
        raise UnauthenticatedError()
    return actor


def require_staff(actor: AuthenticatedContext | None) -> AuthenticatedContext:
    actor = require_authenticated(actor)
    if actor.role not in STAFF_ROLES:
        raise UnauthorizedError("Staff role required")
    return actor


def require_super_admin(actor: AuthenticatedContext | None) -> AuthenticatedContext:
    actor = require_authenticated(actor)
    if actor.role != UserRole.SUPER_ADMIN.value:
        raise UnauthorizedError("Super admin role required")
    return actor


def is_staff(actor: AuthenticatedContext | None) -> bool:
    return actor is not None and actor.role in STAFF_ROLES
