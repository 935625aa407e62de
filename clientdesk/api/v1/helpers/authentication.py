"""
Authentication helper functions.

Two credentials are accepted: a JWT bearer token issued by the login
endpoint, or an API token in the ``X-API-Token`` header (only its SHA-256
hash is stored). Both resolve to an ``AuthenticatedUser``.
"""

from datetime import timedelta, datetime, timezone
from uuid import UUID
import hashlib
import logging
import secrets

import bcrypt
from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clientdesk.api.v1.helpers.auth_interface import AuthenticationProvider
from clientdesk.api.v1.helpers.responses import unauthorized_response
from clientdesk.config import settings
from clientdesk.db.session import get_db
from clientdesk.models.iam import Token
from clientdesk.models.iam.enums import STAFF_ROLES
from clientdesk.models.iam.users import User
from clientdesk.models.pydantic_models.user import UserModel
from clientdesk.utils import ensure_aware

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token() -> tuple[str, str, str]:
    token_bytes = secrets.token_bytes(32)
    token_suffix = token_bytes.hex()
    prefix = settings.api_token_prefix
    full_token = f"{prefix}{token_suffix}"
    token_hash = hash_token(full_token)
    return full_token, token_hash, prefix


class AuthenticatedUser:
    """Container for an authenticated user, optionally reached via API token."""

    def __init__(self, user: UserModel, token_id: UUID | None = None):
        self.user = user
        self.user_id = user.user_id
        self.email = user.email
        self.role = user.role
        self.is_active = user.is_active
        self.token_id = token_id

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


async def get_token_user(token: str, db: AsyncSession) -> AuthenticatedUser:
    if not token or not token.startswith(settings.api_token_prefix):
        raise unauthorized_response("Invalid or inactive token")

    result = await db.execute(
        select(Token)
        .options(selectinload(Token.user))
        .filter(Token.token_hash == hash_token(token), Token.is_active.is_(True))
    )
    token_record = result.scalar_one_or_none()

    if not token_record:
        raise unauthorized_response("Invalid or inactive token")

    if token_record.expires_at and ensure_aware(token_record.expires_at) < datetime.now(
        timezone.utc
    ):
        raise unauthorized_response("Token has expired")

    if not token_record.user.is_active:
        raise unauthorized_response("User is inactive")

    return AuthenticatedUser(
        user=UserModel.model_validate(token_record.user),
        token_id=token_record.token_id,
    )


async def validate_jwt_token(jwt_token: str, db: AsyncSession) -> UserModel:
    try:
        payload = jwt.decode(jwt_token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise unauthorized_response("Invalid JWT")

    user_id = payload.get("sub")
    if user_id is None:
        raise unauthorized_response("No user id found in token")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise unauthorized_response("Invalid JWT")

    result = await db.execute(select(User).filter(User.user_id == user_uuid))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise unauthorized_response("Invalid or inactive user")

    if not user.is_verified and settings.require_email_verification:
        raise unauthorized_response("User is not verified")

    return UserModel.model_validate(user)


class JWTOrTokenAuthenticationProvider:
    """Default provider: API token first, then JWT bearer."""

    async def authenticate(
        self,
        request: Request,
        db: AsyncSession,
    ) -> AuthenticatedUser | None:
        api_token, jwt_token = _read_credentials(request)
        return await _authenticate_with_tokens(api_token, jwt_token, db)


def _read_credentials(request: Request) -> tuple[str | None, str | None]:
    api_token = request.headers.get("X-API-Token") or None
    auth_header = request.headers.get("Authorization")
    jwt_token = (
        auth_header[7:]
        if auth_header and auth_header.lower().startswith("bearer ")
        else None
    )
    return api_token, jwt_token


async def _authenticate_with_tokens(
    api_token: str | None,
    jwt_token: str | None,
    db: AsyncSession,
) -> AuthenticatedUser | None:
    """Resolve credentials; ``None`` when the request carries none."""
    if api_token:
        return await get_token_user(api_token, db)

    if jwt_token:
        user_model = await validate_jwt_token(jwt_token, db)
        return AuthenticatedUser(user=user_model)

    return None


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUser | None:
    """
    Identity for endpoints whose service enforces authorization itself.

    Anonymous requests yield ``None`` and the service raises
    ``UnauthenticatedError``; invalid credentials are still a 401 here.
    """
    provider: AuthenticationProvider | None = getattr(
        request.app.state, "authentication_provider", None
    )
    if provider is not None:
        return await provider.authenticate(request, db)

    api_token, jwt_token = _read_credentials(request)
    return await _authenticate_with_tokens(api_token, jwt_token, db)


async def get_current_user(
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> AuthenticatedUser:
    if user is None:
        raise unauthorized_response("No authentication method found")
    return user
