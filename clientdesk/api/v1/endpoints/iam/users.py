"""
IAM: login and profile.

Signup, email verification and password reset are handled outside this
service; accounts are provisioned by staff or by the bootstrap.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientdesk.api.v1.helpers.authentication import (
    ACCESS_TOKEN_EXPIRE_HOURS,
    AuthenticatedUser,
    create_access_token,
    get_current_user,
    verify_password,
)
from clientdesk.api.v1.helpers.responses import error_response
from clientdesk.db.session import get_db
from clientdesk.models.iam.users import User
from clientdesk.models.pydantic_models.user import UserModel
from clientdesk.utils import utcnow

router = APIRouter(prefix="/users", tags=["Users"])


# ── request / response schemas ────────────────────────────────────────────


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserModel


# ── endpoints ─────────────────────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email + password and receive a JWT.

    A successful login starts a new inactivity episode: ``last_login`` is
    stamped and any pending inactivity warning marker is cleared.
    """
    result = await db.execute(select(User).where(User.email == request.email))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise error_response("Invalid email or password", status_code=401)

    if not verify_password(request.password, user.hashed_password):
        raise error_response("Invalid email or password", status_code=401)

    user.last_login = utcnow()
    user.inactivity_warning_sent_at = None
    await db.commit()

    access_token = create_access_token(
        data={"sub": str(user.user_id)},
        expires_delta=timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS),
    )

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserModel.model_validate(user),
    )


@router.get("/me", response_model=UserModel)
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Return the authenticated user's profile."""
    return current_user.user
