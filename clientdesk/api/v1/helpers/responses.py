"""
Standardized response helpers for consistent API responses.
"""

from typing import Any
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from clientdesk.core.errors import ClientDeskError


class APIResponse(BaseModel):
    """Standard API response model"""

    success: bool
    message: str
    data: Any | None = None
    errors: list[str] | None = None


def error_response(
    message: str = "An error occurred",
    errors: list[str] | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Create an error response"""
    response_data = APIResponse(success=False, message=message, errors=errors or [])

    raise HTTPException(status_code=status_code, detail=response_data.model_dump())


def unauthorized_response(message: str = "Authentication required") -> HTTPException:
    """Create an unauthorized error response"""
    return error_response(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


async def domain_error_handler(request: Request, exc: ClientDeskError) -> JSONResponse:
    """Render domain errors in the same envelope as ``error_response``."""
    response_data = APIResponse(success=False, message=exc.message, errors=exc.errors)
    return JSONResponse(
        status_code=exc.status_code, content={"detail": response_data.model_dump()}
    )
