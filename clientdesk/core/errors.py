"""
Domain error taxonomy for the lifecycle and retention services.

Each error carries the HTTP status the API layer renders it with, so the
services stay free of FastAPI imports.
"""

from fastapi import status


class ClientDeskError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ClientDeskError):
    """Malformed input, out-of-range text length, bad enum value."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ClientDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransitionError(ClientDeskError):
    """A status change outside the allowed transition table."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, from_status: str, to_status: str, message: str | None = None):
        super().__init__(
            message or f"Invalid status transition: {from_status} -> {to_status}"
        )
        self.from_status = from_status
        self.to_status = to_status


class AlreadyLinkedError(ClientDeskError):
    """The intake already has a project."""

    status_code = status.HTTP_409_CONFLICT


class UnauthenticatedError(ClientDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class UnauthorizedError(ClientDeskError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message)


class TransactionFailureError(ClientDeskError):
    """The store failed during an atomic write; nothing was persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
