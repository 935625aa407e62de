"""
IAM models: users, their API tokens, and roles.
"""

from .enums import UserRole, STAFF_ROLES
from .users import User
from .tokens import Token

__all__ = [
    "UserRole",
    "STAFF_ROLES",
    "User",
    "Token",
]
