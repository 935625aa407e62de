"""
Enumerations for the IAM system.
"""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of possible user roles"""

    CLIENT = "client"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value})
