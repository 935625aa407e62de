"""
Enumerations for intake, project, and notification records.

Values are stored as plain strings and guarded by CHECK constraints.
"""

from enum import Enum


class ServiceType(str, Enum):
    """Service category requested in an intake"""

    ERP_BASIC = "erp_basic"
    ERP_ECOMMERCE = "erp_ecommerce"
    ERP_PREMIUM = "erp_premium"
    LANDING_AI = "landing_ai"
    LANDING_AI_WHATSAPP = "landing_ai_whatsapp"


class IntakeStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProjectStatus(str, Enum):
    AWAITING_APPROVAL = "awaiting_approval"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class NotificationType(str, Enum):
    NEW_INTAKE = "new_intake"
    PROJECT_UPDATED = "project_updated"
    NEW_MESSAGE = "new_message"
    FILE_REQUESTED = "file_requested"
    PROJECT_COMPLETED = "project_completed"
    INTAKE_APPROVED = "intake_approved"
    INTAKE_REJECTED = "intake_rejected"
    MILESTONE_COMPLETED = "milestone_completed"
    SYSTEM = "system"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"


ALL_CHANNELS = (
    NotificationChannel.IN_APP,
    NotificationChannel.EMAIL,
    NotificationChannel.PUSH,
)
