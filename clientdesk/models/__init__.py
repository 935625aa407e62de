from .iam import (
    UserRole as UserRole,
    User as User,
    Token as Token,
)

from .intakes import Intake as Intake
from .projects import Project as Project, Milestone as Milestone
from .notifications import (
    Notification as Notification,
    NotificationPreference as NotificationPreference,
)
from .data_retention import DataDeletionLog as DataDeletionLog
