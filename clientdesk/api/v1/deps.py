from fastapi import Request

from clientdesk.core.notifications import EmailSender, NotificationGateway


# Database dependency - use get_db directly with FastAPI's Depends()
# DO NOT create helper functions that call next(get_db()) as this breaks
# the generator pattern and causes connection leaks


def get_notification_gateway(request: Request) -> NotificationGateway | None:
    return getattr(request.app.state, "notification_gateway", None)


def get_email_sender(request: Request) -> EmailSender | None:
    return getattr(request.app.state, "email_sender", None)
