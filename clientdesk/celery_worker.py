from clientdesk.celery_app import celery_app
from clientdesk.tasks import data_retention

__all__ = [
    "celery_app",
    "data_retention",
]
