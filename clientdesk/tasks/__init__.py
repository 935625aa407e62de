from clientdesk.tasks import data_retention  # noqa: F401

__all__ = [
    "data_retention",
]
