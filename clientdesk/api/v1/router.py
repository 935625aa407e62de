"""
Router assembly.

Product routes resolve the caller with ``get_optional_user`` and leave the
authorization decision to the service layer, which raises
``UnauthenticatedError`` / ``UnauthorizedError`` before touching data.
"""

from fastapi import APIRouter

from clientdesk.api.v1.endpoints import data_retention, intakes, projects
from clientdesk.api.v1.endpoints.iam import users as iam_users

api_router = APIRouter()
api_router.include_router(intakes.router, prefix="/intakes", tags=["intakes"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(
    data_retention.admin_router,
    prefix="/admin/data-retention",
    tags=["data-retention"],
)
api_router.include_router(
    data_retention.cron_router, prefix="/cron", tags=["data-retention"]
)

# IAM (login is public, /me checks auth per endpoint)
api_router.include_router(iam_users.router, prefix="/iam", tags=["iam"])
