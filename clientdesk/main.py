"""
clientdesk API entry point.

On first startup provisions a default super admin. The notification gateway
and email sender live on ``app.state`` so tests and deployments can swap
them.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from clientdesk.config import settings
from clientdesk.api.v1.router import api_router
from clientdesk.api.v1.helpers.authentication import JWTOrTokenAuthenticationProvider
from clientdesk.api.v1.helpers.responses import domain_error_handler
from clientdesk.core.errors import ClientDeskError
from clientdesk.core.notifications import DatabaseNotificationGateway, LoggingEmailSender
from clientdesk.db.session import get_session_local
from clientdesk.bootstrap import ensure_default_user
from logging import getLogger, Filter
import logging

logger = getLogger(__name__)
logger.setLevel(logging.INFO)


class HealthCheckFilter(Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("/health") == -1


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)
app.add_exception_handler(ClientDeskError, domain_error_handler)


@app.on_event("startup")
async def startup_event():
    try:
        logger.info("--- Starting clientdesk startup ---")

        app.state.authentication_provider = JWTOrTokenAuthenticationProvider()
        app.state.email_sender = LoggingEmailSender()
        app.state.notification_gateway = DatabaseNotificationGateway(
            email_sender=app.state.email_sender
        )

        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as db:
            try:
                await ensure_default_user(db)
            except Exception as e:
                logger.error(f"Warning: Error during bootstrap: {e}", exc_info=True)

        logger.info("--- clientdesk startup completed ---")
    except Exception as e:
        logger.error(f"Warning: Failed to setup resources: {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown_event():
    try:
        logger.info("--- Server shutting down! ---")

        from clientdesk.db.session import dispose_engine

        await dispose_engine()
        logger.info("--- Database connections closed. ---")
    except Exception as e:
        logger.error(f"Warning: Error during shutdown: {e}")


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
