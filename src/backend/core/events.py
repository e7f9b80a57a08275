"""
Application lifecycle event handlers.

Manages startup and shutdown tasks for the background scheduler, session
tracking and Cosmos DB connections.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.cosmos_session import close_cosmos
from repositories.provider import close_backends, is_cosmos_enabled
from services.identity_service import get_auth_service
from services.session import get_session_registry

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("Starting IssueBoard API...", env=settings.APP_ENV)

        # Sign-out closes the user's open sessions
        app.state.unregister_session_listener = get_auth_service().on_principal_change(
            get_session_registry().on_principal_change
        )

        if not is_cosmos_enabled():
            logger.warning("Cosmos DB is not configured; only demo sessions will work")

        # Refresh the shared issue feed for live subscribers
        if settings.ISSUE_FEED_REFRESH_SECONDS > 0:
            try:
                from services.background_scheduler import start_scheduler

                await start_scheduler()
            except Exception as e:
                logger.exception("Failed to start background scheduler", error=str(e))
                logger.warning("Live issue feeds will only update on local mutations")

        logger.info("IssueBoard API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down IssueBoard API...")

        try:
            from services.background_scheduler import stop_scheduler

            await stop_scheduler()
        except Exception as e:
            logger.warning(f"Background scheduler cleanup failed: {e}")

        unregister = getattr(app.state, "unregister_session_listener", None)
        if unregister is not None:
            unregister()
        get_session_registry().clear()

        close_backends()
        await close_cosmos()

        logger.info("IssueBoard API shutdown complete")

    return stop_app
