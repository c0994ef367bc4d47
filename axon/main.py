"""
Main application entry point for the Axon brain-training backend.

Usage:
    - Direct: python -m axon.main
    - ASGI server: uvicorn axon.main:app
"""

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from axon import __version__
from axon.api import main_router, register_exception_handlers
from axon.common.logger import app_logger, configure_logger
from axon.common.tasks import FollowUpTaskQueue
from axon.config import Settings, settings as default_settings
from axon.content import ContentSelector, ContentType, ExclusionTracker, WordCatalog
from axon.database.init_db import close_database, create_schema, get_session_factory, initialize_database
from axon.training import TrainingSessionService

logger = app_logger.getChild("main")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Services are created on startup and kept on ``app.state``; shutdown
    waits for follow-up tasks before closing the database.
    """
    settings = settings or default_settings

    configure_logger(
        level=settings.LOG_LEVEL,
        format_string=settings.LOG_FORMAT,
        use_json=settings.LOG_JSON
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for Axon brain-training exercises",
        version=__version__
    )
    app.state.settings = settings
    app.state.debug_errors = settings.is_development

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(main_router, prefix=settings.API_PREFIX)
    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        """Initialize database and services on application startup."""
        try:
            engine = await initialize_database(
                database_url=settings.DATABASE_URL,
                echo=settings.SQL_ECHO,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT
            )
            if settings.AUTO_CREATE_SCHEMA:
                await create_schema(engine)
        except Exception as e:
            logger.error(f"Startup aborted: {e}")
            raise

        session_factory = get_session_factory()
        task_queue = FollowUpTaskQueue(
            max_retries=settings.FOLLOWUP_MAX_RETRIES,
            retry_delay=settings.FOLLOWUP_RETRY_DELAY
        )
        tracker = ExclusionTracker(
            session_factory,
            content_type=ContentType.WORD,
            session_window=settings.EXCLUSION_SESSION_WINDOW,
            retention=settings.EXCLUSION_RETENTION
        )

        app.state.task_queue = task_queue
        app.state.word_catalog = WordCatalog(settings.WORD_DATA_DIR)
        app.state.exclusion_tracker = tracker
        app.state.content_selector = ContentSelector(app.state.word_catalog, tracker, task_queue)
        app.state.training_service = TrainingSessionService(session_factory, task_queue)

        logger.info("Axon services ready")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Drain follow-up tasks and close the database."""
        try:
            await app.state.task_queue.shutdown()
            await close_database()
            logger.info("Axon services stopped")
        except Exception as e:
            logger.error(f"Shutdown failed: {e}")
            raise

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    logger.info(f"Created app with {len(app.routes)} routes (env: {settings.ENV})")
    return app


app = create_app()

# python -m axon.main
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "true").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "axon.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
