"""FastAPI application initialization and startup/shutdown logic."""

import logging
import os
from fastapi import FastAPI
from contextlib import asynccontextmanager

from .database import engine
from .models import Base
from .api import lectures, stats
from .api.diagnostics import router as diagnostics_router
from .admin import router as admin_router
from .tasks import start_background_tasks
from .file_store import get_upload_dir
from . import telethon_client
from .logging_config import configure_logging
from sentry_sdk import init as sentry_init
from .config import SENTRY_DSN

configure_logging()

logger = logging.getLogger(__name__)

# Initialize Sentry if DSN provided
if SENTRY_DSN:
    try:
        sentry_init(dsn=SENTRY_DSN, traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")))
        logger.info("Sentry initialized")
    except Exception:
        logger.exception("Failed to initialize Sentry")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown.

    Startup:
        - Create database tables
        - Ensure the upload directory exists
        - Start the Telegram bot (when configured)
        - Start background task scheduler

    Shutdown:
        - Shut down the scheduler
        - Disconnect the bot
    """
    # Startup
    try:
        logger.info("Initializing database...")
        Base.metadata.create_all(bind=engine)

        logger.info(f"Using upload directory {get_upload_dir()}")

        logger.info("Starting Telegram bot...")
        await telethon_client.start_client()

        app.state.scheduler = start_background_tasks()
    except Exception as e:
        logger.error(f"Error during startup: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    try:
        scheduler = app.state.scheduler
        if scheduler is not None and scheduler.running:
            logger.info("Shutting down scheduler...")
            scheduler.shutdown(wait=False)
        await telethon_client.stop_client()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


# Create FastAPI app with lifespan context manager
app = FastAPI(title="Lecture Hub", lifespan=lifespan)

# Include routers
app.include_router(lectures.router)
app.include_router(lectures.uploads_router)
app.include_router(stats.router)
app.include_router(diagnostics_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint with Telegram bot status."""
    status = telethon_client.client_status()
    return {
        "status": "healthy",
        "telegram_bot": "connected" if status["connected"] else (
            "started_but_disconnected" if status["started"] else "disconnected"
        ),
        "telegram_connected": status["connected"],
    }
