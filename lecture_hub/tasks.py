"""Background task scheduling: orphan cleanup and bot connection checks."""

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from . import config, lectures, telethon_client
from .database import SessionLocal

logger = logging.getLogger(__name__)


def reconcile_job() -> int:
    """Remove orphaned lectures using a dedicated session."""
    db = SessionLocal()
    try:
        removed = lectures.reconcile_orphans(db)
    except Exception as e:
        logger.error(f"Scheduled reconcile failed: {e}", exc_info=True)
        return 0
    finally:
        db.close()
    if removed:
        logger.info(f"Scheduled reconcile removed {removed} orphaned lecture(s)")
    return removed


async def run_reconcile():
    await asyncio.to_thread(reconcile_job)


async def check_and_reconnect_client():
    """Check the bot connection and restart it if needed."""
    try:
        bot = telethon_client.client
        if not telethon_client._client_started:
            logger.warning("Telegram bot not started, attempting to start...")
            await telethon_client.start_client()
        elif bot is not None and not bot.is_connected():
            logger.warning("Telegram bot disconnected, attempting to reconnect...")
            await bot.connect()
            if bot.is_connected():
                logger.info("Telegram bot reconnected successfully")
            else:
                logger.error("Failed to reconnect Telegram bot")
                await telethon_client.start_client()
        else:
            logger.debug("Telegram bot connection check: OK")
    except Exception as e:
        logger.error(f"Error checking/reconnecting Telegram bot: {e}", exc_info=True)


def start_background_tasks() -> Optional[AsyncIOScheduler]:
    """Create and start the scheduler for this application run.

    Returns:
        AsyncIOScheduler, or None when no job is enabled.
    """
    scheduler = AsyncIOScheduler()

    if config.RECONCILE_INTERVAL_MINUTES > 0:
        scheduler.add_job(
            run_reconcile,
            "interval",
            minutes=config.RECONCILE_INTERVAL_MINUTES,
            id="reconcile_orphans",
            replace_existing=True,
        )
    if telethon_client.bot_configured():
        scheduler.add_job(
            check_and_reconnect_client,
            "interval",
            minutes=5,
            id="bot_connection_check",
            replace_existing=True,
        )

    if not scheduler.get_jobs():
        logger.info("No background jobs enabled")
        return None

    scheduler.start()
    logger.info(
        f"Background task scheduler started with {len(scheduler.get_jobs())} job(s) "
        f"(reconcile every {config.RECONCILE_INTERVAL_MINUTES} min)"
    )
    return scheduler
