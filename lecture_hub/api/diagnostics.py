"""Diagnostic endpoints for troubleshooting."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import config, file_store, lectures, stats, telethon_client
from ..auth import require_admin
from ..database import get_db
from ..errors import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])


@router.get("/status")
def get_system_status(db: Session = Depends(get_db), _=Depends(require_admin)):
    """Get system status: bot, database totals, file store and orphans (dry run)."""

    # Database status
    try:
        totals = stats.compute_stats(db)
        orphans = lectures.find_orphaned_lectures(db)
        db_status = {
            "connected": True,
            **totals,
            "orphaned_lectures": len(orphans),
            "orphaned_ids": [lecture.id for lecture in orphans],
        }
    except Exception as e:
        logger.error(f"Database status check failed: {e}")
        db_status = {
            "connected": False,
            "error": str(e)
        }

    # File store status
    try:
        file_count, total_bytes = file_store.directory_usage()
        storage_status = {
            "upload_dir": file_store.get_upload_dir(),
            "file_count": file_count,
            "bytes_on_disk": total_bytes,
            "max_file_size": config.MAX_FILE_SIZE,
        }
    except StorageError as e:
        logger.error(f"File store status check failed: {e}")
        storage_status = {"error": str(e)}

    return {
        "telegram_bot": telethon_client.client_status(),
        "database": db_status,
        "file_store": storage_status,
        "reconcile_interval_minutes": config.RECONCILE_INTERVAL_MINUTES,
    }
