"""API endpoints for statistics, backup export and admin maintenance."""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import crud, lectures, stats
from ..auth import require_admin
from ..database import get_db
from ..errors import LectureHubError
from ..schemas import BroadcastRequest, DownloadOut, StatsOut
from .http_errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats", response_model=StatsOut)
def get_stats(db: Session = Depends(get_db)):
    """Totals for lectures, students, downloads and storage used (bytes)."""
    return stats.compute_stats(db)


@router.get("/export")
def export_backup(db: Session = Depends(get_db), _=Depends(require_admin)):
    """Download a JSON backup of statistics and lecture metadata (no file bytes)."""
    backup = stats.build_backup(db)
    filename = stats.backup_filename()
    logger.info(f"Exported backup with {len(backup['lectures'])} lecture(s) as {filename}")
    return JSONResponse(
        content=backup,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/broadcast")
def broadcast(payload: BroadcastRequest = Body(...), _=Depends(require_admin)):
    """Accept an announcement.

    There is no recipient list yet, so the message is only logged.
    """
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")
    logger.info(f"Broadcast requested: {message}")
    return {"status": "accepted", "message": message}


@router.post("/reconcile")
def reconcile(db: Session = Depends(get_db), _=Depends(require_admin)):
    """Remove lectures whose stored file is missing."""
    try:
        removed = lectures.reconcile_orphans(db)
    except LectureHubError as e:
        raise to_http_exception(e)
    return {"removed": removed, "remaining": crud.count_lectures(db)}


@router.get("/users/{user_id}/downloads", response_model=List[DownloadOut])
def list_user_downloads(user_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    """A user's download history, newest first."""
    if not crud.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return crud.get_user_downloads(db, user_id)
