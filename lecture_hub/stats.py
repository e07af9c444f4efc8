"""Aggregate statistics and metadata backup."""

import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import config, crud, models


def compute_stats(db: Session) -> dict:
    """Compute point-in-time totals.

    Returns:
        dict: total_lectures, active_students (non-admin users),
        total_downloads and storage_used (sum of lecture file sizes).
    """
    return {
        "total_lectures": db.query(models.Lecture).count(),
        "active_students": db.query(models.User).filter(models.User.is_admin == False).count(),
        "total_downloads": db.query(models.Download).count(),
        "storage_used": int(crud.sum_file_sizes(db) or 0),
    }


def backup_filename(today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return f"{config.BACKUP_FILENAME_PREFIX}_{today.isoformat()}.json"


def build_backup(db: Session) -> dict:
    """Build a metadata backup: statistics plus every lecture, without file bytes."""
    lectures = crud.list_lectures(db, limit=None)
    return {
        "timestamp": datetime.datetime.utcnow().isoformat() + "Z",
        "statistics": compute_stats(db),
        "lectures": [
            {
                "id": lecture.id,
                "title": lecture.title,
                "description": lecture.description,
                "subject": lecture.subject,
                "file_name": lecture.file_name,
                "file_type": lecture.file_type,
                "file_size": lecture.file_size,
                "download_count": lecture.download_count,
                "created_at": lecture.created_at.isoformat() if lecture.created_at else None,
            }
            for lecture in lectures
        ],
    }
