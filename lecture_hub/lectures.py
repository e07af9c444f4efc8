"""Lecture lifecycle: ingestion, lookup, deletion and orphan cleanup.

A lecture is a database row plus a file in the file store. ``create_lecture``
writes the file before inserting the row; ``delete_lecture`` removes the
downloads and the row in one transaction and then unlinks the file.
``reconcile_orphans`` drops rows whose file has disappeared.
"""

import logging
import mimetypes
import os
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, crud, file_store, models
from .errors import (
    NotFoundError,
    PersistenceError,
    StorageWriteError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"application/pdf", "image/jpeg", "image/jpg", "image/png"}
ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}
GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}


def resolve_content_type(original_name: str, content_type: Optional[str]) -> str:
    """Return the effective MIME type of an upload.

    A missing or generic MIME type is replaced by the one implied by the file
    extension, so an upload is judged the same way whichever adapter sent it.

    Raises:
        ValidationError: If the MIME type is not allowed, or is generic and the
            extension is not allowed either.
    """
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type in ALLOWED_CONTENT_TYPES:
        return content_type

    extension = os.path.splitext(original_name or "")[1].lower()
    if content_type in GENERIC_CONTENT_TYPES and extension in ALLOWED_EXTENSIONS:
        return mimetypes.guess_type(f"file{extension}")[0] or "application/octet-stream"

    raise ValidationError("Unsupported file type: only PDF, JPG and PNG files are accepted")


def detect_file_type(content_type: str) -> str:
    return "pdf" if "pdf" in content_type else "image"


def validate_upload(
    title: str,
    subject: str,
    uploader_id: str,
    original_name: str,
    content_type: Optional[str],
    size: int,
) -> str:
    """Check an upload before anything is written.

    Returns:
        str: The effective content type.

    Raises:
        ValidationError: On a missing field, unsupported type or oversize file.
    """
    missing = [
        name
        for name, value in (("title", title), ("subject", subject), ("uploaded_by", uploader_id))
        if not (value and str(value).strip())
    ]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

    effective_type = resolve_content_type(original_name, content_type)

    if size > config.MAX_FILE_SIZE:
        raise ValidationError(
            f"File too large: {size} bytes exceeds the {config.MAX_FILE_SIZE} byte limit"
        )
    return effective_type


def create_lecture(
    db: Session,
    title: str,
    subject: str,
    file_bytes: bytes,
    original_name: str,
    content_type: Optional[str],
    uploader_id: str,
    description: Optional[str] = None,
) -> models.Lecture:
    """Store a file and register it as a lecture.

    Raises:
        ValidationError: If the upload is rejected (nothing is written).
        StorageWriteError: If the file cannot be written (no row is inserted).
        PersistenceError: If the insert fails; the written file is removed.
    """
    effective_type = validate_upload(
        title, subject, uploader_id, original_name, content_type, len(file_bytes)
    )

    file_name, file_path = file_store.write_file(file_bytes, original_name)

    lecture = models.Lecture(
        title=title.strip(),
        description=description or None,
        subject=subject.strip(),
        file_name=file_name,
        file_path=file_path,
        file_type=detect_file_type(effective_type),
        file_size=len(file_bytes),
        download_count=0,
        uploaded_by=uploader_id,
    )
    db.add(lecture)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        _discard_file(file_path)
        raise PersistenceError(f"Failed to save lecture {title!r}: {e}") from e

    db.refresh(lecture)
    logger.info(f"Created lecture {lecture.id} ({lecture.file_type}, {lecture.file_size} bytes): {lecture.title}")
    return lecture


def get_lecture(db: Session, lecture_id: str) -> models.Lecture:
    """Get a lecture or raise NotFoundError."""
    lecture = crud.get_lecture_by_id(db, lecture_id)
    if not lecture:
        raise NotFoundError(f"Lecture {lecture_id} not found")
    return lecture


def delete_lecture(db: Session, lecture_id: str) -> None:
    """Delete a lecture, its downloads and its file.

    Downloads and the lecture row go in one transaction; the row delete
    decides the winner when two callers delete the same lecture. The file
    is unlinked after commit and a failure there is only logged.

    Raises:
        NotFoundError: If the lecture does not exist (or another caller won).
        PersistenceError: If the database delete fails.
    """
    lecture = get_lecture(db, lecture_id)
    file_path = lecture.file_path

    try:
        db.query(models.Download).filter(
            models.Download.lecture_id == lecture_id
        ).delete(synchronize_session=False)
        deleted = db.query(models.Lecture).filter(
            models.Lecture.id == lecture_id
        ).delete(synchronize_session=False)
        if not deleted:
            db.rollback()
            raise NotFoundError(f"Lecture {lecture_id} not found")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to delete lecture {lecture_id}: {e}") from e

    _discard_file(file_path)
    logger.info(f"Deleted lecture {lecture_id}")


def _discard_file(file_path: str) -> None:
    try:
        file_store.remove_file(file_path)
    except StorageWriteError as e:
        logger.warning(f"Leaving stray file behind: {e}")


def find_orphaned_lectures(db: Session) -> list[models.Lecture]:
    """Return lectures whose file is missing from the file store."""
    return [
        lecture
        for lecture in crud.list_lectures(db, limit=None)
        if not file_store.file_exists(lecture.file_path)
    ]


def reconcile_orphans(db: Session) -> int:
    """Delete every lecture whose file is missing.

    Each lecture is removed in its own transaction, so stopping midway
    leaves no half-deleted record. Lectures removed concurrently are skipped.

    Returns:
        int: Number of lectures removed.
    """
    orphans = [(lecture.id, lecture.title) for lecture in find_orphaned_lectures(db)]
    removed = 0
    for lecture_id, title in orphans:
        try:
            delete_lecture(db, lecture_id)
        except NotFoundError:
            continue
        logger.info(f"Removed orphaned lecture {lecture_id}: {title}")
        removed += 1
    if removed:
        logger.info(f"Reconcile removed {removed} orphaned lecture(s)")
    return removed
