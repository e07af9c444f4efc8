"""API endpoints for lectures and stored files."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from .. import crud, file_store, lectures
from ..auth import require_admin
from ..database import get_db
from ..errors import LectureHubError, NotFoundError
from ..schemas import LectureList, LectureOut
from .http_errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["lectures"])
uploads_router = APIRouter(tags=["uploads"])


@router.get("/lectures", response_model=LectureList)
def list_lectures(
    skip: int = Query(0, ge=0, alias="offset"),
    limit: int = Query(20, ge=1, le=1000),
    subject: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List lectures newest first with pagination.

    Query Parameters:
        offset: Number of records to skip (default 0).
        limit: Max records to return (default 20, max 1000).
        subject: Only lectures with exactly this subject (optional).

    Returns:
        dict: Contains 'items' (list of lectures) and 'total' (count).
    """
    total = crud.count_lectures(db, subject=subject)
    items = crud.list_lectures(db, skip=skip, limit=limit, subject=subject)
    return {"items": items, "total": total, "skip": skip, "limit": limit}


@router.get("/lectures/{lecture_id}", response_model=LectureOut)
def get_lecture(lecture_id: str, db: Session = Depends(get_db)):
    """Get details of a specific lecture.

    Raises:
        HTTPException: 404 if not found.
    """
    lecture = crud.get_lecture_by_id(db, lecture_id)
    if not lecture:
        raise HTTPException(status_code=404, detail="Lecture not found")
    return lecture


@router.post("/lectures", response_model=LectureOut)
def create_lecture(
    file: UploadFile = File(...),
    title: str = Form(""),
    subject: str = Form(""),
    description: Optional[str] = Form(None),
    uploaded_by: str = Form(""),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    """Upload a new lecture (multipart form).

    Form fields:
        file: PDF, JPG or PNG up to the configured size limit.
        title, subject, uploaded_by: Required.
        description: Optional.

    Raises:
        HTTPException: 400 on rejected input, 500 on storage/database failure.
    """
    data = file.file.read()
    try:
        lecture = lectures.create_lecture(
            db,
            title=title,
            subject=subject,
            file_bytes=data,
            original_name=file.filename or "",
            content_type=file.content_type,
            uploader_id=uploaded_by,
            description=description,
        )
    except LectureHubError as e:
        logger.warning(f"Rejected upload {file.filename!r}: {e}")
        raise to_http_exception(e)
    return lecture


@router.delete("/lectures/{lecture_id}")
def delete_lecture(lecture_id: str, db: Session = Depends(get_db), _=Depends(require_admin)):
    """Delete a lecture with its downloads and stored file."""
    try:
        lectures.delete_lecture(db, lecture_id)
    except LectureHubError as e:
        raise to_http_exception(e)
    return {"status": "deleted", "id": lecture_id}


@uploads_router.get("/uploads/{filename}")
def serve_upload(filename: str):
    """Serve the raw bytes of a stored file."""
    try:
        path = file_store.resolve_stored_file(filename)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path)
