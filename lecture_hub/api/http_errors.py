"""Translation of domain errors into HTTP errors."""

from fastapi import HTTPException

from ..errors import (
    InconsistentStateError,
    LectureHubError,
    NotFoundError,
    ValidationError,
)


def to_http_exception(error: LectureHubError) -> HTTPException:
    """Map a domain error to the HTTPException the adapter should raise."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InconsistentStateError):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
