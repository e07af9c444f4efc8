"""Download accounting."""

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, models
from .errors import InconsistentStateError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def record_download(db: Session, user_id: str, lecture_id: str) -> models.Lecture:
    """Record a delivered download and bump the lecture's counter.

    The Download insert and the relative ``download_count + 1`` update are
    committed together; if the lecture disappears in between, both are
    rolled back.

    Args:
        db: Database session.
        user_id: ID of the user who received the file.
        lecture_id: ID of the delivered lecture.

    Returns:
        Lecture: The lecture with its updated counter.

    Raises:
        NotFoundError: If the user or lecture does not exist.
        InconsistentStateError: If the lecture vanished before the increment.
        PersistenceError: On any other database failure.
    """
    if not crud.get_user(db, user_id):
        raise NotFoundError(f"User {user_id} not found")
    if not crud.get_lecture_by_id(db, lecture_id):
        raise NotFoundError(f"Lecture {lecture_id} not found")

    try:
        db.add(models.Download(user_id=user_id, lecture_id=lecture_id))
        db.flush()
        result = db.execute(
            update(models.Lecture)
            .where(models.Lecture.id == lecture_id)
            .values(download_count=models.Lecture.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise InconsistentStateError(
                f"Lecture {lecture_id} vanished before its download could be counted"
            )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InconsistentStateError(
            f"Download of lecture {lecture_id} references a missing record: {e}"
        ) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to record download of {lecture_id}: {e}") from e

    lecture = crud.get_lecture_by_id(db, lecture_id)
    if lecture is None:
        raise InconsistentStateError(f"Lecture {lecture_id} deleted after its download was counted")
    logger.debug(f"Recorded download of {lecture_id} by {user_id} (count={lecture.download_count})")
    return lecture
