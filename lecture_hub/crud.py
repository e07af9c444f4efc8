"""CRUD operations for database models."""

from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from . import models
from .errors import NotFoundError, PersistenceError


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    """Get a user by ID.

    Args:
        db: Database session.
        user_id: User ID.

    Returns:
        User or None if not found.
    """
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_telegram_id(db: Session, telegram_id: str) -> Optional[models.User]:
    """Get a user by Telegram ID.

    Args:
        db: Database session.
        telegram_id: Telegram user ID as a string.

    Returns:
        User or None if not found.
    """
    return db.query(models.User).filter(
        models.User.telegram_id == str(telegram_id)
    ).first()


def create_user(
    db: Session,
    telegram_id: str,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    is_admin: bool = False,
) -> models.User:
    """Create and save a new User record.

    Raises:
        PersistenceError: If the insert fails (e.g. duplicate telegram_id).
    """
    user = models.User(
        telegram_id=str(telegram_id),
        username=username,
        first_name=first_name,
        last_name=last_name,
        is_admin=is_admin,
    )
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to create user {telegram_id}: {e}") from e
    db.refresh(user)
    return user


def get_or_create_user(
    db: Session,
    telegram_id: str,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> models.User:
    """Return the user for ``telegram_id``, registering it on first contact."""
    user = get_user_by_telegram_id(db, telegram_id)
    if user:
        return user
    try:
        return create_user(db, telegram_id, username, first_name, last_name)
    except PersistenceError:
        # Lost a registration race; the other insert won
        user = get_user_by_telegram_id(db, telegram_id)
        if user is None:
            raise
        return user


def set_user_admin_status(db: Session, telegram_id: str, is_admin: bool) -> models.User:
    """Grant or revoke admin rights.

    Callers must already hold admin rights; no check is made here.

    Raises:
        NotFoundError: If no user has this telegram_id.
    """
    user = get_user_by_telegram_id(db, telegram_id)
    if not user:
        raise NotFoundError(f"User with telegram_id {telegram_id} not found")
    user.is_admin = is_admin
    db.commit()
    db.refresh(user)
    return user


def list_users(db: Session) -> list[models.User]:
    return db.query(models.User).order_by(models.User.created_at.asc()).all()


def get_lecture_by_id(db: Session, lecture_id: str) -> Optional[models.Lecture]:
    """Get lecture by ID.

    Args:
        db: Database session.
        lecture_id: Lecture ID.

    Returns:
        Lecture or None if not found.
    """
    return db.query(models.Lecture).filter(
        models.Lecture.id == lecture_id
    ).first()


def list_lectures(
    db: Session,
    skip: int = 0,
    limit: Optional[int] = 20,
    subject: Optional[str] = None,
) -> list[models.Lecture]:
    """List lectures newest first with optional subject filter and pagination.

    Args:
        db: Database session.
        skip: Number of records to skip (for pagination).
        limit: Maximum records to return, or None for all.
        subject: Exact-match subject filter, or None for all.

    Returns:
        list[Lecture]: Matching lectures.
    """
    query = db.query(models.Lecture)

    if subject:
        query = query.filter(models.Lecture.subject == subject)

    query = query.order_by(
        models.Lecture.created_at.desc(), models.Lecture.id.desc()
    ).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_lectures(db: Session, subject: Optional[str] = None) -> int:
    query = db.query(models.Lecture)
    if subject:
        query = query.filter(models.Lecture.subject == subject)
    return query.count()


def get_user_downloads(db: Session, user_id: str) -> list[models.Download]:
    """Get a user's download history, newest first."""
    return db.query(models.Download).filter(
        models.Download.user_id == user_id
    ).order_by(models.Download.downloaded_at.desc()).all()


def sum_file_sizes(db: Session) -> int:
    return db.query(func.coalesce(func.sum(models.Lecture.file_size), 0)).scalar()
