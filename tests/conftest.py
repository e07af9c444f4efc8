"""Pytest configuration and fixtures."""

import datetime
import os
import tempfile

# Configure the app before it is imported: private database, no bot, no jobs
_fd, _APP_DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_APP_DB_PATH}"
os.environ["RECONCILE_INTERVAL_MINUTES"] = "0"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
for _name in ("TG_API_ID", "TG_API_HASH", "TELEGRAM_BOT_TOKEN", "BOT_TOKEN", "SENTRY_DSN", "WEB_PANEL_URL"):
    os.environ.pop(_name, None)

import pytest
from sqlalchemy.orm import sessionmaker

from lecture_hub import config, models
from lecture_hub.database import get_db, make_engine
from lecture_hub.models import Base
from lecture_hub.main import app

ADMIN_API_KEY = "test-admin-key"


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_APP_DB_PATH):
        os.unlink(_APP_DB_PATH)


@pytest.fixture(scope="session")
def temp_db_file():
    """Create a temporary SQLite database file for testing.

    Yields:
        str: Path to temporary database file.
    """
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    os.unlink(path)


@pytest.fixture
def session_factory(temp_db_file):
    """Sessionmaker bound to a test database with fresh schema for each test.

    Yields:
        sessionmaker: Factory for independent sessions (one per thread).
    """
    engine = make_engine(f"sqlite:///{temp_db_file}")
    Base.metadata.create_all(bind=engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Clean up tables
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db(session_factory):
    """SQLAlchemy session connected to the test database."""
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point the file store at an empty temporary directory."""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(config, "UPLOADS_DIR", str(path))
    return path


@pytest.fixture
def make_user(test_db):
    """Factory creating users directly in the test database."""
    counter = {"n": 0}

    def _make_user(is_admin=False, **kwargs):
        counter["n"] += 1
        user = models.User(
            telegram_id=kwargs.pop("telegram_id", str(100000 + counter["n"])),
            username=kwargs.pop("username", f"user{counter['n']}"),
            is_admin=is_admin,
            **kwargs,
        )
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin_user(make_user):
    return make_user(is_admin=True, username="admin")


@pytest.fixture
def make_lecture(test_db, upload_dir):
    """Factory inserting lecture rows directly, with a real file unless ``with_file=False``."""
    base_time = datetime.datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make_lecture(uploader, with_file=True, size=10, minutes=None, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        file_name = kwargs.pop("file_name", f"{n}_lecture{n}.pdf")
        file_path = str(upload_dir / file_name)
        if with_file:
            with open(file_path, "wb") as f:
                f.write(b"x" * size)
        lecture = models.Lecture(
            title=kwargs.pop("title", f"Lecture {n}"),
            subject=kwargs.pop("subject", "photogrammetry"),
            file_name=file_name,
            file_path=file_path,
            file_type=kwargs.pop("file_type", "pdf"),
            file_size=size,
            uploaded_by=uploader.id,
            created_at=base_time + datetime.timedelta(minutes=n if minutes is None else minutes),
            **kwargs,
        )
        test_db.add(lecture)
        test_db.commit()
        test_db.refresh(lecture)
        return lecture

    return _make_lecture


@pytest.fixture
def admin_headers():
    return {"X-API-Key": ADMIN_API_KEY}


@pytest.fixture
def test_client(test_db, upload_dir):
    """Create a test FastAPI client with overridden database dependency.

    Yields:
        TestClient: FastAPI test client.
    """
    from fastapi.testclient import TestClient

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
