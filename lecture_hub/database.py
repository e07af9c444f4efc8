from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from .config import DATABASE_URL


def make_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are opened with ``check_same_thread`` disabled and
    foreign keys enforced, so referential integrity matches PostgreSQL.
    """
    if not url.startswith("sqlite"):
        return create_engine(url)

    engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency generator for FastAPI to provide DB sessions.

    Yields:
        Session: SQLAlchemy session that is closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
