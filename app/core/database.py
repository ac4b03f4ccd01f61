"""Engine and request-scoped sessions for the accounts database (PostgreSQL or SQLite)."""

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

# Sync handlers run in the threadpool, so a SQLite connection may cross threads.
_connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency: one session per request; services commit, this only closes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """True when SELECT 1 succeeds on the session's connection."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
