"""Shared builders for tests: in-memory SQLite sessions, a mock mailer, a fake clock."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.services.mailer import Mailer, MailResult


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with the schema created; one shared connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def make_mailer(success: bool = True) -> MagicMock:
    mailer = MagicMock(spec=Mailer)
    if success:
        mailer.send.return_value = MailResult(success=True, message_id="MOCK-1")
    else:
        mailer.send.return_value = MailResult(success=False, error="Mail delivery failed.")
    return mailer


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)
