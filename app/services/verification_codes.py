"""Short-lived, single-use 6-digit codes for password recovery.

Codes are keyed by ``reset_<email>``; issuing a new code replaces the live one.
Consumption deletes the entry on success or when it is found expired; a wrong
code leaves the entry in place so the user can retry within the window.
"""

import hmac
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from app.core.config import get_settings
from app.core.errors import CodeExpiredError, CodeMismatchError, CodeNotFoundError
from app.core.security import mask_email

logger = logging.getLogger(__name__)

CODE_DIGITS = 6
RESET_PURPOSE = "reset"


def generate_code() -> str:
    """Uniformly random code in 000000-999999."""
    return f"{secrets.randbelow(10**CODE_DIGITS):0{CODE_DIGITS}d}"


def code_key(email: str, purpose: str = RESET_PURPOSE) -> str:
    return f"{purpose}_{email}"


@dataclass(frozen=True)
class CodeEntry:
    code: str
    expires_at: datetime
    user_id: int


class VerificationCodeStore(ABC):
    """Keyed code storage; implementations must serialise operations per key."""

    @abstractmethod
    def issue(self, email: str, user_id: int) -> str:
        """Store a fresh code for email (replacing any live one) and return it."""

    @abstractmethod
    def consume(self, email: str, code: str) -> int:
        """Check code for email and return the bound user id; raises CodeError."""

    @abstractmethod
    def expire(self, email: str) -> None:
        """Drop any code stored for email."""


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """Process-local store; a key always maps to the same lock of a fixed stripe set."""

    LOCK_STRIPES = 64

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] | None = None,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._code_factory = code_factory
        self._entries: dict[str, CodeEntry] = {}
        self._locks = tuple(threading.Lock() for _ in range(self.LOCK_STRIPES))

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % self.LOCK_STRIPES]

    def _drop(self, key: str) -> None:
        self._entries.pop(key, None)

    def issue(self, email: str, user_id: int) -> str:
        key = code_key(email)
        code = self._code_factory()
        with self._lock_for(key):
            self._entries[key] = CodeEntry(
                code=code,
                expires_at=self._clock() + self._ttl,
                user_id=user_id,
            )
        logger.info("Verification code issued", extra={"email": mask_email(email), "user_id": user_id})
        return code

    def consume(self, email: str, code: str) -> int:
        key = code_key(email)
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None:
                raise CodeNotFoundError()
            if self._clock() > entry.expires_at:
                self._drop(key)
                raise CodeExpiredError()
            if not hmac.compare_digest(entry.code.encode(), str(code).encode()):
                logger.warning("Verification code mismatch", extra={"email": mask_email(email)})
                raise CodeMismatchError()
            self._drop(key)
        logger.info("Verification code consumed", extra={"email": mask_email(email), "user_id": entry.user_id})
        return entry.user_id

    def expire(self, email: str) -> None:
        key = code_key(email)
        with self._lock_for(key):
            self._drop(key)

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache
def get_code_store() -> VerificationCodeStore:
    """Dependency: the process-wide code store (override in tests)."""
    settings = get_settings()
    return InMemoryVerificationCodeStore(
        ttl=timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
    )
