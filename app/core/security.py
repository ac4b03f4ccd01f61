"""Password hashing, input checks and masking helpers shared by the account services."""

import re

import bcrypt

from app.core.config import settings

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72

USERNAME_MAX_LEN = 50
PASSWORD_MAX_LEN = 128
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CODE_PATTERN = re.compile(r"^\d{6}$")


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password with a fresh salt. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored digest; False for malformed digests."""
    if not isinstance(plain_password, str) or not isinstance(hashed, str) or not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def mask_email(email: str | None) -> str | None:
    """ab****yz@host style; short local parts are left as they are."""
    if not email:
        return email
    return re.sub(r"^(.{2}).+(.{2})@", r"\1****\2@", email)


def mask_phone(phone: str | None) -> str | None:
    """138****5678 style for 11-digit numbers."""
    if not phone:
        return phone
    return re.sub(r"(\d{3})\d{4}(\d{4})", r"\1****\2", phone)
