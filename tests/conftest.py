"""Test environment: fast bcrypt, in-memory database, no .env dependence."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-0123456789")
os.environ.setdefault("MAIL_REAL_SEND", "false")
