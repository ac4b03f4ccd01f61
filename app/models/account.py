"""ORM model for user accounts (credentials, status and role)."""

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import deferred

from app.models.base import Base

ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_DISABLED = "disabled"
ACCOUNT_STATUSES = (ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_DISABLED)

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


class Account(Base):
    """
    User account for JWT authentication and role-based access control.

    password_hash is deferred: it is only loaded by the credential reads that
    compare passwords. Rows with deleted_at set are soft-deleted and invisible
    to every lookup, but keep their username and email reserved.
    version is bumped on each UPDATE; a write against a stale version fails.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = deferred(Column(String(100), nullable=False))
    full_name = Column(String(50), nullable=True)
    phone = Column(String(20), nullable=True)
    status = Column(String(16), nullable=False, default=ACCOUNT_STATUS_ACTIVE)
    role = Column(String(32), nullable=False, default=ROLE_USER)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_active(self) -> bool:
        return self.status == ACCOUNT_STATUS_ACTIVE
