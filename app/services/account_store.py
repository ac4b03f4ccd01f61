"""Credential store: account reads and writes over the ORM session.

Two read paths: ``*_public`` functions return ``AccountPublic`` (the password hash
is a deferred column and never loaded), ``*_for_auth`` functions return the ORM
entity with the hash loaded, for the password comparison steps only.
Soft-deleted rows are invisible to both. Writes flush but never commit: the
calling service owns the transaction.
"""

from datetime import UTC, datetime

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, undefer

from app.models import Account
from app.models.account import ACCOUNT_STATUS_ACTIVE
from app.schemas.accounts import AccountPublic

# Fields update_fields may touch; password_hash goes through set_password_hash.
UPDATABLE_FIELDS = frozenset({"full_name", "phone", "email", "status", "role"})


def _live(db: Session) -> Query:
    return db.query(Account).filter(Account.deleted_at.is_(None))


def to_public(account: Account) -> AccountPublic:
    return AccountPublic.model_validate(account)


def find_public_by_id(db: Session, account_id: int) -> AccountPublic | None:
    account = _live(db).filter(Account.id == account_id).first()
    return to_public(account) if account else None


def list_public(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    keyword: str | None = None,
) -> tuple[list[AccountPublic], int]:
    """Page of live accounts, newest first, optionally filtered by keyword."""
    query = _live(db)
    if keyword:
        pattern = f"%{keyword}%"
        query = query.filter(
            or_(
                Account.username.ilike(pattern),
                Account.full_name.ilike(pattern),
                Account.email.ilike(pattern),
            )
        )
    total = query.count()
    rows = (
        query.order_by(Account.created_at.desc(), Account.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return [to_public(a) for a in rows], total


def find_for_auth_by_identifier(db: Session, identifier: str) -> Account | None:
    """Live account whose username or email equals identifier, hash loaded."""
    return (
        _live(db)
        .options(undefer(Account.password_hash))
        .filter(or_(Account.username == identifier, Account.email == identifier))
        .first()
    )


def find_for_auth_by_id(db: Session, account_id: int, for_update: bool = False) -> Account | None:
    query = _live(db).options(undefer(Account.password_hash)).filter(Account.id == account_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def find_by_id(db: Session, account_id: int, for_update: bool = False) -> Account | None:
    """Live account entity without the hash, for administrative writes."""
    query = _live(db).filter(Account.id == account_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def find_by_email(db: Session, email: str) -> Account | None:
    return _live(db).filter(Account.email == email).first()


def find_conflict(db: Session, username: str | None, email: str | None) -> Account | None:
    """Any row (deleted ones included) holding username or email."""
    clauses = []
    if username:
        clauses.append(Account.username == username)
    if email:
        clauses.append(Account.email == email)
    if not clauses:
        return None
    return db.query(Account).filter(or_(*clauses)).first()


def create_account(
    db: Session,
    *,
    username: str,
    email: str,
    password_hash: str,
    role: str,
    full_name: str | None = None,
    phone: str | None = None,
) -> Account:
    """Insert an account. password_hash must already be a digest."""
    account = Account(
        username=username,
        email=email,
        password_hash=password_hash,
        full_name=full_name,
        phone=phone,
        status=ACCOUNT_STATUS_ACTIVE,
        role=role,
    )
    db.add(account)
    db.flush()
    return account


def update_fields(db: Session, account: Account, **fields: object) -> Account:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
    for name, value in fields.items():
        setattr(account, name, value)
    db.flush()
    return account


def set_password_hash(db: Session, account: Account, password_hash: str) -> Account:
    account.password_hash = password_hash
    db.flush()
    return account


def soft_delete(db: Session, account: Account) -> Account:
    account.deleted_at = datetime.now(UTC)
    db.flush()
    return account
