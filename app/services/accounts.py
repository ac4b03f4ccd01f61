"""Account workflows: registration, login, password recovery and administration.

Every mutating function runs as one transaction: any failure rolls the session
back and leaves the account row as it was. Password hashing is an explicit step
here, never a side effect of assigning a model attribute.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import get_settings
from app.core.errors import (
    AccountDisabledError,
    ConflictError,
    InvalidCredentialsError,
    MailDeliveryError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.security import (
    CODE_PATTERN,
    PASSWORD_MAX_LEN,
    USERNAME_MAX_LEN,
    hash_password,
    is_valid_email,
    mask_email,
    verify_password,
)
from app.models.account import ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_DISABLED, ACCOUNT_STATUSES
from app.schemas.accounts import AccountListResponse, AccountPublic, AccountUpdateRequest
from app.schemas.auth import RegisterRequest
from app.services import account_store
from app.services.mailer import (
    Mailer,
    send_password_reset_notice,
    send_verification_code,
    send_welcome_mail,
)
from app.services.verification_codes import VerificationCodeStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."
CODE_SENT_MESSAGE = "A verification code has been sent to your email."
MAX_PAGE_SIZE = 100


@contextmanager
def _transaction(db: Session) -> Iterator[None]:
    """Commit on success; roll back and translate write conflicts on failure."""
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("Username or email already exists.") from e
    except StaleDataError as e:
        db.rollback()
        raise ConflictError("Account was modified concurrently, retry the operation.") from e
    except Exception:
        db.rollback()
        raise


def _password_errors(password: str | None, label: str = "Password") -> list[str]:
    min_len = get_settings().PASSWORD_MIN_LEN
    if not password or len(password) < min_len:
        return [f"{label} must be at least {min_len} characters."]
    if len(password) > PASSWORD_MAX_LEN:
        return [f"{label} must be at most {PASSWORD_MAX_LEN} characters."]
    return []


def _raise_if(errors: list[str]) -> None:
    if errors:
        raise ValidationFailedError("; ".join(errors))


def register_account(db: Session, data: RegisterRequest, mailer: Mailer) -> AccountPublic:
    """Create an account with a hashed password and the default role."""
    username = (data.username or "").strip()
    email = (data.email or "").strip()
    errors = []
    if not username:
        errors.append("Username must not be empty.")
    elif len(username) > USERNAME_MAX_LEN:
        errors.append(f"Username must be at most {USERNAME_MAX_LEN} characters.")
    errors += _password_errors(data.password)
    if not is_valid_email(email):
        errors.append("Email address is not valid.")
    _raise_if(errors)

    with _transaction(db):
        if account_store.find_conflict(db, username, None) is not None:
            raise ConflictError("Username already exists.")
        if account_store.find_conflict(db, None, email) is not None:
            raise ConflictError("Email already registered.")
        account = account_store.create_account(
            db,
            username=username,
            email=email,
            password_hash=hash_password(data.password),
            role=get_settings().DEFAULT_ROLE,
            full_name=(data.full_name or "").strip() or username,
            phone=(data.phone or "").strip() or None,
        )
    public = account_store.to_public(account)
    logger.info("Account registered", extra={"account_id": public.id, "username": username})

    result = send_welcome_mail(mailer, email, username)
    if not result.success:
        logger.warning(
            "Welcome mail failed: %s",
            result.error,
            extra={"account_id": public.id, "email": mask_email(email)},
        )
    return public


def authenticate(db: Session, identifier: str, password: str) -> tuple[AccountPublic, str]:
    """
    Check credentials; identifier is a username or an email.

    Unknown user and wrong password raise the same error. A disabled account is
    only reported once the password has been verified.
    """
    if not identifier or not password:
        raise ValidationFailedError("Username and password are required.")
    account = account_store.find_for_auth_by_identifier(db, identifier.strip())
    if account is None or not verify_password(password, account.password_hash):
        logger.warning("Login failed", extra={"identifier": mask_email(identifier)})
        raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)
    if account.status == ACCOUNT_STATUS_DISABLED:
        logger.warning("Login refused for disabled account", extra={"account_id": account.id})
        raise AccountDisabledError("Account is disabled, contact an administrator.")
    logger.info("Login succeeded", extra={"account_id": account.id})
    return account_store.to_public(account), account.role


def forgot_password(
    db: Session,
    email: str,
    mailer: Mailer,
    codes: VerificationCodeStore,
) -> str:
    """
    Send a reset code to a registered email.

    The returned message is the same whether or not the email is registered.
    For a registered email a failed mail is an error: the code is the deliverable.
    """
    email = (email or "").strip()
    if not is_valid_email(email):
        raise ValidationFailedError("Email address is not valid.")

    account = account_store.find_by_email(db, email)
    if account is None:
        logger.info("Password reset requested for unknown email", extra={"email": mask_email(email)})
        return CODE_SENT_MESSAGE

    code = codes.issue(email, account.id)
    ttl_minutes = get_settings().VERIFICATION_CODE_TTL_MINUTES
    result = send_verification_code(mailer, email, code, ttl_minutes)
    if not result.success:
        codes.expire(email)
        logger.error(
            "Verification code mail failed: %s",
            result.error,
            extra={"account_id": account.id, "email": mask_email(email)},
        )
        raise MailDeliveryError("Could not send the verification code, try again later.")
    logger.info("Verification code sent", extra={"account_id": account.id, "email": mask_email(email)})
    return CODE_SENT_MESSAGE


def reset_password(
    db: Session,
    email: str,
    code: str,
    new_password: str,
    codes: VerificationCodeStore,
    mailer: Mailer,
) -> str:
    """Consume the emailed code and store a new password hash."""
    email = (email or "").strip()
    errors = []
    if not is_valid_email(email):
        errors.append("Email address is not valid.")
    if not code or not CODE_PATTERN.match(code):
        errors.append("Verification code must be 6 digits.")
    errors += _password_errors(new_password, label="New password")
    _raise_if(errors)

    account_id = codes.consume(email, code)
    with _transaction(db):
        account = account_store.find_for_auth_by_id(db, account_id, for_update=True)
        if account is None:
            raise NotFoundError("Account not found.")
        account_store.set_password_hash(db, account, hash_password(new_password))
        username = account.username
    logger.info("Password reset", extra={"account_id": account_id, "email": mask_email(email)})

    result = send_password_reset_notice(mailer, email, username)
    if not result.success:
        logger.warning("Password reset notice failed: %s", result.error, extra={"account_id": account_id})
    return "Password has been reset, log in with the new password."


def change_password(db: Session, account_id: int, old_password: str, new_password: str) -> str:
    """Replace the password of an authenticated account after checking the old one."""
    if not old_password:
        raise ValidationFailedError("Old password is required.")
    _raise_if(_password_errors(new_password, label="New password"))
    if old_password == new_password:
        raise ValidationFailedError("New password must differ from the old password.")

    with _transaction(db):
        account = account_store.find_for_auth_by_id(db, account_id, for_update=True)
        if account is None:
            raise NotFoundError("Account not found.")
        if not verify_password(old_password, account.password_hash):
            raise InvalidCredentialsError("Old password is incorrect.")
        account_store.set_password_hash(db, account, hash_password(new_password))
    logger.info("Password changed", extra={"account_id": account_id})
    return "Password changed, log in again."


def list_accounts(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    keyword: str | None = None,
) -> AccountListResponse:
    """Paginated live accounts with email and phone masked."""
    if page < 1:
        raise ValidationFailedError("page must be at least 1.")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationFailedError(f"page_size must be between 1 and {MAX_PAGE_SIZE}.")
    items, total = account_store.list_public(db, page, page_size, (keyword or "").strip() or None)
    logger.debug("Accounts listed", extra={"page": page, "page_size": page_size, "total": total})
    return AccountListResponse(
        items=[a.masked() for a in items],
        total=total,
        page=page,
        page_size=page_size,
    )


def get_account(db: Session, account_id: int) -> AccountPublic:
    account = account_store.find_public_by_id(db, account_id)
    if account is None:
        raise NotFoundError("Account not found.")
    return account


def update_account(db: Session, account_id: int, changes: AccountUpdateRequest) -> AccountPublic:
    """Update profile fields (full name, phone, email)."""
    fields = changes.model_dump(exclude_unset=True)
    if "email" in fields:
        fields["email"] = (fields["email"] or "").strip()
        if not is_valid_email(fields["email"]):
            raise ValidationFailedError("Email address is not valid.")

    with _transaction(db):
        account = account_store.find_by_id(db, account_id, for_update=True)
        if account is None:
            raise NotFoundError("Account not found.")
        if "email" in fields and fields["email"] != account.email:
            if account_store.find_conflict(db, None, fields["email"]) is not None:
                raise ConflictError("Email already registered.")
        if fields:
            account_store.update_fields(db, account, **fields)
        public = account_store.to_public(account)
    logger.info("Account updated", extra={"account_id": account_id, "fields": ",".join(sorted(fields))})
    return public


def set_account_status(db: Session, account_id: int, status: str, operator: str) -> str:
    """Enable or disable an account; asking for the current status is a conflict."""
    if status not in ACCOUNT_STATUSES:
        raise ValidationFailedError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}.")
    with _transaction(db):
        account = account_store.find_by_id(db, account_id, for_update=True)
        if account is None:
            raise NotFoundError("Account not found.")
        if account.status == status:
            raise ConflictError(f"Account is already {status}.")
        account_store.update_fields(db, account, status=status)
    verb = "enabled" if status == ACCOUNT_STATUS_ACTIVE else "disabled"
    logger.info("Account %s", verb, extra={"account_id": account_id, "operator": operator})
    return f"Account {verb}."


def delete_account(db: Session, account_id: int, operator: str) -> str:
    """Soft-delete: the row stays, but no lookup sees it any more."""
    with _transaction(db):
        account = account_store.find_by_id(db, account_id, for_update=True)
        if account is None:
            raise NotFoundError("Account not found.")
        account_store.soft_delete(db, account)
    logger.info("Account deleted", extra={"account_id": account_id, "operator": operator})
    return "Account deleted."
