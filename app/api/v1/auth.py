"""Auth endpoints and dependencies (get_current_user, require_permission)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import (
    AccountDisabledError,
    AuthFailureError,
    PermissionDeniedError,
    TokenInvalidError,
    ValidationFailedError,
)
from app.core.permissions import role_has_permission
from app.models.account import ACCOUNT_STATUS_DISABLED
from app.schemas.accounts import AccountPublic
from app.schemas.auth import (
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from app.services import account_store, accounts
from app.services.mailer import Mailer, get_mailer
from app.services.tokens import TokenService, get_token_service
from app.services.verification_codes import VerificationCodeStore, get_code_store

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser:
    """Dependency: require a valid Bearer JWT and return the current user."""
    if credentials is None:
        raise AuthFailureError("Not authenticated.")
    claims = tokens.verify(credentials.credentials)
    try:
        account_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        raise TokenInvalidError("Invalid token payload.") from None
    account = account_store.find_public_by_id(db, account_id)
    if account is None:
        raise TokenInvalidError("Account no longer exists.")
    if account.status == ACCOUNT_STATUS_DISABLED:
        raise AccountDisabledError("Account is disabled, contact an administrator.")
    return CurrentUser(id=account.id, username=account.username, role=account.role)


def require_permission(permission: str) -> Callable[..., CurrentUser]:
    """
    Dependency factory: the current user's role must grant permission.

    Routes with an ``account_id`` path parameter also accept the caller acting on
    their own account for the self-service permissions.
    """

    def dependency(
        request: Request,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        target = request.path_params.get("account_id")
        is_self = target is not None and str(target) == str(current_user.id)
        if not role_has_permission(current_user.role, permission, is_self=is_self):
            raise PermissionDeniedError(f"Permission '{permission}' required.")
        return current_user

    return dependency


@router.post("/register", response_model=AccountPublic, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> AccountPublic:
    """Create an account. A welcome mail is sent on a best-effort basis."""
    return accounts.register_account(db, body, mailer)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> LoginResponse:
    """
    Authenticate with username or email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    account, role = accounts.authenticate(db, body.identifier, body.password)
    token = tokens.issue({"sub": account.id, "username": account.username, "role": role})
    return LoginResponse(access_token=token, account=account, role=role)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    body: RefreshRequest | None = None,
) -> TokenResponse:
    """Exchange a valid token, or one that expired within the grace window, for a new one."""
    old = (body.token if body else None) or (credentials.credentials if credentials else None)
    if not old:
        raise ValidationFailedError("A token is required in the body or the Authorization header.")
    return TokenResponse(access_token=tokens.refresh(old))


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
    codes: Annotated[VerificationCodeStore, Depends(get_code_store)],
) -> MessageResponse:
    """Email a 6-digit reset code. The response does not reveal whether the email exists."""
    return MessageResponse(message=accounts.forgot_password(db, body.email, mailer, codes))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
    codes: Annotated[VerificationCodeStore, Depends(get_code_store)],
) -> MessageResponse:
    message = accounts.reset_password(db, body.email, body.code, body.new_password, codes, mailer)
    return MessageResponse(message=message)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> MessageResponse:
    message = accounts.change_password(db, current_user.id, body.old_password, body.new_password)
    return MessageResponse(message=message)
