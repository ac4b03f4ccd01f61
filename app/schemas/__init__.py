"""Pydantic request/response schemas."""

from app.schemas.accounts import (
    AccountListResponse,
    AccountPublic,
    AccountStatusRequest,
    AccountUpdateRequest,
)
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
from app.schemas.health import HealthResponse

__all__ = [
    "AccountListResponse",
    "AccountPublic",
    "AccountStatusRequest",
    "AccountUpdateRequest",
    "ChangePasswordRequest",
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenResponse",
]
