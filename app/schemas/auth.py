"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from app.schemas.accounts import AccountPublic


class RegisterRequest(BaseModel):
    """Registration payload; field rules are enforced by the account service."""

    username: str = Field(..., max_length=50, description="Unique username")
    password: str = Field(..., max_length=128, description="Password (at least 6 characters)")
    email: str = Field(..., max_length=100, description="Unique email address")
    full_name: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=20)


class LoginRequest(BaseModel):
    """Credentials for login; identifier is a username or an email."""

    identifier: str = Field(..., min_length=1, max_length=100, description="Username or email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class TokenResponse(BaseModel):
    """JWT access token returned after successful login or refresh."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class LoginResponse(TokenResponse):
    account: AccountPublic
    role: str


class RefreshRequest(BaseModel):
    """Token to refresh; when omitted the Authorization header is used."""

    token: str | None = Field(default=None, description="Current (possibly just expired) token")


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=100)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., max_length=100)
    code: str = Field(..., description="6-digit verification code")
    new_password: str = Field(..., max_length=128)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., max_length=128)
    new_password: str = Field(..., max_length=128)


class MessageResponse(BaseModel):
    message: str


class CurrentUser(BaseModel):
    """Authenticated user (id, username, role) for dependency injection."""

    id: int
    username: str
    role: str
