"""Public account views and account administration payloads."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import mask_email, mask_phone


class AccountPublic(BaseModel):
    """Account fields safe to return to callers (no password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str | None = None
    phone: str | None = None
    status: str
    role: str
    created_at: datetime | None = None

    def masked(self) -> "AccountPublic":
        """Copy with email and phone partially hidden for display."""
        return self.model_copy(
            update={"email": mask_email(self.email), "phone": mask_phone(self.phone)}
        )


class AccountListResponse(BaseModel):
    items: list[AccountPublic]
    total: int
    page: int
    page_size: int


class AccountUpdateRequest(BaseModel):
    """Profile fields; the password is changed through the auth endpoints only."""

    full_name: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=100)


class AccountStatusRequest(BaseModel):
    status: Literal["active", "disabled"]
