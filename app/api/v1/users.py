"""Account administration endpoints: list, detail, update, enable/disable, delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, require_permission
from app.core.database import get_db
from app.core.permissions import (
    PERM_USER_DELETE,
    PERM_USER_DETAIL,
    PERM_USER_LIST,
    PERM_USER_STATUS,
    PERM_USER_UPDATE,
)
from app.schemas.accounts import (
    AccountListResponse,
    AccountPublic,
    AccountStatusRequest,
    AccountUpdateRequest,
)
from app.schemas.auth import CurrentUser, MessageResponse
from app.services import accounts

router = APIRouter()


@router.get("", response_model=AccountListResponse)
def list_users(
    _user: Annotated[CurrentUser, Depends(require_permission(PERM_USER_LIST))],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=accounts.MAX_PAGE_SIZE)] = 10,
    keyword: Annotated[str | None, Query(max_length=100)] = None,
) -> AccountListResponse:
    """List accounts newest first; keyword matches username, full name or email."""
    return accounts.list_accounts(db, page=page, page_size=page_size, keyword=keyword)


@router.get("/me", response_model=AccountPublic)
def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> AccountPublic:
    return accounts.get_account(db, current_user.id)


@router.get("/{account_id}", response_model=AccountPublic)
def get_user(
    account_id: int,
    _user: Annotated[CurrentUser, Depends(require_permission(PERM_USER_DETAIL))],
    db: Annotated[Session, Depends(get_db)],
) -> AccountPublic:
    return accounts.get_account(db, account_id)


@router.put("/{account_id}", response_model=AccountPublic)
def update_user(
    account_id: int,
    body: AccountUpdateRequest,
    _user: Annotated[CurrentUser, Depends(require_permission(PERM_USER_UPDATE))],
    db: Annotated[Session, Depends(get_db)],
) -> AccountPublic:
    """Update full name, phone or email. Passwords change through /auth only."""
    return accounts.update_account(db, account_id, body)


@router.put("/{account_id}/status", response_model=MessageResponse)
def set_user_status(
    account_id: int,
    body: AccountStatusRequest,
    user: Annotated[CurrentUser, Depends(require_permission(PERM_USER_STATUS))],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Enable or disable an account (admin only)."""
    return MessageResponse(
        message=accounts.set_account_status(db, account_id, body.status, operator=user.username)
    )


@router.delete("/{account_id}", response_model=MessageResponse)
def delete_user(
    account_id: int,
    user: Annotated[CurrentUser, Depends(require_permission(PERM_USER_DELETE))],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Soft-delete an account (admin only)."""
    return MessageResponse(message=accounts.delete_account(db, account_id, operator=user.username))
