"""Role to permission mapping for the account administration endpoints."""

from app.models.account import ROLE_ADMIN, ROLE_USER

PERM_USER_LIST = "user:list"
PERM_USER_DETAIL = "user:detail"
PERM_USER_UPDATE = "user:update"
PERM_USER_STATUS = "user:status"
PERM_USER_DELETE = "user:delete"

ALL_PERMISSIONS = frozenset(
    {PERM_USER_LIST, PERM_USER_DETAIL, PERM_USER_UPDATE, PERM_USER_STATUS, PERM_USER_DELETE}
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_USER: frozenset(),
}

# Granted to any authenticated role when the target account is the caller's own.
SELF_PERMISSIONS = frozenset({PERM_USER_DETAIL, PERM_USER_UPDATE})


def role_has_permission(role: str | None, permission: str, is_self: bool = False) -> bool:
    if not role:
        return False
    if permission in ROLE_PERMISSIONS.get(role, frozenset()):
        return True
    return is_self and permission in SELF_PERMISSIONS
