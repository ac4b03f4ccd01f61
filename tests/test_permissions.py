"""Role to permission mapping."""

import unittest

from app.core.permissions import (
    PERM_USER_DELETE,
    PERM_USER_DETAIL,
    PERM_USER_LIST,
    PERM_USER_STATUS,
    PERM_USER_UPDATE,
    role_has_permission,
)


class TestRoleHasPermission(unittest.TestCase):
    def test_admin_has_everything(self) -> None:
        for perm in (PERM_USER_LIST, PERM_USER_DETAIL, PERM_USER_UPDATE, PERM_USER_STATUS, PERM_USER_DELETE):
            self.assertTrue(role_has_permission("admin", perm))

    def test_user_only_on_own_account(self) -> None:
        self.assertFalse(role_has_permission("user", PERM_USER_DETAIL))
        self.assertTrue(role_has_permission("user", PERM_USER_DETAIL, is_self=True))
        self.assertTrue(role_has_permission("user", PERM_USER_UPDATE, is_self=True))
        self.assertFalse(role_has_permission("user", PERM_USER_STATUS, is_self=True))
        self.assertFalse(role_has_permission("user", PERM_USER_DELETE, is_self=True))

    def test_unknown_role(self) -> None:
        self.assertFalse(role_has_permission(None, PERM_USER_LIST))
        self.assertFalse(role_has_permission("guest", PERM_USER_DETAIL, is_self=False))


if __name__ == "__main__":
    unittest.main()
