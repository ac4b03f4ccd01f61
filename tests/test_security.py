"""Unit tests for app.core.security: bcrypt hashing, input checks and masking."""

import unittest

from app.core.security import (
    hash_password,
    is_valid_email,
    mask_email,
    mask_phone,
    verify_password,
)


class TestHashPassword(unittest.TestCase):
    """hash_password salts every call; verify_password is the only equality check."""

    def test_verify_accepts_own_hash(self) -> None:
        for password in ("123456", "correct horse battery staple", "pässwörd-ünïcode"):
            self.assertTrue(verify_password(password, hash_password(password)))

    def test_same_password_hashes_differently(self) -> None:
        first = hash_password("123456")
        second = hash_password("123456")
        self.assertNotEqual(first, second)
        self.assertTrue(verify_password("123456", first))
        self.assertTrue(verify_password("123456", second))

    def test_digest_is_self_describing_bcrypt(self) -> None:
        digest = hash_password("123456", rounds=5)
        self.assertTrue(digest.startswith("$2b$05$"))
        self.assertNotIn("123456", digest)

    def test_wrong_password_rejected(self) -> None:
        self.assertFalse(verify_password("1234567", hash_password("123456")))

    def test_long_password_does_not_raise(self) -> None:
        password = "x" * 200
        self.assertTrue(verify_password(password, hash_password(password)))


class TestVerifyMalformedDigest(unittest.TestCase):
    """verify_password returns False and never raises on malformed digests."""

    def test_malformed_digests(self) -> None:
        for digest in ("", "not-a-hash", "$2b$10$short", "$2b$99$" + "a" * 53, None, 12345):
            with self.subTest(digest=digest):
                self.assertFalse(verify_password("123456", digest))  # type: ignore[arg-type]


class TestInputHelpers(unittest.TestCase):
    def test_is_valid_email(self) -> None:
        self.assertTrue(is_valid_email("bob@x.com"))
        self.assertFalse(is_valid_email("bob@x"))
        self.assertFalse(is_valid_email("bob x@y.com"))
        self.assertFalse(is_valid_email(""))
        self.assertFalse(is_valid_email(None))

    def test_mask_email(self) -> None:
        self.assertEqual(mask_email("alice.smith@example.com"), "al****th@example.com")
        self.assertEqual(mask_email("bob@x.com"), "bob@x.com")
        self.assertIsNone(mask_email(None))

    def test_mask_phone(self) -> None:
        self.assertEqual(mask_phone("13812345678"), "138****5678")
        self.assertEqual(mask_phone("123"), "123")
        self.assertIsNone(mask_phone(None))


if __name__ == "__main__":
    unittest.main()
