"""Unit tests for app.services.tokens: issue, verify failure kinds, refresh grace window, decode."""

import base64
import json
import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.errors import (
    InvalidClaimsError,
    TokenExpiredError,
    TokenInvalidError,
    TokenInvalidSignatureError,
    TokenMalformedError,
    TokenNotYetValidError,
    TokenRefreshError,
)
from app.services.tokens import TokenService
from helpers import FakeClock

SECRET = "unit-test-secret-0123456789abcdef0123456789"
CLAIMS = {"sub": "1", "username": "bob", "role": "user"}


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _service_at(offset: timedelta, **kwargs: object) -> TokenService:
    """Token service whose clock is shifted by offset from the real time."""
    return TokenService(SECRET, clock=lambda: datetime.now(UTC) + offset, **kwargs)


class TestIssueAndVerify(unittest.TestCase):
    def setUp(self) -> None:
        self.tokens = TokenService(SECRET)

    def test_round_trip_adds_standard_claims(self) -> None:
        claims = self.tokens.verify(self.tokens.issue(CLAIMS))
        for key, value in CLAIMS.items():
            self.assertEqual(claims[key], value)
        self.assertEqual(claims["iss"], "cfc_app")
        self.assertEqual(claims["aud"], "cfc_app_users")
        self.assertEqual(claims["exp"] - claims["iat"], 24 * 3600)

    def test_bearer_prefix_is_stripped(self) -> None:
        token = self.tokens.issue(CLAIMS)
        self.assertEqual(self.tokens.verify(f"Bearer {token}")["username"], "bob")

    def test_integer_subject_becomes_string(self) -> None:
        claims = self.tokens.verify(self.tokens.issue({"sub": 7, "role": "admin"}))
        self.assertEqual(claims["sub"], "7")

    def test_caller_cannot_override_expiry(self) -> None:
        token = self.tokens.issue({**CLAIMS, "exp": 1})
        self.assertGreater(self.tokens.verify(token)["exp"], datetime.now(UTC).timestamp())

    def test_empty_or_non_mapping_claims_rejected(self) -> None:
        for claims in ({}, None, [("sub", "1")], "sub=1"):
            with self.subTest(claims=claims):
                with self.assertRaises(InvalidClaimsError):
                    self.tokens.issue(claims)  # type: ignore[arg-type]

    def test_secret_claims_rejected(self) -> None:
        with self.assertRaises(InvalidClaimsError):
            self.tokens.issue({**CLAIMS, "password": "123456"})

    def test_empty_secret_is_fatal(self) -> None:
        with self.assertRaises(ValueError):
            TokenService("")


class TestVerifyFailures(unittest.TestCase):
    """Each failure kind is distinguishable."""

    def setUp(self) -> None:
        self.tokens = TokenService(SECRET)

    def test_expired_carries_expiry(self) -> None:
        token = _service_at(-timedelta(hours=24, seconds=30)).issue(CLAIMS)
        with self.assertRaises(TokenExpiredError) as ctx:
            self.tokens.verify(token)
        expires_at = ctx.exception.expires_at
        self.assertIsNotNone(expires_at)
        delta = datetime.now(UTC) - expires_at
        self.assertTrue(timedelta(seconds=25) < delta < timedelta(seconds=40))
        self.assertEqual(ctx.exception.kind, "token_expired")

    def test_other_secret_is_invalid_signature(self) -> None:
        token = TokenService("another-secret-0123456789abcdef0123456789").issue(CLAIMS)
        with self.assertRaises(TokenInvalidSignatureError):
            self.tokens.verify(token)

    def test_tampered_payload_is_invalid_signature(self) -> None:
        header, payload, signature = self.tokens.issue(CLAIMS).split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["role"] = "admin"
        forged = ".".join([header, _b64url(json.dumps(claims).encode()), signature])
        with self.assertRaises(TokenInvalidSignatureError):
            self.tokens.verify(forged)

    def test_none_algorithm_rejected(self) -> None:
        claims = jwt.decode(self.tokens.issue(CLAIMS), options={"verify_signature": False})
        header = _b64url(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        unsigned = f"{header}.{_b64url(json.dumps(claims).encode())}."
        with self.assertRaises(TokenMalformedError):
            self.tokens.verify(unsigned)

    def test_other_algorithm_rejected(self) -> None:
        token = TokenService(SECRET, algorithm="HS512").issue(CLAIMS)
        with self.assertRaises(TokenMalformedError):
            self.tokens.verify(token)

    def test_garbage_is_malformed(self) -> None:
        for token in ("not-a-token", "a.b.c", "", "Bearer "):
            with self.subTest(token=token):
                with self.assertRaises(TokenMalformedError):
                    self.tokens.verify(token)

    def test_not_yet_valid(self) -> None:
        now = datetime.now(UTC)
        payload = {
            **CLAIMS,
            "iss": "cfc_app",
            "aud": "cfc_app_users",
            "iat": now,
            "nbf": now + timedelta(minutes=10),
            "exp": now + timedelta(hours=1),
        }
        token = jwt.encode(payload, SECRET, algorithm="HS256")
        with self.assertRaises(TokenNotYetValidError) as ctx:
            self.tokens.verify(token)
        self.assertIsNotNone(ctx.exception.not_before)

    def test_wrong_issuer_or_audience(self) -> None:
        for other in (TokenService(SECRET, issuer="elsewhere"), TokenService(SECRET, audience="others")):
            with self.subTest(issuer=other.issuer, audience=other.audience):
                with self.assertRaises(TokenInvalidError) as ctx:
                    self.tokens.verify(other.issue(CLAIMS))
                self.assertEqual(ctx.exception.kind, "token_invalid")


class TestRefresh(unittest.TestCase):
    def setUp(self) -> None:
        self.tokens = TokenService(SECRET)

    def test_valid_token_refreshes(self) -> None:
        old = _service_at(-timedelta(hours=1)).issue(CLAIMS)
        new_claims = self.tokens.verify(self.tokens.refresh(old))
        self.assertEqual(new_claims["username"], "bob")
        self.assertGreater(new_claims["exp"], self.tokens.decode(old)["exp"])

    def test_expired_within_grace_refreshes_with_full_lifetime(self) -> None:
        old = _service_at(-timedelta(hours=24, seconds=30)).issue(CLAIMS)
        new_claims = self.tokens.verify(self.tokens.refresh(old))
        expected_exp = (datetime.now(UTC) + timedelta(hours=24)).timestamp()
        self.assertLess(abs(new_claims["exp"] - expected_exp), 5)
        self.assertEqual(new_claims["sub"], "1")

    def test_expired_past_grace_fails(self) -> None:
        old = _service_at(-timedelta(hours=24, seconds=61)).issue(CLAIMS)
        with self.assertRaises(TokenRefreshError) as ctx:
            self.tokens.refresh(old)
        self.assertEqual(ctx.exception.kind, "token_refresh_expired")
        self.assertIsInstance(ctx.exception.cause, TokenExpiredError)

    def test_expired_token_for_other_audience_or_issuer_is_not_refreshable(self) -> None:
        for kwargs in ({"audience": "other_service"}, {"issuer": "elsewhere"}):
            with self.subTest(**kwargs):
                old = _service_at(-timedelta(hours=24, seconds=30), **kwargs).issue(CLAIMS)
                with self.assertRaises(TokenInvalidError):
                    self.tokens.verify(old)
                with self.assertRaises(TokenRefreshError) as ctx:
                    self.tokens.refresh(old)
                self.assertEqual(ctx.exception.kind, "token_invalid")

    def test_new_claims_override_old(self) -> None:
        token = self.tokens.refresh(self.tokens.issue(CLAIMS), {"role": "admin"})
        claims = self.tokens.verify(token)
        self.assertEqual(claims["role"], "admin")
        self.assertEqual(claims["username"], "bob")

    def test_invalid_signature_is_never_refreshable(self) -> None:
        token = TokenService("another-secret-0123456789abcdef0123456789").issue(CLAIMS)
        with self.assertRaises(TokenRefreshError) as ctx:
            self.tokens.refresh(token)
        self.assertEqual(ctx.exception.kind, "token_invalid_signature")
        self.assertIsInstance(ctx.exception.cause, TokenInvalidSignatureError)


class TestInjectedClock(unittest.TestCase):
    """Expiry, not-before and the grace window all follow the service clock."""

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.tokens = TokenService(SECRET, clock=self.clock)

    def test_verify_uses_service_clock(self) -> None:
        token = self.tokens.issue(CLAIMS)
        self.assertEqual(self.tokens.verify(token)["username"], "bob")
        self.clock.advance(hours=23, minutes=59)
        self.tokens.verify(token)
        self.clock.advance(minutes=1)
        with self.assertRaises(TokenExpiredError) as ctx:
            self.tokens.verify(token)
        self.assertEqual(ctx.exception.expires_at, self.clock.now)

    def test_grace_window_uses_service_clock(self) -> None:
        token = self.tokens.issue(CLAIMS)
        self.clock.advance(hours=24, seconds=59)
        new_claims = self.tokens.verify(self.tokens.refresh(token))
        self.assertEqual(new_claims["exp"], int((self.clock.now + timedelta(hours=24)).timestamp()))
        self.clock.advance(seconds=2)
        with self.assertRaises(TokenRefreshError) as ctx:
            self.tokens.refresh(token)
        self.assertEqual(ctx.exception.kind, "token_refresh_expired")

    def test_not_before_uses_service_clock(self) -> None:
        now = self.clock.now
        payload = {
            **CLAIMS,
            "iss": "cfc_app",
            "aud": "cfc_app_users",
            "iat": now,
            "nbf": now + timedelta(minutes=10),
            "exp": now + timedelta(hours=1),
        }
        token = jwt.encode(payload, SECRET, algorithm="HS256")
        with self.assertRaises(TokenNotYetValidError) as ctx:
            self.tokens.verify(token)
        self.assertEqual(ctx.exception.not_before, now + timedelta(minutes=10))
        self.clock.advance(minutes=10)
        self.assertEqual(self.tokens.verify(token)["role"], "user")


class TestDecode(unittest.TestCase):
    def setUp(self) -> None:
        self.tokens = TokenService(SECRET)

    def test_decodes_without_verifying(self) -> None:
        expired = _service_at(-timedelta(days=3)).issue(CLAIMS)
        self.assertEqual(self.tokens.decode(expired)["username"], "bob")
        foreign = TokenService("another-secret-0123456789abcdef0123456789").issue(CLAIMS)
        self.assertEqual(self.tokens.decode(f"Bearer {foreign}")["role"], "user")

    def test_returns_none_on_garbage(self) -> None:
        for token in ("garbage", "", None, "a.b.c"):
            with self.subTest(token=token):
                self.assertIsNone(self.tokens.decode(token))  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
