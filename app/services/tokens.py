"""Bearer token issuance, verification, refresh and unverified inspection.

Tokens are JWTs signed with one configured HMAC secret. ``verify`` is the trust
boundary; ``decode`` only parses and must never be used to authorize anything.
An expired token can be refreshed for a short grace period after its expiry so a
client caught at the boundary does not have to log in again.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import jwt

from app.core.config import get_settings
from app.core.errors import (
    InvalidClaimsError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenInvalidSignatureError,
    TokenMalformedError,
    TokenNotYetValidError,
    TokenRefreshError,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Claims set by the issuer; stripped from an old token before it is re-issued.
STANDARD_CLAIMS = ("iat", "exp", "nbf", "iss", "aud")

# Keys that must never be embedded in a token payload.
SECRET_CLAIM_KEYS = frozenset({"password", "password_hash", "user_password", "secret"})


def strip_bearer(token: str) -> str:
    token = token.strip()
    if token.startswith(BEARER_PREFIX):
        return token[len(BEARER_PREFIX):].strip()
    return token


def _timestamp_to_datetime(value: Any) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(value), UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class TokenService:
    """Signs and validates access tokens for one issuer/audience pair."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "cfc_app",
        audience: str = "cfc_app_users",
        lifetime: timedelta = timedelta(hours=24),
        refresh_grace: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret:
            raise ValueError("Token secret must be non-empty")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.lifetime = lifetime
        self.refresh_grace = refresh_grace
        self._clock = clock or (lambda: datetime.now(UTC))

    def issue(self, claims: Mapping[str, Any]) -> str:
        """Sign claims with iss, aud, iat and exp attached."""
        if not isinstance(claims, Mapping) or not claims:
            raise InvalidClaimsError("Token claims must be a non-empty mapping.")
        leaked = SECRET_CLAIM_KEYS.intersection(claims)
        if leaked:
            raise InvalidClaimsError("Token claims must not contain secret fields.")

        now = self._clock()
        payload: dict[str, Any] = {k: v for k, v in claims.items() if k not in STANDARD_CLAIMS}
        if "sub" in payload:
            payload["sub"] = str(payload["sub"])
        payload.update(
            {
                "iss": self.issuer,
                "aud": self.audience,
                "iat": now,
                "exp": now + self.lifetime,
            }
        )
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        logger.debug("Token issued", extra={"sub": payload.get("sub"), "expires_at": payload["exp"].isoformat()})
        return token

    def verify(self, token: str) -> dict[str, Any]:
        """Validate signature, algorithm, issuer, audience and expiry; return claims."""
        if not isinstance(token, str) or not token.strip():
            raise TokenMalformedError("Token must be a non-empty string.")
        raw = strip_bearer(token)
        try:
            # Time claims are checked below against self._clock, after issuer and audience.
            claims = jwt.decode(
                raw,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={
                    "require": ["exp", "iat", "iss", "aud"],
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError:
            logger.warning("Token rejected: invalid signature")
            raise TokenInvalidSignatureError() from None
        except (jwt.InvalidAlgorithmError, jwt.MissingRequiredClaimError, jwt.DecodeError) as e:
            logger.warning("Token rejected: malformed (%s)", type(e).__name__)
            raise TokenMalformedError() from None
        except (jwt.InvalidIssuerError, jwt.InvalidAudienceError):
            logger.warning("Token rejected: issuer or audience mismatch")
            raise TokenInvalidError("Token issuer or audience is not accepted.") from None
        except jwt.PyJWTError as e:
            logger.warning("Token rejected: %s", type(e).__name__)
            raise TokenInvalidError() from None

        now = self._clock()
        expires_at = _timestamp_to_datetime(claims["exp"])
        if expires_at is None:
            logger.warning("Token rejected: malformed (exp)")
            raise TokenMalformedError()
        if "nbf" in claims:
            not_before = _timestamp_to_datetime(claims["nbf"])
            if not_before is None:
                logger.warning("Token rejected: malformed (nbf)")
                raise TokenMalformedError()
            if not_before > now:
                logger.info("Token rejected: not yet valid")
                raise TokenNotYetValidError(not_before)
        if now >= expires_at:
            logger.info("Token rejected: expired", extra={"expires_at": expires_at.isoformat()})
            raise TokenExpiredError(expires_at)
        return claims

    def refresh(self, old_token: str, new_claims: Mapping[str, Any] | None = None) -> str:
        """Issue a new token from a valid one, or from one expired within the grace window."""
        try:
            self.verify(old_token)
        except TokenExpiredError as e:
            if e.expires_at is None:
                raise TokenRefreshError(e) from e
            grace_end = e.expires_at + self.refresh_grace
            if self._clock() > grace_end:
                raise TokenRefreshError(
                    e,
                    message="Token refresh window has passed, log in again.",
                    kind="token_refresh_expired",
                ) from e
        except TokenError as e:
            raise TokenRefreshError(e) from e

        old_claims = self.decode(old_token)
        if not old_claims:
            raise TokenRefreshError(TokenMalformedError())
        merged = {**old_claims, **(dict(new_claims) if new_claims else {})}
        for key in STANDARD_CLAIMS:
            merged.pop(key, None)
        token = self.issue(merged)
        logger.info("Token refreshed", extra={"sub": merged.get("sub")})
        return token

    def decode(self, token: str) -> dict[str, Any] | None:
        """Parse claims without verifying anything; None when unparseable."""
        if not isinstance(token, str) or not token.strip():
            return None
        try:
            claims = jwt.decode(strip_bearer(token), options={"verify_signature": False})
        except jwt.PyJWTError:
            return None
        return claims if isinstance(claims, dict) else None


@lru_cache
def get_token_service() -> TokenService:
    """Dependency: token service built from settings."""
    settings = get_settings()
    return TokenService(
        secret=settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        lifetime=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        refresh_grace=timedelta(seconds=settings.JWT_REFRESH_GRACE_SECONDS),
    )
