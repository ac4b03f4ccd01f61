"""Typed failures raised by services and rendered once at the HTTP boundary.

Every error carries a stable machine-readable ``kind``, an HTTP status and a
message that is safe to show to the caller: never a password, code, token or
secret.
"""

from datetime import datetime


class AppError(Exception):
    """Base class for failures that are recovered into a structured response."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationFailedError(AppError):
    """Malformed or missing input the caller can fix."""

    kind = "validation"
    status_code = 422


class ConflictError(AppError):
    """Duplicate username/email, redundant state change or concurrent write."""

    kind = "conflict"
    status_code = 409


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404


class AuthFailureError(AppError):
    """Authentication failed; messages are deliberately low-information."""

    kind = "auth_failure"
    status_code = 401


class InvalidCredentialsError(AuthFailureError):
    kind = "invalid_credentials"


class AccountDisabledError(AuthFailureError):
    kind = "account_disabled"
    status_code = 403


class PermissionDeniedError(AppError):
    kind = "forbidden"
    status_code = 403


class CodeError(AppError):
    """Password-reset verification code could not be consumed."""

    kind = "code_error"
    status_code = 400


class CodeNotFoundError(CodeError):
    kind = "code_not_found"

    def __init__(self, message: str = "Verification code has expired or was never sent.") -> None:
        super().__init__(message)


class CodeExpiredError(CodeError):
    kind = "code_expired"

    def __init__(self, message: str = "Verification code has expired, request a new one.") -> None:
        super().__init__(message)


class CodeMismatchError(CodeError):
    kind = "code_mismatch"

    def __init__(self, message: str = "Verification code is incorrect.") -> None:
        super().__init__(message)


class TokenError(AppError):
    """Bearer token failed verification."""

    kind = "token_error"
    status_code = 401


class TokenExpiredError(TokenError):
    kind = "token_expired"

    def __init__(self, expires_at: datetime | None) -> None:
        self.expires_at = expires_at
        when = expires_at.isoformat() if expires_at else "unknown"
        super().__init__(f"Token has expired (expired at {when}).")


class TokenInvalidSignatureError(TokenError):
    kind = "token_invalid_signature"

    def __init__(self, message: str = "Token signature is invalid.") -> None:
        super().__init__(message)


class TokenNotYetValidError(TokenError):
    kind = "token_not_yet_valid"

    def __init__(self, not_before: datetime | None) -> None:
        self.not_before = not_before
        when = not_before.isoformat() if not_before else "unknown"
        super().__init__(f"Token is not valid yet (valid from {when}).")


class TokenMalformedError(TokenError):
    kind = "token_malformed"

    def __init__(self, message: str = "Token is malformed.") -> None:
        super().__init__(message)


class TokenInvalidError(TokenError):
    """Any other verification failure (issuer or audience mismatch, ...)."""

    kind = "token_invalid"

    def __init__(self, message: str = "Token is invalid.") -> None:
        super().__init__(message)


class TokenRefreshError(TokenError):
    """Token could not be refreshed; ``cause`` is the verification failure."""

    def __init__(self, cause: TokenError, message: str | None = None, kind: str | None = None) -> None:
        self.cause = cause
        self.kind = kind or cause.kind
        super().__init__(message or f"Cannot refresh token: {cause.message}")


class InvalidClaimsError(AppError):
    """Claims passed to token issuance are empty, not a mapping, or hold secrets."""

    kind = "invalid_claims"
    status_code = 500


class MailDeliveryError(AppError):
    kind = "mail_delivery_failed"
    status_code = 502
