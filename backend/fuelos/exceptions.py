"""
Auth error taxonomy.

Every error carries the HTTP status it maps to; the handler in ``main.py``
renders ``to_dict()`` and nothing else, so messages here must never name
the field that was wrong.
"""

from typing import Any, Dict, Optional


class AuthError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_code = "AUTH_ERROR"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}


class MissingFields(AuthError):
    status_code = 400
    default_code = "MISSING_FIELDS"
    default_message = "Required fields are missing"


class InvalidCredentials(AuthError):
    """Unknown account, wrong password or role mismatch. Deliberately indistinguishable."""

    status_code = 401
    default_code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccountSuspended(AuthError):
    status_code = 403
    default_code = "ACCOUNT_SUSPENDED"
    default_message = "Account suspended"


class InvalidOrExpiredChallenge(AuthError):
    status_code = 401
    default_code = "INVALID_OR_EXPIRED_CHALLENGE"
    default_message = "Invalid or expired code"


class InvalidAuthenticatorCode(AuthError):
    status_code = 401
    default_code = "INVALID_AUTHENTICATOR_CODE"
    default_message = "Invalid authenticator code"


class ChallengeRequired(AuthError):
    """The account uses an authenticator app; the password step must be completed first."""

    status_code = 401
    default_code = "CHALLENGE_REQUIRED"
    default_message = "Two-factor verification required"


class TwoFactorNotInitialized(AuthError):
    status_code = 400
    default_code = "TWO_FA_NOT_INITIALIZED"
    default_message = "2FA setup has not been started"


class PermissionDenied(AuthError):
    status_code = 403
    default_code = "PERMISSION_DENIED"
    default_message = "Access denied"


class NotFound(AuthError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Not found"


class Conflict(AuthError):
    status_code = 409
    default_code = "CONFLICT"
    default_message = "Already exists"


class StoreUnavailable(AuthError):
    """Transient datastore failure; safe for the client to retry."""

    status_code = 503
    default_code = "STORE_UNAVAILABLE"
    default_message = "Service temporarily unavailable"


class TwoFactorAlreadyEnabled(AuthError):
    """Re-enrollment would replace the active secret; 2FA must be disabled (with the password) first."""

    status_code = 409
    default_code = "TWO_FA_ALREADY_ENABLED"
    default_message = "2FA is already enabled"
