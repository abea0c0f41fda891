"""
Tests for the error taxonomy, code generation and settings validation.
"""

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from fuelos import exceptions
from fuelos.config import Settings
from fuelos.services import challenge_service
from fuelos.services.credential_store import CredentialStore


@pytest.mark.parametrize("error_class, status_code, code", [
    (exceptions.MissingFields, 400, "MISSING_FIELDS"),
    (exceptions.InvalidCredentials, 401, "INVALID_CREDENTIALS"),
    (exceptions.AccountSuspended, 403, "ACCOUNT_SUSPENDED"),
    (exceptions.InvalidOrExpiredChallenge, 401, "INVALID_OR_EXPIRED_CHALLENGE"),
    (exceptions.InvalidAuthenticatorCode, 401, "INVALID_AUTHENTICATOR_CODE"),
    (exceptions.ChallengeRequired, 401, "CHALLENGE_REQUIRED"),
    (exceptions.TwoFactorNotInitialized, 400, "TWO_FA_NOT_INITIALIZED"),
    (exceptions.TwoFactorAlreadyEnabled, 409, "TWO_FA_ALREADY_ENABLED"),
    (exceptions.PermissionDenied, 403, "PERMISSION_DENIED"),
    (exceptions.NotFound, 404, "NOT_FOUND"),
    (exceptions.Conflict, 409, "CONFLICT"),
    (exceptions.StoreUnavailable, 503, "STORE_UNAVAILABLE"),
])
def test_error_taxonomy(error_class, status_code, code):
    error = error_class()
    assert isinstance(error, exceptions.AuthError)
    assert error.status_code == status_code
    assert error.to_dict() == {"error": code, "message": error_class.default_message, "details": {}}


def test_custom_message_and_details():
    error = exceptions.MissingFields("otp or code required", details={"fields": ["otp"]})
    assert error.to_dict()["message"] == "otp or code required"
    assert error.to_dict()["details"] == {"fields": ["otp"]}


@pytest.mark.parametrize("draw", [0, 899999])
def test_generated_codes_are_six_digits(monkeypatch, draw):
    monkeypatch.setattr(challenge_service.secrets, "randbelow", lambda n: draw)
    code = challenge_service.generate_code()
    assert len(code) == 6 and code.isdigit()


def test_store_failure_maps_to_503(client, monkeypatch):
    def unavailable(self, role, email):
        raise exceptions.StoreUnavailable()

    monkeypatch.setattr(CredentialStore, "find", unavailable)
    response = client.post("/api/auth/login", json={"email": "rajesh@sharma.com", "password": "owner123", "role": "owner"})
    assert response.status_code == 503
    assert response.json()["error"] == "STORE_UNAVAILABLE"


def test_store_errors_wraps_sqlalchemy_failures(db, monkeypatch):
    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "query", broken_query)
    with pytest.raises(exceptions.StoreUnavailable):
        CredentialStore(db).find("owner", "rajesh@sharma.com")


def test_staff_token_ttl_is_bounded():
    with pytest.raises(ValidationError):
        Settings(staff_token_expire_hours=48)
    assert Settings(staff_token_expire_hours=24).staff_token_expire_hours == 24


def test_dev_otp_hidden_in_production():
    assert Settings(environment="production").expose_dev_otp is False
    assert Settings(environment="development").expose_dev_otp is True
