"""
Tests for the two-step company staff login.
"""

from datetime import timedelta

import pyotp
from fastapi import status

from fuelos.database import utcnow
from fuelos.models import AuditLog, CompanyUser, PendingChallenge
from fuelos.services.notifier import OtpNotifier
from fuelos.services.totp_service import TOTPService

SUPERADMIN = {"email": "superadmin@fuelos.in", "password": "super-secret", "role": "superadmin"}


def _admin_login(client, **overrides):
    return client.post("/api/auth/admin-login", json={**SUPERADMIN, **overrides})


def _verify(client, **payload):
    return client.post("/api/auth/admin-verify", json=payload)


def _totp_staff(make_staff, backup_codes=()):
    secret = pyotp.random_base32()
    staff = make_staff(
        email="totp@fuelos.in",
        password="totp-pass",
        totp_enabled=True,
        totp_secret=secret,
        backup_codes=[TOTPService.hash_backup_code(c) for c in backup_codes],
        backup_codes_version=1,
    )
    return staff, secret


class TestNumericCode:
    def test_issue_and_verify(self, client, db):
        response = _admin_login(client)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "OTP sent"
        assert data["role"] == "superadmin"
        assert "two_fa" not in data or data["two_fa"] is False
        assert len(data["dev_otp"]) == 6 and data["dev_otp"].isdigit()

        pending = db.get(PendingChallenge, ("superadmin@fuelos.in", "superadmin"))
        assert pending.code == data["dev_otp"]

        verified = _verify(client, otp=data["dev_otp"], role="superadmin")
        assert verified.status_code == 200
        body = verified.json()
        assert body["role"] == "superadmin"
        assert body["user"]["email"] == "superadmin@fuelos.in"
        assert body["token"]

    def test_code_field_alias_and_email_scoping(self, client):
        code = _admin_login(client).json()["dev_otp"]
        assert _verify(client, code=code, role="superadmin", email="SuperAdmin@fuelos.in").status_code == 200

    def test_code_is_single_use(self, client, db):
        code = _admin_login(client).json()["dev_otp"]
        assert _verify(client, otp=code, role="superadmin").status_code == 200

        again = _verify(client, otp=code, role="superadmin")
        assert again.status_code == status.HTTP_401_UNAUTHORIZED
        assert again.json()["error"] == "INVALID_OR_EXPIRED_CHALLENGE"
        assert db.query(PendingChallenge).count() == 0

    def test_expired_code_fails_like_a_wrong_one(self, client, db):
        code = _admin_login(client).json()["dev_otp"]
        pending = db.get(PendingChallenge, ("superadmin@fuelos.in", "superadmin"))
        pending.expires_at = utcnow() - timedelta(seconds=1)
        db.commit()

        expired = _verify(client, otp=code, role="superadmin")
        wrong = _verify(client, otp="000000" if code != "000000" else "111111", role="superadmin")
        assert expired.status_code == wrong.status_code == 401
        assert expired.json() == wrong.json()

    def test_code_for_other_role_is_rejected(self, client):
        code = _admin_login(client).json()["dev_otp"]
        assert _verify(client, otp=code, role="admin").status_code == 401
        assert _verify(client, otp=code, role="owner").status_code == 401

    def test_reissue_replaces_previous_code(self, client, db):
        first = _admin_login(client).json()["dev_otp"]
        second = _admin_login(client).json()["dev_otp"]

        assert db.query(PendingChallenge).count() == 1
        if first != second:
            assert _verify(client, otp=first, role="superadmin").status_code == 401
        assert _verify(client, otp=second, role="superadmin").status_code == 200

    def test_wrong_password_issues_nothing(self, client, db):
        response = _admin_login(client, password="nope")
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"
        assert db.query(PendingChallenge).count() == 0

    def test_tenant_role_cannot_use_admin_login(self, client):
        response = client.post(
            "/api/auth/admin-login",
            json={"email": "rajesh@sharma.com", "password": "owner123", "role": "owner"},
        )
        assert response.status_code == 401

    def test_missing_code_is_400(self, client):
        assert _verify(client, role="superadmin").status_code == status.HTTP_400_BAD_REQUEST

    def test_notifier_failure_does_not_fail_login(self, client, monkeypatch):
        def broken_send(self, email, code):
            raise ConnectionError("smtp down")

        monkeypatch.setattr(OtpNotifier, "send", broken_send)
        response = _admin_login(client)
        assert response.status_code == 200
        assert _verify(client, otp=response.json()["dev_otp"], role="superadmin").status_code == 200

    def test_verify_records_login(self, client, db):
        code = _admin_login(client).json()["dev_otp"]
        assert _verify(client, otp=code, role="superadmin").status_code == 200

        db.expire_all()
        superadmin = db.query(CompanyUser).filter(CompanyUser.role == "superadmin").one()
        assert superadmin.last_login is not None
        assert db.query(AuditLog).filter(AuditLog.user_email == "superadmin@fuelos.in").count() == 1


class TestAuthenticatorCode:
    def test_password_step_hands_off_without_storing_a_code(self, client, db, make_staff):
        _totp_staff(make_staff)
        response = _admin_login(client, email="totp@fuelos.in", password="totp-pass", role="admin")

        assert response.status_code == 200
        data = response.json()
        assert data["two_fa"] is True
        assert data["challenge_token"]
        assert "dev_otp" not in data
        assert db.query(PendingChallenge).count() == 0

    def test_totp_code_completes_login(self, client, make_staff):
        staff, secret = _totp_staff(make_staff)
        hand_off = _admin_login(client, email="totp@fuelos.in", password="totp-pass", role="admin").json()["challenge_token"]

        response = _verify(client, code=pyotp.TOTP(secret).now(), role="admin", challengeToken=hand_off)
        assert response.status_code == 200
        assert response.json()["user"]["id"] == staff.id

    def test_totp_code_without_password_step_is_refused(self, client, make_staff):
        _, secret = _totp_staff(make_staff)
        response = _verify(client, code=pyotp.TOTP(secret).now(), role="admin", email="totp@fuelos.in")
        assert response.status_code == 401

    def test_tampered_hand_off_is_refused(self, client, make_staff):
        _, secret = _totp_staff(make_staff)
        response = _verify(client, code=pyotp.TOTP(secret).now(), role="admin", challengeToken="not-a-token")
        assert response.status_code == 401
        assert response.json()["error"] == "CHALLENGE_REQUIRED"

    def test_wrong_totp_code(self, client, make_staff):
        _totp_staff(make_staff)
        hand_off = _admin_login(client, email="totp@fuelos.in", password="totp-pass", role="admin").json()["challenge_token"]

        response = _verify(client, code="12345x", role="admin", challengeToken=hand_off)
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_AUTHENTICATOR_CODE"

    def test_backup_code_is_single_use(self, client, db, make_staff):
        staff, _ = _totp_staff(make_staff, backup_codes=["a1b2c3d4", "e5f6a7b8"])

        def attempt(code):
            hand_off = _admin_login(client, email="totp@fuelos.in", password="totp-pass", role="admin").json()["challenge_token"]
            return _verify(client, code=code, role="admin", challengeToken=hand_off)

        # Backup codes match case-insensitively
        assert attempt("A1B2C3D4").status_code == 200
        assert attempt("a1b2c3d4").status_code == 401

        db.expire_all()
        remaining = db.get(CompanyUser, staff.id)
        assert len(remaining.backup_codes) == 1
        assert remaining.backup_codes_version == 2
