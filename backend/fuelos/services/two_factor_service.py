from dataclasses import dataclass
from typing import List
import logging

from sqlalchemy.orm import Session

from fuelos.exceptions import (
    InvalidAuthenticatorCode, InvalidCredentials, TwoFactorAlreadyEnabled, TwoFactorNotInitialized
)
from fuelos.models import CompanyUser, Role
from fuelos.services.auth_service import AuthService
from fuelos.services.credential_store import CredentialStore, store_errors
from fuelos.services.totp_service import TOTPService

logger = logging.getLogger(__name__)

# Compare-and-swap retries when the backup code list changes underneath us
MAX_BURN_ATTEMPTS = 3


@dataclass
class Enrollment:
    secret: str
    otpauth_uri: str
    qr_data_uri: str


class TwoFactorService:
    """Authenticator-app (TOTP) enrollment and verification for company staff."""

    def __init__(self, db: Session):
        self.db = db
        self.store = CredentialStore(db)

    def begin_enrollment(self, user: CompanyUser) -> Enrollment:
        """Store a fresh secret in the pending slot; the active secret is untouched."""
        if user.totp_enabled:
            raise TwoFactorAlreadyEnabled()
        secret = TOTPService.generate_totp_secret()
        with store_errors(self.db, "begin_enrollment"):
            user.pending_totp_secret = secret
            self.db.commit()

        uri = TOTPService.provisioning_uri(user.email, secret)
        logger.info(f"2FA enrollment started for {user.email}")
        return Enrollment(secret=secret, otpauth_uri=uri, qr_data_uri=TOTPService.generate_qr_code(uri))

    def confirm_enrollment(self, user: CompanyUser, code: str) -> List[str]:
        """Promote the pending secret once a code from it verifies. Returns plaintext backup codes."""
        if user.totp_enabled:
            raise TwoFactorAlreadyEnabled()
        if not user.pending_totp_secret:
            raise TwoFactorNotInitialized()
        if not TOTPService.verify_totp(user.pending_totp_secret, code):
            # Pending secret stays so the user can retry
            raise InvalidAuthenticatorCode()

        backup_codes = TOTPService.generate_backup_codes()
        with store_errors(self.db, "confirm_enrollment"):
            user.totp_secret = user.pending_totp_secret
            user.pending_totp_secret = None
            user.totp_enabled = True
            user.backup_codes = [TOTPService.hash_backup_code(c) for c in backup_codes]
            user.backup_codes_version = (user.backup_codes_version or 0) + 1
            self.db.commit()

        logger.info(f"2FA enabled for {user.email}")
        return backup_codes

    def disable(self, role: Role, user: CompanyUser, password: str) -> None:
        """Turn 2FA off. Requires the account password, not a TOTP code."""
        if not AuthService.check_password(self.store, role, user, password):
            raise InvalidCredentials()

        with store_errors(self.db, "disable_2fa"):
            user.totp_enabled = False
            user.totp_secret = None
            user.pending_totp_secret = None
            user.backup_codes = None
            user.backup_codes_version = (user.backup_codes_version or 0) + 1
            self.db.commit()
        logger.info(f"2FA disabled for {user.email}")

    def verify_login_code(self, user: CompanyUser, code: str) -> None:
        """Accept a current TOTP code or burn a matching backup code."""
        if not user.totp_enabled or not user.totp_secret:
            raise InvalidAuthenticatorCode()
        if TOTPService.verify_totp(user.totp_secret, code):
            return
        if self.burn_backup_code(user, code):
            logger.info(f"Backup code used by {user.email}")
            return
        raise InvalidAuthenticatorCode()

    def burn_backup_code(self, user: CompanyUser, code: str) -> bool:
        """
        Remove the backup code matching ``code`` from the user's list.

        The write is conditional on backup_codes_version, so when two requests
        race on the same code exactly one of them succeeds.
        """
        for _ in range(MAX_BURN_ATTEMPTS):
            with store_errors(self.db, "burn_backup_code"):
                self.db.refresh(user)
                hashes = list(user.backup_codes or [])
                index = TOTPService.match_backup_code(code, hashes)
                if index is None:
                    return False

                version = user.backup_codes_version or 0
                remaining = hashes[:index] + hashes[index + 1:]
                swapped = self.db.query(CompanyUser).filter(
                    CompanyUser.id == user.id,
                    CompanyUser.backup_codes_version == version,
                ).update(
                    {"backup_codes": remaining, "backup_codes_version": version + 1},
                    synchronize_session=False,
                )
                self.db.commit()
            if swapped == 1:
                return True
            logger.info(f"Backup code list for {user.email} changed concurrently, retrying")
        return False

    def status(self, user: CompanyUser) -> dict:
        return {
            "enabled": bool(user.totp_enabled),
            "pending": bool(user.pending_totp_secret),
            "backup_codes_count": len(user.backup_codes or []),
        }
