from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
import secrets

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fuelos.config import get_settings
from fuelos.database import utcnow
from fuelos.exceptions import ChallengeRequired, InvalidOrExpiredChallenge
from fuelos.models import PendingChallenge, Role, UserStatus
from fuelos.services.credential_store import CredentialStore, store_errors
from fuelos.services.notifier import OtpNotifier

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class IssuedChallenge:
    code: str
    expires_at: datetime


def generate_code() -> str:
    # 100000..999999, so the string is always six digits
    return str(100000 + secrets.randbelow(900000))


class ChallengeService:
    """Numeric one-time codes for company-staff logins, persisted per (email, role)."""

    def __init__(self, db: Session, notifier: Optional[OtpNotifier] = None):
        self.db = db
        self.store = CredentialStore(db)
        self.notifier = notifier or OtpNotifier()

    def issue(self, role: Role, user) -> IssuedChallenge:
        """
        Issue a fresh code for a user whose password has already been verified.

        Raises ChallengeRequired instead when the account uses an authenticator
        app; nothing is stored in that case.
        """
        if user.totp_enabled:
            raise ChallengeRequired()

        email = user.email.strip().lower()
        code = generate_code()
        expires_at = utcnow() + timedelta(minutes=settings.otp_expire_minutes)
        self._upsert(email, role.value, code, expires_at)
        logger.info(f"Issued login code for {role.value} {email}")

        try:
            self.notifier.send(user.email, code)
        except Exception as e:
            logger.warning(f"OTP delivery failed for {email}: {e}")

        return IssuedChallenge(code=code, expires_at=expires_at)

    def _upsert(self, email: str, role: str, code: str, expires_at: datetime) -> None:
        with store_errors(self.db, "issue_challenge"):
            try:
                self._write(email, role, code, expires_at)
            except IntegrityError:
                # Lost an insert race for the same key; the row exists now
                self.db.rollback()
                self._write(email, role, code, expires_at)

    def _write(self, email, role, code, expires_at) -> None:
        challenge = self.db.get(PendingChallenge, (email, role))
        if challenge is None:
            challenge = PendingChallenge(email=email, role=role)
            self.db.add(challenge)
        challenge.code = code
        challenge.expires_at = expires_at
        challenge.created_at = utcnow()
        self.db.commit()

    def verify(self, role: Role, code: str, email: Optional[str] = None):
        """
        Consume a pending code and return the staff user it was issued to.

        Wrong and expired codes fail the same way. Without an email the code
        must identify exactly one pending challenge for the role.
        """
        code = str(code or "").strip()
        if len(code) != 6 or not code.isdigit():
            raise InvalidOrExpiredChallenge()

        with store_errors(self.db, "verify_challenge"):
            query = self.db.query(PendingChallenge).filter(
                PendingChallenge.role == role.value,
                PendingChallenge.code == code,
                PendingChallenge.expires_at > utcnow(),
            )
            if email:
                query = query.filter(func.lower(PendingChallenge.email) == email.strip().lower())
            matches = query.limit(2).all()
            if len(matches) != 1:
                raise InvalidOrExpiredChallenge()
            challenge_email = matches[0].email

            # Single use: only the caller whose delete removes the row wins
            consumed = self.db.query(PendingChallenge).filter(
                PendingChallenge.email == challenge_email,
                PendingChallenge.role == role.value,
                PendingChallenge.code == code,
            ).delete()
            self.db.commit()
        if consumed != 1:
            raise InvalidOrExpiredChallenge()

        user = self.store.find(role, challenge_email)
        if not user or user.status != UserStatus.ACTIVE.value or user.totp_enabled:
            raise InvalidOrExpiredChallenge()
        return user

    def purge_expired(self) -> int:
        with store_errors(self.db, "purge_challenges"):
            removed = self.db.query(PendingChallenge).filter(
                PendingChallenge.expires_at <= utcnow()
            ).delete()
            self.db.commit()
        if removed:
            logger.info(f"Purged {removed} expired login challenges")
        return removed
