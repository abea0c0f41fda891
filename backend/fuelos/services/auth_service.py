from datetime import timedelta
from typing import Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

from fuelos.config import get_settings
from fuelos.database import utcnow
from fuelos.exceptions import AccountSuspended, InvalidCredentials
from fuelos.models import Role, UserStatus
from fuelos.roles import STAFF_ROLES, TENANT_ROLES, get_profile, parse_role
from fuelos.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)
settings = get_settings()

# "plaintext" only ever verifies legacy rows; anything it matches is rehashed with bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt", "plaintext"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

TWO_FA_PURPOSE = "2fa"


class AuthService:
    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def is_salted_hash(stored: Optional[str]) -> bool:
        return bool(stored) and pwd_context.identify(stored, required=False) == "bcrypt"

    @staticmethod
    def check_password(store: CredentialStore, role, user, password: str) -> bool:
        """
        Verify a presented password against the user's stored value.

        Legacy plaintext rows are migrated to bcrypt on the first successful
        match. Salted hashes are only ever verified, never rewritten, whatever
        their ident or cost. The write-back is conditional on the old value, so
        concurrent logins cannot clobber a password changed in between.
        """
        stored = user.password_hash or ""
        if not password or not stored:
            return False

        try:
            if pwd_context.identify(stored) != "plaintext":
                return pwd_context.verify(password, stored)
            valid, new_hash = pwd_context.verify_and_update(password, stored)
        except ValueError:
            logger.warning(f"Unreadable password hash for {role.value} {user.id}")
            return False
        if valid and new_hash:
            if store.replace_password_hash(role, user.id, stored, new_hash):
                logger.info(f"Migrated legacy password hash for {role.value} {user.id}")
                user.password_hash = new_hash
        return valid

    @staticmethod
    def _authenticate(store: CredentialStore, role: Role, email: str, password: str):
        user = store.find(role, email)
        if not user:
            # Same cost as a real check so response time does not reveal unknown emails
            pwd_context.dummy_verify()
            raise InvalidCredentials()
        if not AuthService.check_password(store, role, user, password):
            raise InvalidCredentials()
        if user.status == UserStatus.SUSPENDED.value:
            raise AccountSuspended()
        return user

    @staticmethod
    def authenticate_user(store: CredentialStore, role: str, email: str, password: str):
        """Owner / manager / operator login. Returns (role, user)."""
        try:
            role = parse_role(role)
        except ValueError:
            raise InvalidCredentials()
        if role not in TENANT_ROLES:
            raise InvalidCredentials()

        user = AuthService._authenticate(store, role, email, password)
        store.touch_login(role, user.id)
        logger.info(f"{role.value} login: {user.email}")
        return role, user

    @staticmethod
    def authenticate_staff(store: CredentialStore, role: str, email: str, password: str):
        """First factor for company staff. Returns (role, user); no session yet."""
        try:
            role = parse_role(role)
        except ValueError:
            raise InvalidCredentials()
        if role not in STAFF_ROLES:
            raise InvalidCredentials()
        return role, AuthService._authenticate(store, role, email, password)

    @staticmethod
    def resolve_tenant_id(store: CredentialStore, role: Role, user) -> Optional[str]:
        profile = get_profile(role)
        if profile.is_staff:
            return None
        if role == Role.OWNER:
            return str(user.id)
        if user.owner_id:
            return str(user.owner_id)

        # Fall back to the owner of the user's pump
        pump = store.find_pump(user.pump_id)
        if pump:
            return str(pump.owner_id)
        logger.warning(f"No tenant could be resolved for {role.value} {user.id}")
        return None

    @staticmethod
    def create_access_token(data: dict, secret: str, expires_delta: Optional[timedelta] = None):
        to_encode = data.copy()
        now = utcnow()
        if expires_delta:
            expire = now + expires_delta
        else:
            expire = now + timedelta(minutes=15)
        to_encode.update({"exp": expire, "iat": now})
        encoded_jwt = jwt.encode(to_encode, secret, algorithm=settings.algorithm)
        return encoded_jwt

    @staticmethod
    def issue_session(store: CredentialStore, role: Role, user) -> str:
        profile = get_profile(role)
        claims = {
            "sub": str(user.id),
            "id": str(user.id),
            "email": user.email,
            "role": role.value,
        }
        if not profile.is_staff:
            claims["tenantId"] = AuthService.resolve_tenant_id(store, role, user)
        return AuthService.create_access_token(claims, profile.signing_key, profile.token_ttl)

    @staticmethod
    def create_challenge_token(role: Role, user) -> str:
        """Short-lived hand-off between the password step and the TOTP step."""
        return AuthService.create_access_token(
            {"sub": str(user.id), "role": role.value, "purpose": TWO_FA_PURPOSE},
            settings.admin_jwt_secret,
            timedelta(minutes=settings.two_fa_token_expire_minutes),
        )

    @staticmethod
    def decode_session_token(token: str) -> Optional[dict]:
        """Return session claims, or None if the token is invalid, expired or not a session."""
        for secret, staff in ((settings.jwt_secret, False), (settings.admin_jwt_secret, True)):
            try:
                payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
            except JWTError:
                continue
            try:
                profile = get_profile(payload.get("role"))
            except ValueError:
                return None
            # A tenant role signed with the staff key (or vice versa) is rejected;
            # the keys may be equal, so try the other one before giving up
            if profile.is_staff != staff or payload.get("purpose"):
                continue
            return payload
        return None

    @staticmethod
    def decode_challenge_token(token: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, settings.admin_jwt_secret, algorithms=[settings.algorithm])
        except JWTError:
            return None
        if payload.get("purpose") != TWO_FA_PURPOSE:
            return None
        return payload

    @staticmethod
    def change_password(store: CredentialStore, role: Role, user, current_password: str, new_password: str) -> None:
        if not AuthService.check_password(store, role, user, current_password):
            raise InvalidCredentials("Current password incorrect")
        store.set_password_hash(role, user.id, AuthService.get_password_hash(new_password))
        logger.info(f"Password changed for {role.value} {user.id}")
