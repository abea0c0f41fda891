from dataclasses import dataclass
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from fuelos.config import get_settings
from fuelos.database import get_db
from fuelos.exceptions import (
    AccountSuspended, ChallengeRequired, Conflict, InvalidCredentials,
    InvalidOrExpiredChallenge, MissingFields, NotFound, PermissionDenied
)
from fuelos.models import CompanyUser, Role, UserStatus
from fuelos.roles import MANAGE_STAFF, MANAGEABLE_STAFF_ROLES, TWO_FACTOR, RoleProfile, get_profile, parse_role
from fuelos.schemas.auth import (
    AdminLoginResponse, AdminVerify, CompanyUserCreate, CompanyUserResponse,
    PasswordChange, PasswordReset, ProfileUpdate, Success, TOTPDisable, TOTPEnable, TOTPEnabled,
    TOTPSetup, TOTPStatus, Token, UserLogin, UserResponse
)
from fuelos.services.audit_service import AuditService
from fuelos.services.auth_service import AuthService
from fuelos.services.challenge_service import ChallengeService
from fuelos.services.credential_store import CredentialStore, store_errors
from fuelos.services.two_factor_service import TwoFactorService

router = APIRouter(prefix="/api/auth", tags=["authentication"])
settings = get_settings()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    user: object
    role: Role
    claims: dict

    @property
    def profile(self) -> RoleProfile:
        return get_profile(self.role)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
    payload = AuthService.decode_session_token(token) if token else None
    if payload is None:
        raise InvalidCredentials("Invalid or expired token")

    role = parse_role(payload["role"])
    user = CredentialStore(db).find_by_id(role, payload.get("id") or payload.get("sub"))
    if user is None:
        raise InvalidCredentials("Invalid or expired token")
    if user.status == UserStatus.SUSPENDED.value:
        raise AccountSuspended()
    return CurrentUser(user=user, role=role, claims=payload)


def require_staff(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.profile.is_staff:
        raise PermissionDenied("Admin access required")
    return current


def require_superadmin(current: CurrentUser = Depends(require_staff)) -> CurrentUser:
    if not current.profile.can(MANAGE_STAFF):
        raise PermissionDenied("SuperAdmin access required")
    return current


def require_two_factor(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.profile.can(TWO_FACTOR):
        raise PermissionDenied("2FA is only available to company staff")
    return current


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def to_user_response(store: CredentialStore, role: Role, user) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=role.value,
        status=user.status,
        tenant_id=AuthService.resolve_tenant_id(store, role, user),
        pump_id=getattr(user, "pump_id", None),
        phone=getattr(user, "phone", None),
        plan=getattr(user, "plan", None),
        business_name=getattr(user, "business_name", None),
        gst=getattr(user, "gst", None),
        pan=getattr(user, "pan", None),
        address=getattr(user, "address", None),
        shift=getattr(user, "shift", None),
        totp_enabled=getattr(user, "totp_enabled", None),
        last_login=user.last_login,
    )


def _session_response(store: CredentialStore, role: Role, user) -> Token:
    return Token(
        token=AuthService.issue_session(store, role, user),
        role=role.value,
        user=to_user_response(store, role, user),
    )


@router.post("/login", response_model=Token)
def login(login_data: UserLogin, request: Request, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """Owner / manager / operator login"""
    store = CredentialStore(db)
    role, user = AuthService.authenticate_user(store, login_data.role, login_data.email, login_data.password)

    background_tasks.add_task(AuditService.record, user.email, role.value, "Login", get_client_ip(request))
    return _session_response(store, role, user)


@router.post("/admin-login", response_model=AdminLoginResponse, response_model_exclude_none=True)
def admin_login(login_data: UserLogin, db: Session = Depends(get_db)):
    """Company staff login, step 1: check password, then issue a code or ask for the authenticator"""
    store = CredentialStore(db)
    role, user = AuthService.authenticate_staff(store, login_data.role, login_data.email, login_data.password)

    try:
        issued = ChallengeService(db).issue(role, user)
    except ChallengeRequired:
        logger.info(f"Admin login for {user.email} continues with authenticator app")
        return AdminLoginResponse(
            role=role.value,
            two_fa=True,
            challenge_token=AuthService.create_challenge_token(role, user),
        )

    return AdminLoginResponse(
        role=role.value,
        message="OTP sent",
        dev_otp=issued.code if settings.expose_dev_otp else None,
    )


@router.post("/admin-verify", response_model=Token)
def admin_verify(verify_data: AdminVerify, request: Request, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """
    Company staff login, step 2: numeric code, authenticator code or backup code.

    Body: `{otp | code, role, email?, challengeToken?}`. Accounts with an
    authenticator app must send the `challengeToken` returned by
    `/admin-login`; numeric codes are matched without it.
    """
    code = verify_data.otp or verify_data.code
    if not code:
        raise MissingFields("otp or code required")
    try:
        role = parse_role(verify_data.role)
    except ValueError:
        raise InvalidOrExpiredChallenge()
    if not get_profile(role).is_staff:
        raise InvalidOrExpiredChallenge()

    store = CredentialStore(db)
    if verify_data.challenge_token:
        claims = AuthService.decode_challenge_token(verify_data.challenge_token)
        if claims is None or claims.get("role") != role.value:
            raise ChallengeRequired()
        user = store.find_by_id(role, claims["sub"])
        if user is None or user.status != UserStatus.ACTIVE.value:
            raise ChallengeRequired()
        TwoFactorService(db).verify_login_code(user, code)
    else:
        user = ChallengeService(db).verify(role, code, verify_data.email)

    store.touch_login(role, user.id)
    logger.info(f"{role.value} login: {user.email}")
    background_tasks.add_task(AuditService.record, user.email, role.value, "Login", get_client_ip(request))
    return _session_response(store, role, user)


@router.get("/me", response_model=UserResponse)
def read_users_me(current: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get current user info"""
    return to_user_response(CredentialStore(db), current.role, current.user)


@router.patch("/password", response_model=Success)
def change_password(password_data: PasswordChange, current: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    AuthService.change_password(
        CredentialStore(db), current.role, current.user,
        password_data.current_password, password_data.new_password
    )
    return Success()


@router.patch("/profile", response_model=UserResponse)
def update_profile(profile_data: ProfileUpdate, current: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """Update the caller's own name/phone; owners may also set business details"""
    store = CredentialStore(db)
    changes = profile_data.model_dump(exclude_unset=True)
    applied = store.update_profile(current.role, current.user.id, changes)
    if applied:
        logger.info(f"Profile updated for {current.role.value} {current.user.id}: {sorted(applied)}")
    db.refresh(current.user)
    return to_user_response(store, current.role, current.user)


@router.api_route("/2fa/setup", methods=["GET", "POST"], response_model=TOTPSetup)
def setup_2fa(current: CurrentUser = Depends(require_two_factor), db: Session = Depends(get_db)):
    """Start authenticator enrollment; login behaviour is unchanged until /2fa/enable"""
    enrollment = TwoFactorService(db).begin_enrollment(current.user)
    return TOTPSetup(
        secret=enrollment.secret,
        qr_data_uri=enrollment.qr_data_uri,
        otpauth_uri=enrollment.otpauth_uri,
    )


@router.post("/2fa/enable", response_model=TOTPEnabled)
def enable_2fa(enable_data: TOTPEnable, current: CurrentUser = Depends(require_two_factor), db: Session = Depends(get_db)):
    backup_codes = TwoFactorService(db).confirm_enrollment(current.user, enable_data.code)
    return TOTPEnabled(backup_codes=backup_codes)


@router.post("/2fa/disable", response_model=Success)
def disable_2fa(disable_data: TOTPDisable, current: CurrentUser = Depends(require_two_factor), db: Session = Depends(get_db)):
    TwoFactorService(db).disable(current.role, current.user, disable_data.password)
    return Success()


@router.get("/2fa/status", response_model=TOTPStatus)
def two_fa_status(current: CurrentUser = Depends(require_two_factor), db: Session = Depends(get_db)):
    return TOTPStatus(**TwoFactorService(db).status(current.user))


@router.get("/company-users", response_model=List[CompanyUserResponse])
def list_company_users(current: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    with store_errors(db, "list_company_users"):
        return db.query(CompanyUser).filter(
            CompanyUser.role != Role.SUPERADMIN.value,
            CompanyUser.status != UserStatus.DELETED.value,
        ).order_by(CompanyUser.created_at.desc()).all()


@router.post("/company-users", response_model=CompanyUserResponse)
def create_company_user(user_data: CompanyUserCreate, current: CurrentUser = Depends(require_superadmin), db: Session = Depends(get_db)):
    try:
        role = parse_role(user_data.role)
    except ValueError:
        raise MissingFields("Invalid role")
    if role not in MANAGEABLE_STAFF_ROLES:
        raise MissingFields("Invalid role")

    email = user_data.email.strip().lower()
    if db.query(CompanyUser).filter(CompanyUser.email == email).first():
        raise Conflict("Email already exists")

    staff = CompanyUser(
        email=email,
        name=user_data.name,
        role=role.value,
        password_hash=AuthService.get_password_hash(user_data.password),
    )
    db.add(staff)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already exists")
    db.refresh(staff)

    logger.info(f"Company user created: {staff.email} ({staff.role}) by {current.user.email}")
    return staff


def _get_managed_staff(db: Session, user_id: str) -> CompanyUser:
    staff = db.query(CompanyUser).filter(
        CompanyUser.id == user_id,
        CompanyUser.role != Role.SUPERADMIN.value,
        CompanyUser.status != UserStatus.DELETED.value,
    ).first()
    if staff is None:
        raise NotFound("Company user not found")
    return staff


@router.delete("/company-users/{user_id}", response_model=Success)
def delete_company_user(user_id: str, current: CurrentUser = Depends(require_superadmin), db: Session = Depends(get_db)):
    staff = _get_managed_staff(db, user_id)
    with store_errors(db, "delete_company_user"):
        db.delete(staff)
        db.commit()
    logger.info(f"Company user {user_id} deleted by {current.user.email}")
    return Success()


@router.patch("/company-users/{user_id}/password", response_model=Success)
def reset_company_user_password(user_id: str, password_data: PasswordReset, current: CurrentUser = Depends(require_superadmin), db: Session = Depends(get_db)):
    staff = _get_managed_staff(db, user_id)
    CredentialStore(db).set_password_hash(Role(staff.role), staff.id, AuthService.get_password_hash(password_data.password))
    logger.info(f"Password reset for company user {user_id} by {current.user.email}")
    return Success()
