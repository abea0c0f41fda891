from dataclasses import dataclass
from datetime import timedelta
from typing import FrozenSet, Union

from fuelos.config import get_settings
from fuelos.models import Role, Owner, Manager, Operator, CompanyUser

settings = get_settings()

TENANT = "tenant"
STAFF = "staff"

MANAGE_STAFF = "manage_staff"
TWO_FACTOR = "two_factor"


@dataclass(frozen=True)
class RoleProfile:
    role: Role
    model: type
    scope: str
    token_ttl: timedelta
    permissions: FrozenSet[str] = frozenset()
    # Columns the user may edit on their own profile
    profile_fields: FrozenSet[str] = frozenset({"name"})

    @property
    def is_staff(self) -> bool:
        return self.scope == STAFF

    @property
    def signing_key(self) -> str:
        return settings.admin_jwt_secret if self.is_staff else settings.jwt_secret

    def can(self, permission: str) -> bool:
        return permission in self.permissions


_tenant_ttl = timedelta(days=settings.tenant_token_expire_days)
_staff_ttl = timedelta(hours=settings.staff_token_expire_hours)
_tenant_profile = frozenset({"name", "phone"})
_owner_profile = _tenant_profile | {"business_name", "gst", "pan", "address"}

ROLE_PROFILES = {
    Role.OWNER: RoleProfile(Role.OWNER, Owner, TENANT, _tenant_ttl, profile_fields=_owner_profile),
    Role.MANAGER: RoleProfile(Role.MANAGER, Manager, TENANT, _tenant_ttl, profile_fields=_tenant_profile),
    Role.OPERATOR: RoleProfile(Role.OPERATOR, Operator, TENANT, _tenant_ttl, profile_fields=_tenant_profile),
    Role.ADMIN: RoleProfile(Role.ADMIN, CompanyUser, STAFF, _staff_ttl, frozenset({TWO_FACTOR})),
    Role.SUPERADMIN: RoleProfile(Role.SUPERADMIN, CompanyUser, STAFF, _staff_ttl, frozenset({TWO_FACTOR, MANAGE_STAFF})),
    Role.MONITOR: RoleProfile(Role.MONITOR, CompanyUser, STAFF, _staff_ttl, frozenset({TWO_FACTOR})),
    Role.CALLER: RoleProfile(Role.CALLER, CompanyUser, STAFF, _staff_ttl, frozenset({TWO_FACTOR})),
}

TENANT_ROLES = frozenset(r for r, p in ROLE_PROFILES.items() if not p.is_staff)
STAFF_ROLES = frozenset(r for r, p in ROLE_PROFILES.items() if p.is_staff)
# Roles a superadmin may create; the superadmin itself is only ever seeded
MANAGEABLE_STAFF_ROLES = frozenset({Role.ADMIN, Role.MONITOR, Role.CALLER})


def parse_role(value: Union[str, Role, None]) -> Role:
    """Parse a client-supplied role string. Raises ValueError for unknown roles."""
    if isinstance(value, Role):
        return value
    return Role(str(value or "").strip().lower())


def get_profile(role: Union[str, Role]) -> RoleProfile:
    return ROLE_PROFILES[parse_role(role)]
