from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    OPERATOR = "operator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    MONITOR = "monitor"
    CALLER = "caller"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    DELETED = "Deleted"
