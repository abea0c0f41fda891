from .enums import Role, UserStatus
from .tenant import Owner, Pump
from .user import Manager, Operator, CompanyUser
from .challenge import PendingChallenge
from .audit import AuditLog

__all__ = [
    "Role", "UserStatus", "Owner", "Pump", "Manager", "Operator",
    "CompanyUser", "PendingChallenge", "AuditLog"
]
