import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import declared_attr

from fuelos.database import Base, utcnow
from fuelos.models.enums import UserStatus


class TenantStaffMixin:
    """Columns shared by managers and operators."""

    id = Column(String(32), primary_key=True, index=True)
    pump_id = Column(String(32), nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    shift = Column(String, default="Morning")
    status = Column(String, nullable=False, default=UserStatus.ACTIVE.value)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Some legacy rows never had the tenant reference filled in
    @declared_attr
    def owner_id(cls):
        return Column(String(32), ForeignKey("owners.id"), nullable=True, index=True)


class Manager(TenantStaffMixin, Base):
    __tablename__ = "managers"


class Operator(TenantStaffMixin, Base):
    __tablename__ = "operators"


class CompanyUser(Base):
    """FuelOS company staff: admin, superadmin, monitor, caller."""

    __tablename__ = "company_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    status = Column(String, nullable=False, default=UserStatus.ACTIVE.value)
    totp_enabled = Column(Boolean, nullable=False, default=False)
    totp_secret = Column(String, nullable=True)
    pending_totp_secret = Column(String, nullable=True)
    backup_codes = Column(JSON, nullable=True)  # bcrypt hashes
    backup_codes_version = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
