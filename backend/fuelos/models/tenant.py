from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from fuelos.database import Base, utcnow
from fuelos.models.enums import UserStatus


class Owner(Base):
    """Tenant owner. The owner's own id is the tenant id."""

    __tablename__ = "owners"

    id = Column(String(32), primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    business_name = Column(String, nullable=True)
    gst = Column(String, nullable=True)
    pan = Column(String, nullable=True)
    address = Column(String, nullable=True)
    plan = Column(String, nullable=False, default="Starter")
    status = Column(String, nullable=False, default=UserStatus.ACTIVE.value)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationship
    pumps = relationship("Pump", back_populates="owner")


class Pump(Base):
    __tablename__ = "pumps"

    id = Column(String(32), primary_key=True, index=True)
    owner_id = Column(String(32), ForeignKey("owners.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    status = Column(String, default="Active")
    created_at = Column(DateTime, default=utcnow)

    owner = relationship("Owner", back_populates="pumps")
