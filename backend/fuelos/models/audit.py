import uuid

from sqlalchemy import Column, String, DateTime

from fuelos.database import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_email = Column(String, nullable=False)
    role = Column(String, nullable=False)
    action = Column(String, nullable=False)
    ip = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
