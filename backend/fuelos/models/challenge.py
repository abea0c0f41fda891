from sqlalchemy import Column, String, DateTime

from fuelos.database import Base, utcnow


class PendingChallenge(Base):
    """Outstanding numeric login code for a company-staff login, one per (email, role)."""

    __tablename__ = "pending_challenges"

    email = Column(String, primary_key=True)
    role = Column(String, primary_key=True)
    code = Column(String(6), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
