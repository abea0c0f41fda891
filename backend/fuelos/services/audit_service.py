import logging

from fuelos import database
from fuelos.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    @staticmethod
    def record(user_email: str, role: str, action: str, ip: str = None) -> None:
        """Write one audit row in its own session. Failures are logged, never raised."""
        db = database.SessionLocal()
        try:
            db.add(AuditLog(user_email=user_email, role=role, action=action, ip=ip))
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Audit write failed for {user_email} ({action})")
        finally:
            db.close()
