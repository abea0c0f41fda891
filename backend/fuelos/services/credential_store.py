from contextlib import contextmanager
from typing import Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fuelos.database import utcnow
from fuelos.exceptions import StoreUnavailable
from fuelos.models import Pump, UserStatus
from fuelos.roles import get_profile

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, operation: str):
    """Roll back and surface datastore failures as StoreUnavailable."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Datastore failure during {operation}: {e}")
        raise StoreUnavailable() from e


class CredentialStore:
    """Role-parameterized access to the owners/managers/operators/company_users tables."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, role):
        profile = get_profile(role)
        query = self.db.query(profile.model)
        if profile.is_staff:
            # Staff roles share one table
            query = query.filter(profile.model.role == profile.role.value)
        return profile.model, query.filter(profile.model.status != UserStatus.DELETED.value)

    def find(self, role, email: str):
        if not email:
            return None
        with store_errors(self.db, "find"):
            model, query = self._query(role)
            return query.filter(func.lower(model.email) == email.strip().lower()).first()

    def find_by_id(self, role, user_id):
        if user_id is None:
            return None
        with store_errors(self.db, "find_by_id"):
            model, query = self._query(role)
            return query.filter(model.id == str(user_id)).first()

    def find_pump(self, pump_id) -> Optional[Pump]:
        if not pump_id:
            return None
        with store_errors(self.db, "find_pump"):
            return self.db.query(Pump).filter(Pump.id == str(pump_id)).first()

    def touch_login(self, role, user_id) -> None:
        with store_errors(self.db, "touch_login"):
            model = get_profile(role).model
            self.db.query(model).filter(model.id == str(user_id)).update({"last_login": utcnow()})
            self.db.commit()

    def replace_password_hash(self, role, user_id, expected_hash: str, new_hash: str) -> bool:
        """Swap the stored hash only if it still equals expected_hash."""
        with store_errors(self.db, "replace_password_hash"):
            model = get_profile(role).model
            updated = self.db.query(model).filter(
                model.id == str(user_id),
                model.password_hash == expected_hash,
            ).update({"password_hash": new_hash})
            self.db.commit()
            return updated == 1

    def set_password_hash(self, role, user_id, new_hash: str) -> None:
        with store_errors(self.db, "set_password_hash"):
            model = get_profile(role).model
            self.db.query(model).filter(model.id == str(user_id)).update({"password_hash": new_hash})
            self.db.commit()

    def update_profile(self, role, user_id, changes: dict) -> dict:
        """
        Write the editable profile columns present in ``changes``.

        Keys the role may not edit and ``None`` values are ignored, so omitted
        fields keep their stored value. Returns what was actually written.
        """
        profile = get_profile(role)
        applied = {k: v for k, v in changes.items() if k in profile.profile_fields and v is not None}
        if not applied:
            return applied
        with store_errors(self.db, "update_profile"):
            model = profile.model
            self.db.query(model).filter(model.id == str(user_id)).update(applied)
            self.db.commit()
        return applied
