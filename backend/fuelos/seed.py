import logging

from sqlalchemy.orm import Session

from fuelos.config import get_settings
from fuelos.models import CompanyUser, Manager, Operator, Owner, Pump, Role
from fuelos.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def seed_superadmin(db: Session, settings=None) -> CompanyUser:
    """
    Create the single superadmin from configuration if none exists.

    An existing superadmin row is never modified here, even if the configured
    email or password has since changed.
    """
    settings = settings or get_settings()
    existing = db.query(CompanyUser).filter(CompanyUser.role == Role.SUPERADMIN.value).first()
    if existing:
        return existing

    if settings.is_production and settings.superadmin_password == "changeme":
        logger.warning("SUPERADMIN_PASSWORD is unset; seeding superadmin with the default password")

    superadmin = CompanyUser(
        email=settings.superadmin_email.strip().lower(),
        name=settings.superadmin_name,
        role=Role.SUPERADMIN.value,
        password_hash=AuthService.get_password_hash(settings.superadmin_password),
    )
    db.add(superadmin)
    db.commit()
    db.refresh(superadmin)
    logger.info(f"Seeded superadmin: {superadmin.email}")
    return superadmin


# Demo rows keep the legacy plaintext passwords; they are rehashed on first login
DEMO_OWNERS = [
    dict(id="O1", name="Rajesh Sharma", email="rajesh@sharma.com", password_hash="owner123", phone="9876543210", plan="Pro"),
    dict(id="O2", name="Anil Gupta", email="anil@gupta.com", password_hash="owner123", phone="9876543211", plan="Starter"),
    dict(id="O3", name="Meena Krishnan", email="meena@krishnan.com", password_hash="owner123", phone="9876543212", plan="Enterprise"),
]

DEMO_PUMPS = [
    dict(id="P1", owner_id="O1", name="Sharma Petrol Pump - Koregaon Park"),
    dict(id="P2", owner_id="O1", name="Sharma Fuel Station - Kothrud"),
    dict(id="P4", owner_id="O2", name="Gupta Fuel Station"),
    dict(id="P5", owner_id="O3", name="Krishnan Petro - Bandra"),
]

DEMO_MANAGERS = [
    dict(id="M1", owner_id="O1", pump_id="P1", name="Vikram Sharma", email="vikram@sharma.com", password_hash="mgr123"),
    # No direct owner reference: the tenant is found through pump P4
    dict(id="M2", owner_id=None, pump_id="P4", name="Kavitha Gupta", email="kavitha@gupta.com", password_hash="mgr123"),
]

DEMO_OPERATORS = [
    dict(id="OP1", owner_id="O1", pump_id="P1", name="Amit Kumar", email="amit@sharma.com", password_hash="op123"),
]


def seed_demo_data(db: Session) -> bool:
    """Seed demo tenants when the owners table is empty. Returns True if rows were added."""
    if db.query(Owner).count():
        return False

    logger.info("Seeding demo data...")
    for model, rows in ((Owner, DEMO_OWNERS), (Pump, DEMO_PUMPS), (Manager, DEMO_MANAGERS), (Operator, DEMO_OPERATORS)):
        for row in rows:
            db.add(model(**row))
        # Owners must exist before rows that reference them
        db.flush()
    db.commit()
    logger.info("Demo data seeded")
    return True
