"""
Tests for superadmin and demo data seeding.
"""

from fuelos.config import Settings
from fuelos.models import CompanyUser, Manager, Owner, Pump, Role
from fuelos.seed import seed_demo_data, seed_superadmin
from fuelos.services.auth_service import AuthService


def test_superadmin_seeded_once(db):
    superadmins = db.query(CompanyUser).filter(CompanyUser.role == Role.SUPERADMIN.value).all()
    assert len(superadmins) == 1
    assert superadmins[0].email == "superadmin@fuelos.in"
    assert AuthService.is_salted_hash(superadmins[0].password_hash)

    again = seed_superadmin(db)
    assert again.id == superadmins[0].id
    assert db.query(CompanyUser).filter(CompanyUser.role == Role.SUPERADMIN.value).count() == 1


def test_existing_superadmin_is_not_rewritten(db):
    before = db.query(CompanyUser).filter(CompanyUser.role == Role.SUPERADMIN.value).one()
    stored_hash = before.password_hash

    changed = Settings(superadmin_email="other@fuelos.in", superadmin_password="rotated")
    after = seed_superadmin(db, changed)

    assert after.email == "superadmin@fuelos.in"
    assert after.password_hash == stored_hash


def test_demo_data_only_seeds_empty_store(db):
    assert db.query(Owner).count() == 3
    assert db.query(Pump).count() == 4
    assert seed_demo_data(db) is False
    assert db.query(Owner).count() == 3


def test_demo_rows_keep_legacy_plaintext(db):
    assert db.get(Owner, "O1").password_hash == "owner123"
    manager = db.get(Manager, "M2")
    assert manager.owner_id is None
    assert manager.pump_id == "P4"
