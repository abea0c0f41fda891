"""
Pytest configuration and fixtures for testing.
"""

import os

# Must be set before fuelos reads its settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-tenant-secret")
os.environ.setdefault("ADMIN_JWT_SECRET", "test-admin-secret")
os.environ.setdefault("SUPERADMIN_EMAIL", "superadmin@fuelos.in")
os.environ.setdefault("SUPERADMIN_PASSWORD", "super-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from fuelos import models  # noqa: F401
from fuelos.database import Base, SessionLocal
from fuelos.main import app
from fuelos.models import CompanyUser, Role
from fuelos.seed import seed_demo_data, seed_superadmin
from fuelos.services.auth_service import AuthService
from fuelos.services.credential_store import CredentialStore

# One shared in-memory database; TestClient runs handlers on worker threads
engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
SessionLocal.configure(bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_superadmin(session)
        seed_demo_data(session)
    finally:
        session.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Create a test client for the FastAPI application."""
    return TestClient(app)


@pytest.fixture
def make_staff(db):
    """Create a company-staff row with a bcrypt password."""

    def _make(email="admin@fuelos.in", password="admin-pass", role=Role.ADMIN, **fields):
        user = CompanyUser(
            email=email,
            name=fields.pop("name", "Staff Member"),
            role=role.value,
            password_hash=AuthService.get_password_hash(password),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def session_headers(db):
    """Bearer headers for a freshly minted session of the given user."""

    def _headers(role, user):
        token = AuthService.issue_session(CredentialStore(db), role, user)
        return {"Authorization": f"Bearer {token}"}

    return _headers
