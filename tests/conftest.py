import os
import uuid

import pytest
from sqlalchemy.orm import Session

# The app must bind to the in-memory SQLite engine, never a configured Postgres.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("TEST_DATABASE_URL", None)
os.environ.setdefault("PYTEST_RUNNING", "1")

from fastapi.testclient import TestClient

from wacrm.api.main import app
from wacrm.db import models
from wacrm.db.database import SessionLocal, engine
from wacrm.db.repositories.api_providers import seed_provider_definitions
from wacrm.utils.feature_flags import refresh_feature_flag_cache

from tests.helpers import auth_headers


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (SQLite in-memory lives as long as the process)."""
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Empty every table between tests and restore the provider catalogue."""
    with engine.begin() as connection:
        for table in reversed(models.Base.metadata.sorted_tables):
            connection.execute(table.delete())
    with SessionLocal() as db:
        seed_provider_definitions(db)
    yield


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "DEV_MODE",
        "ALLOW_DEV_MODE",
        "APP_BASE_URL",
        "ADMIN_EMAILS",
        "API_KEY_ENCRYPTION_SECRET",
        "BROADCAST_DELIVERY_ENABLED",
        "AI_FEATURES_ENABLED",
        "REALTIME_REPORTS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def user_factory(db_session: Session):
    def _create(email: str, is_superadmin: bool = False, display_name: str = None):
        user = models.User(email=email, display_name=display_name or email.split('@')[0], is_superadmin=is_superadmin)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def company_factory(db_session: Session):
    def _create(name: str = None, **fields):
        company = models.Company(name=name or f"Company {uuid.uuid4().hex[:6]}", **fields)
        db_session.add(company)
        db_session.commit()
        db_session.refresh(company)
        return company
    return _create


@pytest.fixture
def membership_factory(db_session: Session):
    def _create(company, user, role: str = 'owner', can_read: bool = True, can_write: bool = True):
        m = models.CompanyMembership(company_id=company.id, user_id=user.id, role=role, can_read=can_read, can_write=can_write)
        db_session.add(m)
        db_session.commit()
        return m
    return _create


@pytest.fixture
def owner_context(user_factory, company_factory, membership_factory):
    """(user, company, headers) for a company owner."""
    user = user_factory("owner@example.com")
    company = company_factory("Acme Trading")
    membership_factory(company, user, role='owner', can_write=True)
    return user, company, auth_headers(user.email, company)


@pytest.fixture
def viewer_context(owner_context, user_factory, membership_factory):
    """(user, company, headers) for a read-only member of the owner's company."""
    _, company, _ = owner_context
    user = user_factory("viewer@example.com")
    membership_factory(company, user, role='viewer', can_write=False)
    return user, company, auth_headers(user.email, company)


@pytest.fixture
def editor_context(owner_context, user_factory, membership_factory):
    _, company, _ = owner_context
    user = user_factory("editor@example.com")
    membership_factory(company, user, role='editor', can_write=True)
    return user, company, auth_headers(user.email, company)
