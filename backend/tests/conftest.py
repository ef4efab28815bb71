from __future__ import annotations

import os
import tempfile

# Set test environment BEFORE importing app modules.
# cisa.db creates the engine at module level using get_settings().db_url,
# and cisa.main builds the session gate from get_settings().jwt_secret.
_test_tmp = tempfile.mkdtemp(prefix="cisa-test-")
os.environ.setdefault("DATA_DIR", os.path.join(_test_tmp, "data"))
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-integration-tests-only")
os.environ.setdefault("ENCRYPTION_KEY", "11" * 32)
os.environ.setdefault("ENVIRONMENT", "development")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from cisa.db import get_session
from cisa.main import app as fastapi_app
from cisa.models.admin import Admin
from cisa.services.admins import create_admin
from cisa.services.field_cipher import FieldCipher, get_field_cipher
from cisa.services.tokens import Principal, TokenService, get_token_service

TEST_ADMIN_PASSWORD = "correct-horse-battery"


# ── Database fixtures ─────────────────────────────────────────────────


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing.

    Uses StaticPool so every connection shares the same in-memory database.
    Recreates tables per test for full isolation.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Provide a fresh session per test."""
    with Session(engine) as session:
        yield session


# ── HTTP client fixtures ──────────────────────────────────────────────


@pytest.fixture(name="client")
def client_fixture(session):
    """FastAPI TestClient with overridden DB session and no session cookie."""

    def _get_session_override():
        yield session

    fastapi_app.dependency_overrides[get_session] = _get_session_override
    with TestClient(fastapi_app) as client:
        yield client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(name="admin_user")
def admin_user_fixture(session) -> Admin:
    return create_admin(
        session,
        "admin",
        TEST_ADMIN_PASSWORD,
        name="System Administrator",
        email="admin@cisa.example.ac.th",
    )


@pytest.fixture(name="auth_client")
def auth_client_fixture(client, admin_user):
    """TestClient that performs a REAL login and keeps the admin-token cookie."""
    resp = client.post(
        "/api/auth/login",
        json={"username": admin_user.username, "password": TEST_ADMIN_PASSWORD},
    )
    assert resp.status_code == 200
    assert client.cookies.get("admin-token")
    return client


# ── Core service fixtures ─────────────────────────────────────────────


@pytest.fixture(name="cipher")
def cipher_fixture() -> FieldCipher:
    """The cipher the app uses (key from ENCRYPTION_KEY)."""
    return get_field_cipher()


@pytest.fixture(name="tokens")
def tokens_fixture() -> TokenService:
    """The token service the app uses (secret from JWT_SECRET)."""
    return get_token_service()


@pytest.fixture(name="principal")
def principal_fixture() -> Principal:
    return Principal(id="admin-1", username="admin", role="admin")


class FixedClock:
    """Settable clock for token expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(name="clock")
def clock_fixture() -> FixedClock:
    return FixedClock()


# ── Registration payloads ─────────────────────────────────────────────


def make_registration_payload(**overrides) -> dict:
    payload = {
        "prefix": "นาย",
        "first_name_th": "สมชาย",
        "last_name_th": "ใจดี",
        "first_name_en": "Somchai",
        "last_name_en": "Jaidee",
        "national_id": "1234567890123",
        "email": "somchai@example.ac.th",
        "phone_number": "0812345678",
        "faculty": "คณะวิทยาศาสตร์และเทคโนโลยี",
        "department": "วิทยาการคอมพิวเตอร์",
        "academic_position": "อาจารย์",
        "administrative_position": None,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(name="make_payload")
def make_payload_fixture():
    return make_registration_payload
