"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- FastAPI test client
- Captured email queueing (no broker needed)
- Account components wired with a controllable clock
"""

import os

# Settings are read once at import time; configure them before the app loads
os.environ.setdefault("FIELD_ENCRYPTION_KEY", "0123456789abcdef0123456789abcdef")
os.environ.setdefault("JWT_SECRET_KEY", "test-session-secret")
os.environ.setdefault("MAGIC_LINK_KEY", "test-magic-link-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JSON_LOGS", "false")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dashauth.core.database import Base, get_db
from dashauth.core.devices import DeviceRegistry
from dashauth.core.directory import AccountDirectory
from dashauth.core.encryption import FieldCipher
from dashauth.core.magic_link import MagicLinkGenerator
from dashauth.core.security import CredentialHasher, SessionTokenIssuer
from dashauth.core.throttle import AttemptThrottle
import dashauth.models  # noqa: F401
from main import app

TEST_KEY = os.environ["FIELD_ENCRYPTION_KEY"]
TEST_JWT_SECRET = os.environ["JWT_SECRET_KEY"]

# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_hasher = CredentialHasher(rounds=4)


class FakeClock:
    """Settable UTC clock for components that take a `clock` callable."""

    def __init__(self, now=None):
        self.now = now or datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_session():
    """
    Create a fresh database for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cipher():
    return FieldCipher(TEST_KEY)


@pytest.fixture
def hasher():
    return _hasher


@pytest.fixture
def directory(db_session, cipher, hasher, clock):
    """AccountDirectory whose every component shares the fake clock."""
    return AccountDirectory(
        db=db_session,
        cipher=cipher,
        hasher=hasher,
        tokens=SessionTokenIssuer(TEST_JWT_SECRET, clock=clock),
        magic_links=MagicLinkGenerator("test-magic-link-key", clock=clock),
        devices=DeviceRegistry(db_session, clock=clock),
        throttle=AttemptThrottle(db_session, max_attempts=5, lockout=timedelta(minutes=10), clock=clock),
        clock=clock,
    )


@pytest.fixture
def sent_emails(monkeypatch):
    """
    Capture queued email tasks instead of talking to Redis.

    Each entry is (task name, kwargs).
    """
    sent = []

    def fake_queue(task, *args, **kwargs):
        sent.append((task.name, kwargs))
        return True

    monkeypatch.setattr("dashauth.api.endpoints.account.queue_task_safely", fake_queue)
    return sent


@pytest.fixture
def client(db_session, sent_emails):
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def registration_data():
    """A registration payload that passes every field rule"""
    return {
        "first_name": "Maria",
        "last_name": "Silva",
        "email": "maria.silva@example.com",
        "password": "Str0ng!Pass",
        "cpf": "529.982.247-25",
        "phone": "(11) 91234-5678",
        "address": "Rua das Flores, 123",
        "address2": "Apto 42",
        "city": "Sao Paulo",
        "state": "SP",
        "zip_code": "01310-100",
        "country": "Brazil",
        "birthdate": "1990-05-17",
        "company": "",
    }
