from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import envshare.main as main_module
from envshare.config import settings
from envshare.database import Base, get_db
from envshare.main import app
from envshare.middleware.rate_limit import limiter
from envshare.models.api_key import ApiKey
from envshare.services.vault_store import InMemoryVaultStore


class FakeClock:
    """Settable epoch-seconds clock for expiry tests."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def api_key(db_session):
    """A valid API key stored in the test database."""
    key = "test-api-key-0123456789"
    db_session.add(ApiKey(key=key))
    db_session.commit()
    return key


@pytest.fixture
def auth_headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return InMemoryVaultStore()


@pytest.fixture
def client(db_session):
    """Test client on the test database with rate limiting and the scheduler off."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False

    # check_database_tables() should inspect the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with patch.object(settings, "sweep_scheduler_enabled", False):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
