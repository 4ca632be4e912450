"""Pytest configuration and fixtures."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.access_token import AccessToken  # noqa: F401
from app.models.password_reset import PasswordResetToken  # noqa: F401
from app.models.user import User  # noqa: F401
from app.repositories.password_reset import PasswordResetRepository
from app.repositories.user import UserRepository
from app.services.access_tokens import AccessTokenService
from app.services.auth import AuthService
from app.services.notifications import NotificationDispatcher


class FakeClock:
    """Settable replacement for ``datetime.utcnow``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture(name="notifier")
def notifier_fixture() -> MagicMock:
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture(name="auth_service")
def auth_service_fixture(db_session: Session, clock: FakeClock, notifier: MagicMock) -> AuthService:
    """AuthService wired to the test database, a fake clock and a mock notifier."""
    return AuthService(
        users=UserRepository(db_session),
        password_resets=PasswordResetRepository(db_session),
        access_tokens=AccessTokenService(db_session),
        notifier=notifier,
        now=clock,
    )


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Register a test user and return its details, verification token and access token."""
    auth_service = AuthService(
        users=UserRepository(db_session),
        password_resets=PasswordResetRepository(db_session),
        access_tokens=AccessTokenService(db_session),
        notifier=NotificationDispatcher(),
    )
    result = auth_service.register("Test", "User", "Test@Example.com", "password123")

    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "username": result.user.username,
        "verification_token": result.user.email_verification_token,
        "token": result.token,
    }
