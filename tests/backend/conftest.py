"""Pytest fixtures for backend tests."""

import os

# Settings are read when backend modules are imported.
os.environ["SECRET_KEY"] = "test-secret-key-for-session-tokens"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_ENV"] = "test"

from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.core.roles import UserRole
from backend.core.security import PasswordHasher
from backend.core.store import UserStore
from backend.core.user_management import UserManager
from backend.database import Base, get_db
from backend.main import app
from backend.models.user import User

DEFAULT_PASSWORD = "testpassword123"
TEST_COOKIE_DOMAIN = "testserver.local"


@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite engine shared by every connection in a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup: drop all tables
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine,
    )
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def test_client(test_db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override."""

    def override_get_db() -> Generator[Session, None, None]:
        """Override get_db dependency to use test database session."""
        yield test_db_session

    app.dependency_overrides[get_db] = override_get_db
    if app.state.login_rate_limiter is not None:
        app.state.login_rate_limiter.reset()

    client = TestClient(app)

    try:
        yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def hasher() -> PasswordHasher:
    """Fast password hasher for unit tests."""
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="function")
def user_store(test_db_session: Session) -> UserStore:
    return UserStore(test_db_session)


@pytest.fixture(scope="function")
def user_manager(user_store: UserStore, hasher: PasswordHasher) -> UserManager:
    return UserManager(user_store, hasher)


@pytest.fixture(scope="function")
def create_user(test_db_session: Session) -> Callable:
    """Factory function to create users directly in the database.

    Returns:
        Function that creates a user and returns (user, session token)

    Example:
        ```python
        def test_example(create_user):
            user, token = create_user(email="admin@example.com", role="admin")
            assert user.role == UserRole.ADMIN
        ```
    """

    def _create_user(
        email: str,
        password: str = DEFAULT_PASSWORD,
        name: str | None = None,
        role: UserRole | str = UserRole.VIEWER,
    ) -> tuple[User, str]:
        user = User(
            email=email.lower(),
            name=name,
            password_hash=app.state.password_hasher.hash(password),
            role=UserRole(role),
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)

        token = app.state.token_codec.issue(user.id, user.role)
        return user, token

    return _create_user


@pytest.fixture(scope="function")
def login_as(test_client: TestClient, create_user: Callable) -> Callable:
    """Create a user with ``role`` and attach their session cookie to ``test_client``.

    Example:
        ```python
        def test_example(test_client, login_as):
            admin = login_as("admin")
            response = test_client.get("/api/users")
        ```
    """

    def _login_as(role: UserRole | str, email: str | None = None, password: str = DEFAULT_PASSWORD) -> User:
        role = UserRole(role)
        user, token = create_user(email=email or f"{role.value}@example.com", password=password, role=role)
        set_session(test_client, token)
        return user

    return _login_as


def set_session(client: TestClient, token: str) -> None:
    """Replace the client's cookies with a single session cookie.

    The cookie is stored under the domain the jar gives cookies set by the
    test server, so a server-sent deletion removes it.
    """
    client.cookies.clear()
    client.cookies.set(app.state.settings.session_cookie_name, token, domain=TEST_COOKIE_DOMAIN)
