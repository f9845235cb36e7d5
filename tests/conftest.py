"""
Test configuration and fixtures.
"""
import os
import tempfile
import pytest
from datetime import timedelta
from typing import Callable, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"

# Configure the app for tests before importing it
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = TEST_SECRET
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["TOKEN_BLACKLIST_PATH"] = os.path.join(
    tempfile.mkdtemp(prefix="mekcook-test-"), "token_blacklist.json"
)

from mekcook.main import app
from mekcook.db.base import Base
from mekcook.db.session import get_db
from mekcook.core.blacklist import TokenBlacklist
from mekcook.core.deps import get_token_codec
from mekcook.core.security import TokenCodec, hash_password
from mekcook.models import User


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, start: float = 1_750_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def blacklist(tmp_path, clock: FakeClock) -> TokenBlacklist:
    """A fresh blacklist file per test."""
    return TokenBlacklist(tmp_path / "token_blacklist.json", max_size=100, clock=clock)


@pytest.fixture
def codec(blacklist: TokenBlacklist, clock: FakeClock) -> TokenCodec:
    return TokenCodec(
        secret=TEST_SECRET,
        blacklist=blacklist,
        issuer="MekCook",
        ttl=timedelta(hours=1),
        clock=clock,
    )


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create an in-memory database session for the test."""
    engine = create_engine(
        "sqlite://",
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
        engine.dispose()


@pytest.fixture(scope="function")
def client(db: Session, codec: TokenCodec) -> Generator[TestClient, None, None]:
    """Create test client with database session and token codec overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_codec] = lambda: codec

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def create_user(db: Session) -> Callable[..., User]:
    """Factory creating users directly in the database."""
    def _create_user(email: str, password: str = "testpassword123", name: str = "Test User") -> User:
        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create_user


@pytest.fixture
def test_user(create_user) -> User:
    """Create a test user."""
    return create_user("testuser@example.com")


@pytest.fixture
def auth_headers(client: TestClient, test_user: User) -> dict:
    """Get auth headers for test user."""
    response = client.post(
        "/api/auth/login",
        json={"email": "testuser@example.com", "password": "testpassword123"}
    )
    token = response.json()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(create_user, codec: TokenCodec) -> dict:
    """Auth headers for a second, unrelated user."""
    other = create_user("someoneelse@example.com", name="Someone Else")
    return {"Authorization": f"Bearer {codec.issue(other.id)}"}
