import os

# Settings are read at import time; point them at the test database first
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("LOG_DIR", "logs")

import pytest
from datetime import datetime, timezone
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session
from typing import Generator

from main import app
from core.clock import FixedClock
from core.database import Base, engine, SessionLocal
from models.users import User
from services.access_token_service import AccessTokenIssuer
from services.refresh_token_store import InMemoryRefreshTokenStore
from services.session_service import SessionService
from services.user_service import UserRecord
from utils.deps import get_db
from utils.hashing import get_password_hash

TEST_PASSWORD = "TestPassword123!"


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(session: Session):
    """
    HTTP client against the app, sharing the test database session.
    """
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def active_user(session: Session) -> User:
    user = User(
        email="session_user@example.com",
        display_name="Session User",
        hashed_password=get_password_hash(TEST_PASSWORD),
        role="user",
        is_active=True
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


class FakeUserDirectory:
    """In-memory stand-in for the user lookup collaborator."""

    def __init__(self, *users: UserRecord):
        self.users = {user.id: user for user in users}

    def find_user(self, user_id):
        return self.users.get(user_id)

    def put(self, user: UserRecord):
        self.users[user.id] = user


class RecordingAuditSink:
    def __init__(self):
        self.events = []

    def record(self, subject_id, event, detail=None):
        self.events.append((subject_id, event, detail))

    def names(self):
        return [event for _, event, _ in self.events]


class RecordingSigner:
    """Signer that returns a readable token and remembers the claims it signed."""

    def __init__(self):
        self.calls = []

    def __call__(self, subject, claims, ttl):
        self.calls.append({"subject": subject, "claims": dict(claims), "ttl": ttl})
        return f"access-{subject}-{len(self.calls)}"

    @property
    def last_claims(self):
        return self.calls[-1]["claims"]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def user_record() -> UserRecord:
    return UserRecord(id=1, email="alice@example.com", display_name="Alice", role="user")


@pytest.fixture
def directory(user_record) -> FakeUserDirectory:
    return FakeUserDirectory(user_record)


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture
def memory_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def service(memory_store, signer, directory, audit, clock) -> SessionService:
    """SessionService over the in-memory store with a frozen clock."""
    return SessionService(
        store=memory_store,
        access_tokens=AccessTokenIssuer(signer=signer),
        users=directory,
        audit=audit,
        clock=clock
    )
