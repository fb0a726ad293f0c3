import os
import shutil
import tempfile
from pathlib import Path

# Set environment variables BEFORE any imports that might use settings
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_kbase.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-characters-long-for-testing"
os.environ["ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "15"
os.environ["REFRESH_TOKEN_EXPIRE_DAYS"] = "7"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
# A developer's .env must never make the tests send real email
os.environ["SMTP_HOST"] = ""

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from app.api.deps import get_db, get_email_sender, get_google_verifier
from app.core.security import create_access_token, get_password_hash
from app.db.base import enable_sqlite_foreign_keys
from app.db.models.user import User as UserModel
from app.main import app
from app.services.oauth import VerificationFailure

ROOT_DIR = Path(__file__).resolve().parent.parent


class RecordingEmailSender:
    """EmailSender that keeps every message in memory instead of sending it."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send_verification_email(self, email: str, name: str, token: str) -> None:
        self._record("verification", email=email, name=name, token=token)

    async def send_password_reset_email(self, email: str, name: str, token: str) -> None:
        self._record("password_reset", email=email, name=name, token=token)

    async def send_password_change_notification(self, email: str, name: str) -> None:
        self._record("password_changed", email=email, name=name, token=None)

    def _record(self, kind: str, **message) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append({"kind": kind, **message})

    def last(self, kind: str) -> dict:
        return [m for m in self.sent if m["kind"] == kind][-1]


class FakeGoogleVerifier:
    """GoogleTokenVerifier stand-in answering from a token -> result map."""

    def __init__(self):
        self.results: dict = {}

    async def verify(self, token: str):
        return self.results.get(token, VerificationFailure("Unknown test token"))


@pytest.fixture(scope="function")
def database_path():
    """Create a fresh SQLite database file for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")

    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{test_db_path}")
    command.upgrade(alembic_cfg, "head")

    yield test_db_path

    shutil.rmtree(temp_db_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def db_session(database_path):
    """Synchronous session on the test database for arranging and asserting."""
    test_engine = create_engine(
        f"sqlite:///{database_path}",
        connect_args={"check_same_thread": False},
    )

    # WAL lets the app's aiosqlite connections and this session share the file
    @event.listens_for(test_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        test_engine.dispose()


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session to match test naming conventions."""
    return db_session


@pytest.fixture(scope="function")
def override_get_db(database_path):
    """get_db replacement yielding async sessions on the test database."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    enable_sqlite_foreign_keys(test_engine.sync_engine)
    TestingSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def _get_db():
        async with TestingSessionLocal() as session:
            yield session

    return _get_db


@pytest.fixture(scope="function")
def mailer():
    return RecordingEmailSender()


@pytest.fixture(scope="function")
def google():
    return FakeGoogleVerifier()


@pytest.fixture(scope="function")
def client(db_session, override_get_db, mailer, google):
    """Create a test client with database, email and Google overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: mailer
    app.dependency_overrides[get_google_verifier] = lambda: google

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _create_user(db: Session, email: str, password: str | None, is_verified: bool, **fields) -> dict:
    user = UserModel(
        email=email,
        name=fields.pop("name", "Test User"),
        password_hash=get_password_hash(password) if password else None,
        is_verified=is_verified,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"id": user.id, "email": user.email, "password": password, "name": user.name}


@pytest.fixture(scope="function")
def verified_user(db: Session) -> dict:
    """A verified password account."""
    return _create_user(db, "verified@example.com", "Password123!", is_verified=True)


@pytest.fixture(scope="function")
def unverified_user(db: Session) -> dict:
    """A password account that has not confirmed its email yet."""
    return _create_user(db, "pending@example.com", "Password123!", is_verified=False)


@pytest.fixture(scope="function")
def access_token(verified_user: dict) -> str:
    return create_access_token(verified_user["id"])


@pytest.fixture(scope="function")
def create_user(db: Session):
    """Factory for users with arbitrary fields."""

    def _factory(email: str, password: str | None = "Password123!", is_verified: bool = True, **fields):
        return _create_user(db, email, password, is_verified, **fields)

    return _factory
