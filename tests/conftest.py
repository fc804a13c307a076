import os
import tempfile

# Point the app at an isolated database before anything reads settings
_DB_DIR = tempfile.mkdtemp(prefix="neti-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("EVENTS_DATA", None)

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from dependencies import create_access_token, get_event_store, get_password_hash
from event_store import EventStore
from main import app
from models import User

PASSWORD = "password123"


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def event_store(tmp_path, monkeypatch):
    monkeypatch.delenv("EVENTS_DATA", raising=False)
    store = EventStore(tmp_path / "events.json")
    app.dependency_overrides[get_event_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_event_store, None)


@pytest.fixture
def client(event_store):
    return TestClient(app)


@pytest.fixture
def make_user(db, password_hash):
    """Factory for users stored directly in the test database."""
    counter = {"n": 0}

    def _make(role=None, roles=None, is_active=True, email=None, name=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@neti.com.ph",
            name=name or f"Test User {counter['n']}",
            password=password_hash,
            role=role,
            roles=roles,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


@pytest.fixture
def login(client):
    """Attach a session cookie for the given user to the shared client."""

    def _login(user: User) -> TestClient:
        client.cookies.set("admin-token", token_for(user))
        return client

    return _login


@pytest.fixture
def super_admin(make_user):
    return make_user(role="super_admin", roles=["super_admin"], email="root@neti.com.ph")


@pytest.fixture
def user_manager(make_user):
    return make_user(roles=["user_manager"])


@pytest.fixture
def events_manager(make_user):
    return make_user(roles=["events_manager"])


@pytest.fixture
def news_manager(make_user):
    return make_user(role="news_manager")
