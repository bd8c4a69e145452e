"""Pytest fixtures: SQLite file database, fresh schema per test."""
from datetime import datetime, timezone, timedelta
import pytest
from sqlalchemy import event
from fastapi.testclient import TestClient

from filmnight.config import Settings
from filmnight.database import Base, Database, get_db
from filmnight.main import create_app
from filmnight.models.user import User, Role

# Import all models so they register with Base.metadata
import filmnight.models  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def database():
    """Create a fresh SQLite database for each test."""
    database = Database(SQLITE_URL)

    # Enable WAL mode so the API session and the test session can overlap
    @event.listens_for(database.engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=database.engine)
    database.create_all()
    yield database
    Base.metadata.drop_all(bind=database.engine)
    database.dispose()


@pytest.fixture(scope="function")
def db(database):
    """Yield a database session, closed after the test."""
    with database.session() as session:
        yield session


@pytest.fixture(scope="function")
def client(database):
    """FastAPI TestClient with the database dependency pointed at the test database."""
    app = create_app(Settings(DATABASE_URL=SQLITE_URL))

    def _override_get_db():
        with database.session() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def future(days: int = 7, hour: int = 19) -> datetime:
    """A UTC instant some days from now at a fixed hour."""
    base = datetime.now(timezone.utc).replace(hour=hour, minute=0, second=0, microsecond=0)
    return base + timedelta(days=days)


def headers_for(user: dict) -> dict:
    return {"X-User-Id": user["user_id"]}


def create_test_user(client: TestClient, name: str = "Test User", email: str = None, role: str = "GUEST") -> dict:
    """Helper: POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"name": name, "email": email, "role": role})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_admin(client: TestClient, name: str = "Host", email: str = "host@example.com") -> dict:
    return create_test_user(client, name=name, email=email, role="ADMIN")


def create_test_event(client: TestClient, admin: dict, title: str = "Screening One", **extra) -> dict:
    """Helper: POST /api/events as ``admin`` and return response JSON."""
    payload = {"title": title, "scheduled_at": future().isoformat(), "is_published": True}
    payload.update(extra)
    resp = client.post("/api/events/", json=payload, headers=headers_for(admin))
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_film(client: TestClient, admin: dict, title: str = "Stalker",
                     reference_url: str = "https://letterboxd.com/film/stalker/") -> dict:
    resp = client.post(
        "/api/films/",
        json={"title": title, "reference_url": reference_url},
        headers=headers_for(admin),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def make_user(db, email: str = None, role: Role = Role.GUEST) -> User:
    """Insert a user directly through the session (service-level tests)."""
    user = User(email=email, role=role, name=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
