import os

# config refuses to import without a signing secret
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine, SQLModel, Session
import pytest

# --- Test Database Setup ---
# Use an in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(name="test_engine")
def test_engine_fixture():
    # StaticPool keeps every session on the one in-memory connection
    test_engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import todo_backend.models  # noqa: F401
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="test_db_session")
def test_db_session_fixture(test_engine: Engine):
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="app")
def app_fixture(test_engine: Engine):
    from todo_backend.main import create_app

    return create_app(engine=test_engine)


@pytest.fixture(name="client")
def client_fixture(app):
    with TestClient(app) as client:
        yield client


def _register(client: TestClient, username: str, password: str = "secret-password", email: str = None) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture(name="register")
def register_fixture():
    """Registers a user through the API and returns the response body."""
    return _register


@pytest.fixture(name="authenticated_client")
def authenticated_client_fixture(client: TestClient):
    """
    Registers a user and returns a client that sends their bearer token.
    """
    token = _register(client, "authuser")["token"]
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture(name="second_client")
def second_client_fixture(app, client: TestClient):
    """A separately authenticated client for a different user on the same app."""
    with TestClient(app) as other:
        token = _register(other, "otheruser")["token"]
        other.headers["Authorization"] = f"Bearer {token}"
        yield other
