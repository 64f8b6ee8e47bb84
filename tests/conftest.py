"""Shared fixtures: an app on a fresh in-memory database with a stubbed link fetcher."""
import pytest
from fastapi.testclient import TestClient

from notes_api.auth import pwd_context
from notes_api.config import Settings
from notes_api.database import Database
from notes_api.main import create_app
from notes_api.models import User

API = "/api"


class StubFetcher:
    """Stands in for MetadataFetcher; records requested URLs."""

    def __init__(self):
        self.calls = []
        self.result = {
            "title": "Fetched title",
            "description": "Fetched description",
            "favicon": "https://example.com/favicon.ico",
            "image": "",
        }

    def extract(self, url):
        self.calls.append(url)
        return dict(self.result)

    def close(self):
        pass


@pytest.fixture(autouse=True, scope="session")
def fast_hashing():
    # minimum bcrypt cost keeps registration-heavy tests quick
    pwd_context.update(bcrypt__rounds=4)
    yield


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        secret_key="test-secret",
        api_prefix=API,
        seed_demo_data=False,
    )


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def app(settings, fetcher):
    return create_app(settings=settings, metadata_fetcher=fetcher)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register(client, name="Jane", email="jane@x.com", password="Secret123"):
    response = client.post(
        f"{API}/auth/register", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    return bearer(register(client))


@pytest.fixture
def other_headers(client):
    return bearer(register(client, name="Bob", email="bob@x.com", password="Other123"))


@pytest.fixture
def db():
    """A bare session for exercising the search engine directly."""
    database = Database("sqlite://")
    database.connect()
    session = database.session()
    yield session
    session.close()
    database.disconnect()


@pytest.fixture
def owner(db):
    user = User(name="Owner", email="owner@example.com", password_hash="x")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def stranger(db):
    user = User(name="Stranger", email="stranger@example.com", password_hash="x")
    db.add(user)
    db.commit()
    return user
