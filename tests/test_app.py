"""Application-level tests: health, error envelopes, seeding and a full user journey."""
import pytest
from fastapi.testclient import TestClient

from conftest import API, StubFetcher, bearer, register

from notes_api.config import Settings
from notes_api.errors import ERROR_STATUS, AppError, ErrorKind, InvalidCredentials, NotFound
from notes_api.main import create_app


def test_health_needs_no_token(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "OK"
    assert body["data"]["environment"] == "dev"
    assert body["data"]["uptime"] >= 0


def test_unknown_route_uses_envelope(client):
    response = client.get(f"{API}/nowhere")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["message"] == f"Route {API}/nowhere not found"
    assert body["data"] is None


def test_malformed_json_is_a_validation_error(client, auth_headers):
    response = client.post(
        f"{API}/notes",
        content="{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


def test_every_error_kind_has_a_status():
    assert set(ERROR_STATUS) == set(ErrorKind)


@pytest.mark.parametrize(
    "error, status_code",
    [(InvalidCredentials(), 401), (NotFound("gone"), 404), (AppError(), 500)],
)
def test_error_status_codes(error, status_code):
    assert error.status_code == status_code


def test_unhandled_error_is_hidden(settings, fetcher):
    app = create_app(settings=settings, metadata_fetcher=fetcher)

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret detail")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom")
    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"
    assert "secret detail" not in response.text


def test_demo_data_is_seeded_in_dev():
    settings = Settings(
        _env_file=None, database_url="sqlite://", secret_key="s", seed_demo_data=True
    )
    app = create_app(settings=settings, metadata_fetcher=StubFetcher())
    with TestClient(app) as client:
        login = client.post(
            f"{API}/auth/login", json={"email": "demo@example.com", "password": "Password123"}
        )
        assert login.status_code == 200
        headers = bearer(login.json()["data"]["token"])
        notes = client.get(f"{API}/notes", headers=headers).json()
        bookmarks = client.get(f"{API}/bookmarks", headers=headers).json()
    assert notes["pagination"]["totalCount"] == 3
    assert bookmarks["pagination"]["totalCount"] == 3


def test_demo_data_is_not_seeded_outside_dev():
    settings = Settings(
        _env_file=None, database_url="sqlite://", secret_key="s", seed_demo_data=True, env="prod"
    )
    app = create_app(settings=settings, metadata_fetcher=StubFetcher())
    with TestClient(app) as client:
        login = client.post(
            f"{API}/auth/login", json={"email": "demo@example.com", "password": "Password123"}
        )
    assert login.status_code == 401


def test_note_journey(client):
    headers = bearer(register(client))

    created = client.post(
        f"{API}/notes", json={"title": "Idea", "content": "Build a thing", "tags": ["plans"]},
        headers=headers,
    ).json()["data"]["note"]

    toggled = client.patch(f"{API}/notes/{created['id']}/favorite", headers=headers).json()
    assert toggled["data"]["note"]["isFavorite"] is True

    found = client.get(f"{API}/search", params={"q": "idea"}, headers=headers).json()
    assert [n["id"] for n in found["data"]["notes"]] == [created["id"]]

    assert client.get(f"{API}/tags", headers=headers).json()["data"]["tags"] == ["plans"]

    assert client.delete(f"{API}/notes/{created['id']}", headers=headers).status_code == 200
    assert client.get(f"{API}/notes/{created['id']}", headers=headers).status_code == 404
    assert client.get(f"{API}/tags", headers=headers).json()["data"]["tags"] == []
