from http import HTTPStatus
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from users_api.errors import StorageError
from users_api.gateway import UserGateway
from users_api.main import app
from users_api.models import User
from users_api.uploads import UploadGuard


def test_create_user_storage_failure_returns_400(client, monkeypatch, db_session):
    """Creation reports any non-validation failure as a client error."""
    mock = MagicMock(side_effect=StorageError())
    monkeypatch.setattr(UserGateway, "create", mock)

    response = client.post("/users/", data={"name": "Should Fail"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "Database commit failed"}
    assert mock.called
    assert db_session.query(User).count() == 0


def test_update_user_unexpected_failure_returns_400(client, monkeypatch, user_factory):
    user = user_factory(name="Unlucky")
    monkeypatch.setattr(UserGateway, "update", MagicMock(side_effect=RuntimeError("boom")))

    response = client.put(f"/users/{user.id}", data={"name": "Lucky"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "boom"}


def test_get_user_storage_failure_returns_500(client, monkeypatch):
    monkeypatch.setattr(UserGateway, "get_by_id", MagicMock(side_effect=StorageError()))

    response = client.get("/users/1")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Database commit failed"}


def test_delete_user_storage_failure_returns_500(client, monkeypatch, user_factory):
    user = user_factory(name="Sticky")
    monkeypatch.setattr(UserGateway, "delete", MagicMock(side_effect=StorageError()))

    response = client.delete(f"/users/{user.id}")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Database commit failed"}


def test_unhandled_list_failure_returns_500(client, monkeypatch):
    """Unknown exceptions are logged and rendered as a generic 500."""
    monkeypatch.setattr(UserGateway, "list", MagicMock(side_effect=RuntimeError("db gone")))

    plain_client = TestClient(app, raise_server_exceptions=False)
    response = plain_client.get("/users/")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Internal server error"}


def test_http_errors_from_form_parsing_keep_their_status(client, monkeypatch, user_factory):
    user = user_factory(name="Unchanged")
    rejection = StarletteHTTPException(status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE, detail="Body rejected")
    monkeypatch.setattr(UploadGuard, "parse", AsyncMock(side_effect=rejection))

    created = client.post("/users/", data={"name": "Blocked"})
    updated = client.put(f"/users/{user.id}", data={"name": "Blocked"})

    for response in (created, updated):
        assert response.status_code == HTTPStatus.REQUEST_ENTITY_TOO_LARGE
        assert response.json() == {"error": "Body rejected"}


def test_malformed_multipart_returns_400(client, db_session):
    response = client.post(
        "/users/",
        content=b"this is not multipart at all",
        headers={"content-type": "multipart/form-data; boundary=abc123"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"error": "Malformed multipart body"}
    assert db_session.query(User).count() == 0
