from unittest.mock import MagicMock

import pytest
import requests

from laravel_client import LaravelClient, get_laravel_client
from main import app

AUTH = {"Authorization": "Bearer upstream-token"}


def upstream_response(status_code=200, body=b'{"success": true}', content_type="application/json"):
    response = MagicMock()
    response.status_code = status_code
    response.content = body
    response.headers = {"Content-Type": content_type}
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = upstream_response()
    client = LaravelClient("http://upstream.test/", timeout=3, session=session)
    app.dependency_overrides[get_laravel_client] = lambda: client
    yield session
    app.dependency_overrides.pop(get_laravel_client, None)


def sent(session):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


def form_fields(kwargs):
    return list(kwargs["data"] or [])


def test_bearer_token_required(client, session):
    res = client.get("/api/laravel/news")
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Authentication required - no bearer token"}

    res = client.get("/api/laravel/news", headers={"Authorization": "Basic abc"})
    assert res.status_code == 401
    session.request.assert_not_called()


def test_list_forwards_query_and_token(client, session):
    res = client.get("/api/laravel/news", params={"page": "2", "status": "active"}, headers=AUTH)
    assert res.status_code == 200
    assert res.json() == {"success": True}

    method, url, kwargs = sent(session)
    assert method == "GET"
    assert url == "http://upstream.test/api/news"
    assert kwargs["params"] == [("page", "2"), ("status", "active")]
    assert kwargs["headers"]["Authorization"] == "Bearer upstream-token"
    assert kwargs["headers"]["Accept"] == "application/json"
    assert kwargs["timeout"] == 3


def test_upstream_status_and_body_relayed(client, session):
    session.request.return_value = upstream_response(422, b'{"message": "The title field is required."}')

    res = client.get("/api/laravel/news/7", headers=AUTH)

    assert res.status_code == 422
    assert res.json() == {"message": "The title field is required."}
    assert sent(session)[1] == "http://upstream.test/api/news/7"


def test_create_forwards_multipart(client, session):
    session.request.return_value = upstream_response(201)

    res = client.post(
        "/api/laravel/news",
        data={"title": "Fleet update"},
        files={"image": ("cover.png", b"\x89PNG", "image/png")},
        headers=AUTH,
    )

    assert res.status_code == 201
    method, url, kwargs = sent(session)
    assert method == "POST"
    assert url == "http://upstream.test/api/news"
    assert ("title", "Fleet update") in form_fields(kwargs)
    name, (filename, content, content_type) = kwargs["files"][0]
    assert (name, filename, content, content_type) == ("image", "cover.png", b"\x89PNG", "image/png")


def test_post_update_spoofs_put(client, session):
    client.post("/api/laravel/news/5", data={"title": "Edited"}, headers=AUTH)

    method, url, kwargs = sent(session)
    assert method == "POST"
    assert url == "http://upstream.test/api/news/5"
    assert ("_method", "PUT") in form_fields(kwargs)
    assert ("title", "Edited") in form_fields(kwargs)


def test_put_multipart_is_spoofed(client, session):
    client.put(
        "/api/laravel/news/5",
        data={"title": "Edited"},
        files={"image": ("cover.png", b"data", "image/png")},
        headers=AUTH,
    )

    method, _, kwargs = sent(session)
    assert method == "POST"
    assert ("_method", "PUT") in form_fields(kwargs)


def test_put_json_is_real_put(client, session):
    client.put("/api/laravel/news/5", json={"title": "Edited"}, headers=AUTH)

    method, url, kwargs = sent(session)
    assert method == "PUT"
    assert kwargs["json"] == {"title": "Edited"}
    assert kwargs["headers"]["Content-Type"] == "application/json"


def test_delete_and_reactivate(client, session):
    assert client.delete("/api/laravel/news/9", headers=AUTH).status_code == 200
    assert sent(session)[:2] == ("DELETE", "http://upstream.test/api/news/9")

    assert client.patch("/api/laravel/news/9/reactivate", headers=AUTH).status_code == 200
    assert sent(session)[:2] == ("PATCH", "http://upstream.test/api/news/9/reactivate")


def test_transport_failure_is_internal_error(client, session):
    session.request.side_effect = requests.exceptions.ConnectionError("connection refused")

    res = client.get("/api/laravel/news", headers=AUTH)

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Failed to fetch news articles"}


def test_timeout_is_internal_error(client, session):
    session.request.side_effect = requests.exceptions.Timeout("read timed out")

    res = client.delete("/api/laravel/news/1", headers=AUTH)

    assert res.status_code == 500
    assert res.json()["success"] is False
