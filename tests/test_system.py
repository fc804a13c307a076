import logging
import time

from config import settings
from routers import system


def test_root_and_health(client):
    assert client.get("/").json()["message"] == "NETI Site API"
    assert client.get("/health").json() == {"status": "healthy"}


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/does-not-exist")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_database_probe(client):
    res = client.get("/api/test-db")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["duration"].endswith("ms")


def test_database_probe_times_out(client, monkeypatch):
    monkeypatch.setattr(settings, "DB_TEST_TIMEOUT", 0.05)
    monkeypatch.setattr(system, "ping_database", lambda db: time.sleep(0.5))

    res = client.get("/api/test-db")

    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert "timeout" in body["error"].lower()


def test_database_probe_failure(client, monkeypatch):
    def broken(db):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(system, "ping_database", broken)

    res = client.get("/api/test-db")

    assert res.status_code == 500
    assert res.json() == {
        "success": False,
        "message": "Database connection failed",
        "error": "connection refused",
    }


def test_contact_form_is_logged(client, caplog):
    caplog.set_level(logging.INFO, logger="routers.system")
    payload = {
        "name": "Juan dela Cruz",
        "email": "juan@example.com",
        "company": "Pacific Lines",
        "message": "Interested in your STCW courses.",
    }

    res = client.post("/api/contact", json=payload)

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Thank you for your message! We will get back to you soon.",
    }
    assert "Juan dela Cruz" in caplog.text
    assert "Pacific Lines" in caplog.text


def test_contact_form_validation(client):
    res = client.post("/api/contact", json={"name": "Juan", "email": "juan@example.com"})
    assert res.status_code == 400
    assert res.json()["error"] == "Name, email, and message are required"

    res = client.post("/api/contact", json={"name": "Juan", "email": "nope", "message": "Hi"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid email address"
