"""
Tests for the error envelope, middleware, health checks and log redaction.
"""
import logging

from sqlalchemy.exc import IntegrityError

from core.exceptions import _db_error_detail, _integrity_error_fields, validation_errors_to_fields
from core.logging import SecurityFilter


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Not Found"}


def test_malformed_json_is_a_validation_error(client):
    response = client.post(
        "/api/auth/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"


def test_response_headers(client):
    response = client.get("/api/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_database_health(client):
    response = client.get("/api/health/database")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["category_count"] == 20


def test_root(client):
    assert client.get("/").json()["health_checks"]["basic"] == "/api/health"


def test_validation_errors_to_fields():
    fields = validation_errors_to_fields([
        {"loc": ("body", "email"), "msg": "value is not a valid email address"},
        {"loc": ("body", "confirmPassword"), "msg": "Value error, Passwords don't match"},
        {"loc": ("query", "page"), "msg": "Input should be greater than or equal to 1"},
        {"loc": ("body", "metadata", "price"), "msg": "Input should be a valid string"},
    ])
    assert fields == {
        "email": ["value is not a valid email address"],
        "confirmPassword": ["Passwords don't match"],
        "page": ["Input should be greater than or equal to 1"],
        "metadata.price": ["Input should be a valid string"],
    }


def test_integrity_error_fields():
    unique = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: user.email"))
    assert _integrity_error_fields(unique) == ("unique", "email")

    foreign_key = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    assert _integrity_error_fields(foreign_key) == ("foreign_key", None)

    postgres = IntegrityError(
        "INSERT", {}, Exception('duplicate key value violates unique constraint\nDETAIL:  Key (username)=(alice) already exists.')
    )
    assert _integrity_error_fields(postgres) == (None, "username")


def test_security_filter_redacts_tokens():
    token = "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MX0.c2lnbmF0dXJl"
    record = logging.LogRecord("auth", logging.INFO, __file__, 1, f"Redirecting to /auth/callback?token={token}", None, None)
    record.password = "secret1"
    record.headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    SecurityFilter().filter(record)

    assert token not in record.msg
    assert record.password == "[REDACTED]"
    assert record.headers == {"Authorization": "[REDACTED]", "Accept": "application/json"}


def test_security_filter_matches_whole_keys():
    record = logging.LogRecord("access", logging.INFO, __file__, 1, "Request completed", None, None)
    record.context = {"status_code": 500, "postcode": "160017", "access_token": "abc", "code": "xyz"}

    SecurityFilter().filter(record)

    assert record.context == {
        "status_code": 500, "postcode": "160017", "access_token": "[REDACTED]", "code": "[REDACTED]",
    }


def test_structlog_events_reach_standard_handlers(client, caplog):
    caplog.set_level(logging.WARNING)
    response = client.post("/api/auth/login", json={"email": "bad", "password": "secret1"})
    assert response.status_code == 400

    records = [r for r in caplog.records if r.name == "exceptions"]
    assert records
    assert records[0].getMessage() == "Validation error occurred"
    assert records[0].fields == ["email"]
    assert records[0].path == "/api/auth/login"


def test_db_error_detail_omits_statement_and_parameters():
    exc = IntegrityError(
        "INSERT INTO user (password_hash) VALUES (?)", ("$2b$12$secrethash",),
        Exception("NOT NULL constraint failed: user.name"),
    )
    detail = _db_error_detail(exc)
    assert detail == "NOT NULL constraint failed: user.name"
    assert "secrethash" not in detail
