"""
Tests for error handling middleware.
Every failure must come back in the standard envelope without leaking internals.
"""

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from redis.exceptions import ConnectionError as RedisConnectionError

from core.exceptions import (
    DuplicateApplication,
    FileTooLarge,
    MissingRequiredAnswers,
    ReadOnlyTenantError,
)
from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    build_error_body,
    get_safe_error_details,
    sanitize_error_message,
    setup_error_handlers,
)


class TestSensitiveDataSanitization:
    """Test message sanitization."""

    @pytest.mark.parametrize(
        "message",
        [
            'password="secret123"',
            "token: abc.def.ghi",
            "api_key=sk_live_12345",
            'client_secret:"xyz"',
            "authorization: Bearer-token",
            "duplicate key for jane.doe@example.com",
        ],
    )
    def test_sensitive_values_redacted(self, message):
        assert "[REDACTED]" in sanitize_error_message(message)

    def test_plain_message_untouched(self):
        assert sanitize_error_message("Job not found") == "Job not found"

    def test_non_string_input(self):
        assert sanitize_error_message(404) == "404"

    def test_safe_details_without_traceback(self):
        details = get_safe_error_details(ValueError("password=hunter2"))
        assert details["type"] == "ValueError"
        assert "hunter2" not in details["message"]
        assert "traceback" not in details


class TestErrorEnvelope:
    def test_details_omitted_when_none(self):
        body = build_error_body("NOT_FOUND", "Not found", "/x", "GET")
        assert body == {"error": {"code": "NOT_FOUND", "message": "Not found", "path": "/x", "method": "GET"}}

    def test_details_included(self):
        body = build_error_body("CONFLICT", "c", "/x", "POST", {"a": 1})
        assert body["error"]["details"] == {"a": 1}


class Payload(BaseModel):
    name: str


def _build_app(debug: bool = False) -> FastAPI:
    app = FastAPI()
    setup_error_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateApplication()

    @app.get("/missing")
    async def missing():
        raise MissingRequiredAnswers(["Resume", "Portfolio"])

    @app.get("/read-only")
    async def read_only():
        raise ReadOnlyTenantError()

    @app.get("/too-large")
    async def too_large():
        raise FileTooLarge()

    @app.get("/http")
    async def http_error():
        raise HTTPException(status_code=418, detail="teapot")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    @app.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT ...", {}, Exception("unique violation on jane@x.com"))

    @app.get("/operational")
    async def operational():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    @app.get("/sqlalchemy")
    async def sqlalchemy_error():
        raise SQLAlchemyError("boom")

    @app.get("/redis")
    async def redis_error():
        raise RedisConnectionError("down")

    @app.get("/timeout")
    async def timeout():
        raise TimeoutError()

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret=topsecret internal detail")

    return app


@pytest.fixture
async def error_client():
    app = _build_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestErrorHandlers:
    """Test the mapping from exceptions to responses."""

    async def test_app_error(self, error_client):
        response = await error_client.get("/duplicate")

        assert response.status_code == 409
        assert response.json() == {
            "error": {
                "code": "DUPLICATE_APPLICATION",
                "message": "You have already applied to this position",
                "path": "/duplicate",
                "method": "GET",
            }
        }

    async def test_missing_answers_lists_labels(self, error_client):
        response = await error_client.get("/missing")

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["message"] == "Missing required answers: Resume, Portfolio"
        assert error["details"] == {"missing": ["Resume", "Portfolio"]}

    async def test_read_only_has_distinct_code(self, error_client):
        response = await error_client.get("/read-only")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PREVIEW_READ_ONLY"

    async def test_payload_too_large(self, error_client):
        response = await error_client.get("/too-large")

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "FILE_TOO_LARGE"

    async def test_http_exception(self, error_client):
        response = await error_client.get("/http")

        assert response.status_code == 418
        assert response.json()["error"]["message"] == "teapot"

    async def test_request_validation(self, error_client):
        response = await error_client.post("/validate", json={})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.name"

    async def test_integrity_error(self, error_client):
        response = await error_client.get("/integrity")

        assert response.status_code == 409
        assert "jane@x.com" not in response.text

    async def test_operational_error(self, error_client):
        response = await error_client.get("/operational")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    async def test_generic_sqlalchemy_error(self, error_client):
        response = await error_client.get("/sqlalchemy")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    async def test_redis_error(self, error_client):
        response = await error_client.get("/redis")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CACHE_ERROR"

    async def test_timeout(self, error_client):
        response = await error_client.get("/timeout")

        assert response.status_code == 504

    async def test_unhandled_exception_hides_details(self, error_client):
        response = await error_client.get("/crash")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_SERVER_ERROR"
        assert "details" not in error
        assert "topsecret" not in response.text

    async def test_debug_includes_sanitized_details(self):
        app = _build_app(debug=True)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/crash")

        details = response.json()["error"]["details"]
        assert details["type"] == "RuntimeError"
        assert "topsecret" not in details["message"]
