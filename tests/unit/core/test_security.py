"""
Tests for session tokens and the authentication middleware.
"""

from datetime import timedelta

import jwt as pyjwt
import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from core.middleware.authentication import AuthenticationMiddleware, get_current_session
from core.security import SessionContext, create_session_token, decode_session_token

SECRET = "unit-test-secret-key-that-is-long-enough"


class TestSessionTokens:
    """Test signing and verifying session tokens."""

    def test_round_trip_claims(self):
        token = create_session_token(
            "user-1", SECRET, organization_id="org-1", email="a@b.io", name="Ann"
        )

        session = decode_session_token(token, SECRET)

        assert session == SessionContext(
            user_id="user-1", organization_id="org-1", email="a@b.io", name="Ann"
        )

    def test_organization_optional(self):
        session = decode_session_token(create_session_token("user-1", SECRET), SECRET)
        assert session.organization_id is None

    def test_expired_token(self):
        token = create_session_token("user-1", SECRET, expires_in=timedelta(seconds=-10))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_session_token(token, SECRET)

    def test_wrong_secret(self):
        token = create_session_token("user-1", SECRET)
        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, "another-secret-key-also-long-enough")

    def test_missing_subject(self):
        token = pyjwt.encode({"org_id": "org-1"}, SECRET, algorithm="HS256")
        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, SECRET)

    def test_numeric_subject_coerced(self):
        token = pyjwt.encode({"sub": "42"}, SECRET, algorithm="HS256")
        assert decode_session_token(token, SECRET).user_id == "42"


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/api/v1/me")
    async def me(request: Request):
        session = get_current_session(request)
        return {"user_id": session.user_id if session else None}

    @app.post("/api/v1/public/jobs/{slug}/apply")
    async def apply(slug: str, request: Request):
        return {"session": get_current_session(request) is not None}

    app.add_middleware(
        AuthenticationMiddleware,
        jwt_secret=SECRET,
        public_prefixes=["/health", "/api/v1/public"],
    )
    return app


@pytest.fixture
async def auth_client():
    async with AsyncClient(transport=ASGITransport(app=_build_app()), base_url="http://test") as client:
        yield client


class TestAuthenticationMiddleware:
    """Test session resolution on requests."""

    async def test_valid_token_sets_session(self, auth_client):
        token = create_session_token("user-7", SECRET, organization_id="org-1")

        response = await auth_client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"user_id": "user-7"}

    async def test_missing_token_passes_through_anonymous(self, auth_client):
        response = await auth_client.get("/api/v1/me")

        assert response.status_code == 200
        assert response.json() == {"user_id": None}

    async def test_non_bearer_scheme_ignored(self, auth_client):
        response = await auth_client.get("/api/v1/me", headers={"Authorization": "Basic abc"})
        assert response.json() == {"user_id": None}

    async def test_expired_token_rejected(self, auth_client):
        token = create_session_token("user-7", SECRET, expires_in=timedelta(minutes=-5))

        response = await auth_client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    async def test_invalid_token_rejected(self, auth_client):
        response = await auth_client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "TOKEN_INVALID"
        assert error["path"] == "/api/v1/me"
        assert error["method"] == "GET"

    async def test_public_prefix_ignores_bad_token(self, auth_client):
        """Applicants never carry a session; a stray header must not block them."""
        response = await auth_client.post(
            "/api/v1/public/jobs/x/apply", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 200
        assert response.json() == {"session": False}
