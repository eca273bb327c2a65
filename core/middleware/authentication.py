"""
Resolves the caller's session from a bearer token.

The resolved ``SessionContext`` (or ``None``) is stored in ``scope["auth"]``.
Anonymous requests pass through; routes that need a session enforce it with
the ``require_auth`` dependency. A token that is present but expired or
malformed is rejected here with 401, except under public prefixes where the
session is never consulted.
"""

import logging
from typing import Callable, Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.security import SessionContext, decode_session_token

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_PREFIXES = ("/health", "/ready", "/docs", "/redoc", "/openapi")

_BEARER = "Bearer "


class AuthenticationMiddleware:
    """Pure ASGI middleware; it never reads the request body."""

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        public_prefixes: Optional[list[str]] = None,
    ):
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.public_prefixes = tuple(public_prefixes) if public_prefixes is not None else DEFAULT_PUBLIC_PREFIXES

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope["auth"] = None
        path = scope.get("path", "")
        token = None if self._is_public(path) else bearer_token(Request(scope))

        if token:
            try:
                scope["auth"] = decode_session_token(token, self.jwt_secret, self.jwt_algorithm)
            except jwt.ExpiredSignatureError:
                await self._reject(scope, send, "TOKEN_EXPIRED", "Authentication token has expired.")
                return
            except jwt.InvalidTokenError as exc:
                logger.warning("Rejected bearer token: %s", exc)
                await self._reject(scope, send, "TOKEN_INVALID", "Invalid authentication token.")
                return

        await self.app(scope, receive, send)

    def _is_public(self, path: str) -> bool:
        return path == "/" or path.startswith(self.public_prefixes)

    async def _reject(self, scope: dict, send: Callable, code: str, message: str) -> None:
        response = JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "error": {
                    "code": code,
                    "message": message,
                    "path": scope.get("path", "unknown"),
                    "method": scope.get("method", "unknown"),
                }
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
        await response(scope, None, send)


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith(_BEARER):
        return header[len(_BEARER):] or None
    return None


def get_current_session(request: Request) -> Optional[SessionContext]:
    """Session resolved by ``AuthenticationMiddleware``, ``None`` for anonymous callers."""
    return request.scope.get("auth")
