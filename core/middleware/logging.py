"""
Structured logging middleware with PII masking.

Applicant submissions carry names, emails and phone numbers; none of that may
reach the logs. Request bodies are only logged when explicitly enabled, and
then only after masking.
"""

import json
import logging
import re
import time
import traceback
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Keys whose values never reach the logs, credentials and applicant identity alike
_SENSITIVE_KEY = re.compile(
    r"password|token|api[_-]?key|secret|authorization|cookie|session"
    r"|e-?mail|phone|(first|last)[_-]?name",
    re.IGNORECASE,
)

_EMAIL_RE = re.compile(r"\b[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}\b")
_INTL_PHONE_RE = re.compile(r"\+\d{1,3}(?:[-.\s]?\d{1,4}){2}[-.\s]?\d{1,9}")
_LOCAL_PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")

_QUIET_PREFIXES = ("/health", "/ready", "/metrics")
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

_NOISY_LIBRARIES = ("uvicorn.access", "sqlalchemy.engine", "botocore", "pdfminer")


def is_sensitive_field(field_name: str) -> bool:
    return _SENSITIVE_KEY.search(field_name) is not None


def mask_pii(text: str) -> str:
    text = _EMAIL_RE.sub("[EMAIL]", text)
    text = _INTL_PHONE_RE.sub("[PHONE]", text)
    return _LOCAL_PHONE_RE.sub("[PHONE]", text)


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """Walk dicts and lists, redacting sensitive keys and scrubbing PII out of strings.

    Nesting deeper than ``max_depth`` is replaced by a marker rather than walked.
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if is_sensitive_field(str(key)):
                masked[key] = REDACTED
            else:
                masked[key] = mask_sensitive_data(value, depth + 1, max_depth)
        return masked
    if isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]
    if isinstance(data, str):
        return mask_pii(data)
    return data


def mask_headers(headers: dict) -> dict:
    """Redact credential headers. ``Authorization`` keeps its scheme, e.g. ``Bearer [REDACTED]``."""
    masked = {}
    for name, value in headers.items():
        if name.lower() == "authorization" and isinstance(value, str) and " " in value:
            scheme = value.split(" ", 1)[0]
            masked[name] = f"{scheme} {REDACTED}"
        elif is_sensitive_field(name):
            masked[name] = REDACTED
        else:
            masked[name] = value
    return masked


def should_log_request(path: str) -> bool:
    return not path.startswith(_QUIET_PREFIXES)


def get_client_ip(request: Request) -> str:
    """
    Caller address for log lines, with the last IPv4 octet hidden.

    Anything that is not a dotted quad (IPv6, test clients) is reported as
    ``unknown``.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        address = forwarded.split(",")[0].strip()
    elif request.client:
        address = request.client.host
    else:
        return "unknown"

    octets = address.split(".")
    if len(octets) != 4:
        return "unknown"
    return ".".join(octets[:3] + ["xxx"])


def _log_completion(event: dict) -> None:
    status = event["status_code"]
    if status >= 500:
        level = logging.ERROR
    elif status >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(level, json.dumps(event))


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits a ``request_started`` and a ``request_completed`` JSON event per request.

    The request id comes from ``x-request-id`` when the caller sends one and is
    echoed back on the response. Session identifiers are attached to the
    completion event once authentication has run.
    """

    def __init__(self, app: ASGIApp, log_request_body: bool = False, max_body_size: int = 1024):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response

        started = time.perf_counter()
        await self._log_start(request, request_id)

        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled error while serving %s %s",
                request.method,
                request.url.path,
                exc_info=True,
                extra={"request_id": request_id, "error_type": type(exc).__name__},
            )
            raise
        finally:
            completion = {
                "event": "request_completed",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code if response is not None else 500,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }
            session = request.scope.get("auth")
            if session is not None:
                completion["user_id"] = session.user_id
                completion["organization_id"] = session.organization_id
            _log_completion(completion)

        response.headers["x-request-id"] = request_id
        return response

    async def _log_start(self, request: Request, request_id: str) -> None:
        event = {
            "event": "request_started",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": get_client_ip(request),
            "user_agent": request.headers.get("user-agent", "unknown"),
            "query_params": mask_sensitive_data(dict(request.query_params)),
            "headers": mask_headers(dict(request.headers)),
        }
        if self.log_request_body and request.method in _BODY_METHODS:
            body = await self._read_body(request)
            if body is not None:
                event["body"] = mask_sensitive_data(body)
        logger.info(json.dumps(event))

    async def _read_body(self, request: Request) -> Any:
        # Multipart uploads are never buffered for logging, only described.
        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type:
            return {"_content_type": content_type}

        raw = await request.body()
        if len(raw) > self.max_body_size:
            return {"_truncated": True, "_size": len(raw)}
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Request body is not valid JSON, omitted from log")
            return None


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id is not None:
            payload["request_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": mask_pii(str(exc_value)),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(payload)


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install a single stdout handler on the root logger, JSON by default."""
    level = logging.getLevelName(log_level.upper())
    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)

    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
