"""
Application error hierarchy.

Every error that should reach the caller with a specific status code derives
from ``AppError``. The handlers in ``core.middleware.error_handling`` render
them in the standard ``{"error": {...}}`` envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for caller-visible errors."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Any = None,
    ):
        self.message = message or self.message
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)


# ==================== 4xx ==================== #


class BadRequestError(AppError):
    """Malformed or incomplete input."""

    status_code = 400
    code = "BAD_REQUEST"
    message = "Invalid request"


class UnsupportedFileType(BadRequestError):
    """Uploaded bytes are not one of the accepted document formats."""

    code = "UNSUPPORTED_FILE_TYPE"
    message = "Invalid file type. Allowed: PDF, DOC, DOCX"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class NotFoundError(AppError):
    """Resource is absent or belongs to another organization."""

    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class JobNotAcceptingApplications(NotFoundError):
    code = "JOB_NOT_FOUND"
    message = "Job not found or not accepting applications"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Conflict"


class DuplicateApplication(ConflictError):
    code = "DUPLICATE_APPLICATION"
    message = "You have already applied to this position"


class DocumentLimitExceeded(ConflictError):
    code = "DOCUMENT_LIMIT_EXCEEDED"
    message = "Document limit reached. Maximum 20 documents per candidate"


class ReadOnlyTenantError(ConflictError):
    """Write attempted against a read-only (demo/preview) organization."""

    code = "PREVIEW_READ_ONLY"
    message = "This organization is read-only. Changes are disabled in preview mode."


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    message = "Payload too large"


class FileTooLarge(PayloadTooLargeError):
    code = "FILE_TOO_LARGE"
    message = "File too large. Maximum size is 10 MB"


class UnsupportedMediaTypeError(AppError):
    status_code = 415
    code = "UNSUPPORTED_MEDIA_TYPE"
    message = "Unsupported media type"


class UnprocessableEntityError(AppError):
    status_code = 422
    code = "UNPROCESSABLE_ENTITY"
    message = "Request could not be processed"


class MissingRequiredAnswers(UnprocessableEntityError):
    """One or more required job questions were left unanswered."""

    code = "MISSING_REQUIRED_ANSWERS"

    def __init__(self, labels: list[str]):
        self.labels = list(labels)
        super().__init__(
            f"Missing required answers: {', '.join(self.labels)}",
            details={"missing": self.labels},
        )


class InvalidTransitionError(UnprocessableEntityError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot transition from '{current}' to '{requested}'")


class RateLimitExceeded(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests. Please try again later."


# ==================== 5xx ==================== #


class UpstreamFailure(AppError):
    """A dependent service failed or is unreachable."""

    status_code = 502
    code = "UPSTREAM_FAILURE"
    message = "Upstream service failure"


class ServiceNotConfigured(UpstreamFailure):
    status_code = 503
    code = "SERVICE_NOT_CONFIGURED"
    message = "Service is not configured on this instance"
