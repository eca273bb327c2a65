"""
HTTP middleware for the intake service: error envelopes, request logging,
rate limiting and session resolution.
"""

from core.middleware.authentication import AuthenticationMiddleware
from core.middleware.error_handling import ErrorHandlingMiddleware, setup_error_handlers
from core.middleware.logging import StructuredLoggingMiddleware, setup_logging
from core.middleware.rate_limiting import (
    InMemorySlidingWindowRateLimiter,
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    SlidingWindowRateLimiter,
)

__all__ = [
    "AuthenticationMiddleware",
    "ErrorHandlingMiddleware",
    "InMemorySlidingWindowRateLimiter",
    "RateLimitMiddleware",
    "RateLimitRule",
    "RateLimitStrategy",
    "SlidingWindowRateLimiter",
    "StructuredLoggingMiddleware",
    "setup_error_handlers",
    "setup_logging",
]
