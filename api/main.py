"""
FastAPI application initialization and configuration.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from database.engine import close_db, init_db
from api.dependencies import get_storage
from api.routes import health
from api.routes.v1 import (
    applications,
    candidates,
    documents,
    feedback,
    jobs,
    public,
)

# Import middleware components
from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
    InMemorySlidingWindowRateLimiter,
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    SlidingWindowRateLimiter,
    AuthenticationMiddleware,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


def build_rate_limit_rules(api_prefix: str) -> list[RateLimitRule]:
    """Rules for the two abuse-prone write endpoints."""
    prefix = api_prefix.rstrip("/")
    return [
        RateLimitRule(
            name="apply",
            strategy=RateLimitStrategy.IP_ADDRESS,
            max_requests=settings.apply_rate_limit_max,
            window_seconds=settings.apply_rate_limit_window_seconds,
            path_pattern=rf"^{prefix}/public/jobs/[^/]+/apply/?$",
            methods=["POST"],
            message="Too many applications submitted. Please try again later.",
        ),
        RateLimitRule(
            name="feedback",
            strategy=RateLimitStrategy.USER_ID,
            max_requests=settings.feedback_rate_limit_max,
            window_seconds=settings.feedback_rate_limit_window_seconds,
            path_pattern=rf"^{prefix}/feedback/?$",
            methods=["POST"],
            message="Too many feedback submissions. Please try again later.",
        ),
    ]


def build_rate_limiter():
    if settings.rate_limit_backend == "redis":
        return SlidingWindowRateLimiter.from_url(settings.redis_url)
    return InMemorySlidingWindowRateLimiter()


rate_limit_rules = build_rate_limit_rules(settings.api_prefix)
rate_limiter = build_rate_limiter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()

    if settings.rate_limit_enabled and isinstance(rate_limiter, InMemorySlidingWindowRateLimiter):
        rate_limiter.start(max(rule.window_seconds for rule in rate_limit_rules))

    if settings.s3_ensure_bucket:
        await get_storage().ensure_bucket()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await rate_limiter.close()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Applicant tracking API with public job application intake",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app)

# Add middleware (order matters - the last one added runs first)
# 1. Rate limiting middleware (innermost - sees the resolved session)
if settings.rate_limit_enabled:
    app.add_middleware(
        RateLimitMiddleware,
        limiter=rate_limiter,
        rules=rate_limit_rules,
        key_prefix="ats:ratelimit",
    )

# 2. Authentication middleware (resolves the session from the bearer token)
app.add_middleware(
    AuthenticationMiddleware,
    jwt_secret=settings.jwt_secret_key,
    jwt_algorithm=settings.jwt_algorithm,
    public_prefixes=[
        "/health",
        "/ready",
        "/docs",
        "/redoc",
        "/openapi",
        f"{settings.api_prefix}/public",
    ],
)

# 3. Structured logging middleware (logs all requests/responses)
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)

# 4. Error handling middleware (catches everything the handlers miss)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# 5. CORS middleware (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# API v1 routes
app.include_router(public.router, prefix=settings.api_prefix)
app.include_router(candidates.router, prefix=settings.api_prefix)
app.include_router(documents.router, prefix=settings.api_prefix)
app.include_router(applications.router, prefix=settings.api_prefix)
app.include_router(jobs.router, prefix=settings.api_prefix)
app.include_router(feedback.router, prefix=settings.api_prefix)
