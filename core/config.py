"""
Core configuration using Pydantic Settings.
Loads from environment variables.
"""

from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(default="intake-ats", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development", alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    # API
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        alias="ALLOWED_ORIGINS",
    )

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")
    database_pool_size: int = Field(default=20, alias="DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Blob storage
    storage_backend: Literal["s3", "local"] = Field(default="s3", alias="STORAGE_BACKEND")
    local_storage_path: str = Field(default="./storage", alias="LOCAL_STORAGE_PATH")
    s3_endpoint: str | None = Field(default=None, alias="S3_ENDPOINT")
    s3_region: str = Field(default="us-east-1", alias="S3_REGION")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY")
    s3_bucket: str = Field(default="documents", alias="S3_BUCKET")
    s3_ensure_bucket: bool = Field(default=False, alias="S3_ENSURE_BUCKET")

    # Auth
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Logging
    log_request_body: bool = Field(default=False, alias="LOG_REQUEST_BODY")
    log_max_body_size: int = Field(default=1024, alias="LOG_MAX_BODY_SIZE")
    json_logs: bool = Field(default=True, alias="JSON_LOGS")

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory", alias="RATE_LIMIT_BACKEND"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    apply_rate_limit_max: int = Field(default=5, alias="APPLY_RATE_LIMIT_MAX")
    apply_rate_limit_window_seconds: int = Field(
        default=15 * 60, alias="APPLY_RATE_LIMIT_WINDOW_SECONDS"
    )
    feedback_rate_limit_max: int = Field(default=5, alias="FEEDBACK_RATE_LIMIT_MAX")
    feedback_rate_limit_window_seconds: int = Field(
        default=60 * 60, alias="FEEDBACK_RATE_LIMIT_WINDOW_SECONDS"
    )

    # Tenancy
    demo_org_slug: str | None = Field(default=None, alias="DEMO_ORG_SLUG")

    # Documents
    document_parsing_enabled: bool = Field(default=True, alias="DOCUMENT_PARSING_ENABLED")

    # Feedback (GitHub issues)
    github_feedback_token: str | None = Field(default=None, alias="GITHUB_FEEDBACK_TOKEN")
    github_feedback_repo: str | None = Field(default=None, alias="GITHUB_FEEDBACK_REPO")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")


# Global settings instance
settings = Settings()
