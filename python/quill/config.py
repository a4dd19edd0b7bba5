"""Application settings loaded from environment variables.

Environment Configuration:
    QUILL_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    BACKUP_DIR: Directory where pre-destruction exports are written

Revision Policy:
    POST_REVISIONS_MAX: Maximum revisions retained per post
    POST_REVISIONS_INTERVAL_MS: Minimum interval between retained revisions

Password Reset:
    RESET_TOKEN_SECRET: HS256 signing secret (required in staging/prod)
    RESET_TOKEN_TTL_S: Reset token validity in seconds
    MAIL_FROM: Sender address handed to the notification collaborator
    SITE_URL: Public site URL used to build reset links

Note: local/test environments fall back to a deterministic reset secret.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Deterministic secret for local/test only (32 bytes)
DEV_RESET_TOKEN_SECRET = "quill-dev-reset-token-secret-32b"


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - RESET_TOKEN_SECRET is required in staging and prod, and must be >= 32 chars
    - Revision policy and batch sizes must be >= 1
    """

    quill_env: Environment = Field(default=Environment.LOCAL, alias="QUILL_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # Backups
    backup_dir: str = Field(default="content/data", alias="BACKUP_DIR")

    # Post revision retention policy
    post_revisions_max: int = Field(default=25, alias="POST_REVISIONS_MAX")
    post_revisions_interval_ms: int = Field(
        default=10 * 60 * 1000, alias="POST_REVISIONS_INTERVAL_MS"
    )  # 10 minutes

    # Password reset
    reset_token_secret: str | None = Field(default=None, alias="RESET_TOKEN_SECRET")
    reset_token_ttl_s: int = Field(default=24 * 60 * 60, alias="RESET_TOKEN_TTL_S")  # 1 day
    mail_from: str = Field(default="noreply@localhost", alias="MAIL_FROM")
    site_url: str = Field(default="http://localhost:2368", alias="SITE_URL")

    # Keyset page size when streaming authored post ids
    authored_ids_batch_size: int = Field(default=500, alias="AUTHORED_IDS_BATCH_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure environment-dependent settings are present and sane."""
        for env_name, value in (
            ("POST_REVISIONS_MAX", self.post_revisions_max),
            ("POST_REVISIONS_INTERVAL_MS", self.post_revisions_interval_ms),
            ("RESET_TOKEN_TTL_S", self.reset_token_ttl_s),
            ("AUTHORED_IDS_BATCH_SIZE", self.authored_ids_batch_size),
        ):
            if value < 1:
                raise ValueError(f"{env_name} must be >= 1, got {value}")

        if self.quill_env in (Environment.STAGING, Environment.PROD):
            if not self.reset_token_secret:
                raise ValueError(
                    f"RESET_TOKEN_SECRET is required for QUILL_ENV={self.quill_env.value}"
                )

        if self.reset_token_secret is not None and len(self.reset_token_secret) < 32:
            raise ValueError("RESET_TOKEN_SECRET must be at least 32 characters")

        return self

    @property
    def effective_reset_token_secret(self) -> str:
        """Return the reset signing secret, falling back to the dev secret locally."""
        return self.reset_token_secret or DEV_RESET_TOKEN_SECRET

    @property
    def revision_config(self) -> dict[str, int]:
        """Revision retention policy in the shape PostRevisions expects."""
        return {
            "max_revisions": self.post_revisions_max,
            "revision_interval_ms": self.post_revisions_interval_ms,
        }

    @property
    def reset_settings(self) -> dict[str, Any]:
        """Settings view handed to the reset token generator."""
        return {
            "secret": self.effective_reset_token_secret,
            "ttl_s": self.reset_token_ttl_s,
        }

    @property
    def mail_settings(self) -> dict[str, Any]:
        """Settings view handed to the reset notifier."""
        return {
            "from": self.mail_from,
            "site_url": self.site_url.rstrip("/"),
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
