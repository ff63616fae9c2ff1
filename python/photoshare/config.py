"""Application settings loaded from environment variables.

Environment Configuration:
    PHOTOSHARE_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: PostgreSQL connection string (required)

Auth Configuration (required in all environments):
    OIDC_ISSUER: Expected JWT issuer (trailing slash stripped)
    OIDC_CLIENT_ID: Expected JWT audience
    OIDC_JWKS_URL: JWKS endpoint (optional, discovered from the issuer otherwise)

Storage Configuration:
    AWS_ENDPOINT: Custom S3/STS endpoint (enables path-style addressing)
    AWS_REGION: Region used for S3 and STS clients
    STORAGE_ROLE_ARN: Role assumed with the caller's web identity token
    STORAGE_ROLE_SESSION_NAME: Session name for the assumed role
    STORAGE_ACCESS_KEY_ID / STORAGE_SECRET_ACCESS_KEY: Static service-wide
        credentials. When both are set, federation is disabled and every
        request uses one shared storage backend (self-hosted mode).

Notification Configuration:
    ONESIGNAL_APP_ID / ONESIGNAL_API_KEY: Push notification credentials
        (required in staging/prod)

Claims Configuration:
    FIREBASE_CLAIMS_ENABLED: Enable the self-hosted storage claim endpoint
    FIREBASE_CREDENTIALS_FILE: Service account file (default credentials otherwise)
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - OIDC_ISSUER and OIDC_CLIENT_ID are required in all environments
    - ONESIGNAL_APP_ID and ONESIGNAL_API_KEY are required in staging and prod
    - Static storage credentials must be set together or not at all
    """

    photoshare_env: Environment = Field(default=Environment.LOCAL, alias="PHOTOSHARE_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # OIDC auth settings
    oidc_issuer: str | None = Field(default=None, alias="OIDC_ISSUER")
    oidc_client_id: str | None = Field(default=None, alias="OIDC_CLIENT_ID")
    oidc_jwks_url: str | None = Field(default=None, alias="OIDC_JWKS_URL")

    # Object storage settings
    aws_endpoint: str | None = Field(default=None, alias="AWS_ENDPOINT")
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")
    storage_role_arn: str = Field(
        default="arn:aws:iam::123456789012:role/FederatedWebIdentityRole",
        alias="STORAGE_ROLE_ARN",
    )
    storage_role_session_name: str = Field(
        default="photoshare", alias="STORAGE_ROLE_SESSION_NAME"
    )
    storage_credentials_ttl_s: int = Field(default=3600, alias="STORAGE_CREDENTIALS_TTL_S")
    storage_access_key_id: str | None = Field(default=None, alias="STORAGE_ACCESS_KEY_ID")
    storage_secret_access_key: str | None = Field(
        default=None, alias="STORAGE_SECRET_ACCESS_KEY"
    )

    # Push notifications
    onesignal_app_id: str | None = Field(default=None, alias="ONESIGNAL_APP_ID")
    onesignal_api_key: str | None = Field(default=None, alias="ONESIGNAL_API_KEY")
    onesignal_url: str = Field(
        default="https://onesignal.com/api/v1/notifications", alias="ONESIGNAL_URL"
    )

    # Custom claims
    firebase_claims_enabled: bool = Field(default=False, alias="FIREBASE_CLAIMS_ENABLED")
    firebase_credentials_file: str | None = Field(default=None, alias="FIREBASE_CREDENTIALS_FILE")

    # Request handling
    request_timeout_s: float = Field(default=30.0, alias="PHOTOSHARE_REQUEST_TIMEOUT_S")
    max_concurrent_requests: int = Field(
        default=10, alias="PHOTOSHARE_MAX_CONCURRENT_REQUESTS"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the current environment."""
        missing_auth = []
        if not self.oidc_issuer:
            missing_auth.append("OIDC_ISSUER")
        if not self.oidc_client_id:
            missing_auth.append("OIDC_CLIENT_ID")

        if missing_auth:
            raise ValueError(f"Missing required OIDC auth settings: {', '.join(missing_auth)}.")

        if bool(self.storage_access_key_id) != bool(self.storage_secret_access_key):
            raise ValueError(
                "STORAGE_ACCESS_KEY_ID and STORAGE_SECRET_ACCESS_KEY must be set together"
            )

        if self.photoshare_env in (Environment.STAGING, Environment.PROD):
            if not (self.onesignal_app_id and self.onesignal_api_key):
                raise ValueError(
                    "ONESIGNAL_APP_ID and ONESIGNAL_API_KEY are required for "
                    f"PHOTOSHARE_ENV={self.photoshare_env.value}"
                )

        if self.request_timeout_s <= 0:
            raise ValueError("PHOTOSHARE_REQUEST_TIMEOUT_S must be positive")
        if self.max_concurrent_requests < 1:
            raise ValueError("PHOTOSHARE_MAX_CONCURRENT_REQUESTS must be at least 1")

        return self

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.oidc_issuer:
            return self.oidc_issuer.rstrip("/")
        return None

    @property
    def uses_shared_storage(self) -> bool:
        """Whether a single service-wide storage identity is pinned."""
        return bool(self.storage_access_key_id and self.storage_secret_access_key)

    @property
    def notifications_enabled(self) -> bool:
        """Whether push notification credentials are configured."""
        return bool(self.onesignal_app_id and self.onesignal_api_key)


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
