"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Malformed config is rejected when settings are loaded.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Settings loaded from STOREPUBLISH_* environment variables."""

    # Submission API
    api_base_url: str = "https://manage.devcenter.microsoft.com/v1.0"
    request_timeout: float = 60.0

    # Azure AD client-credentials grant
    token_authority: str = "https://login.microsoftonline.com"
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    token_resource: str = "https://manage.devcenter.microsoft.com"
    token_validity_seconds: int = 59 * 60  # Tokens are issued for one hour

    # Certification monitor
    status_poll_interval: float = 60.0
    status_poll_timeout: float = 4 * 60 * 60

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True
    metrics_textfile: str | None = None  # node_exporter textfile collector target

    # Pre/post merge snapshots
    debug_snapshot_dir: str | None = None

    service_name: str = "storepublish"
    version: str = "0.1.0"

    model_config = SettingsConfigDict(
        env_prefix="STOREPUBLISH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration values at load time.

        Credentials are deliberately not required here; commands that never
        reach the service (e.g. --help) must still work without them.
        """
        errors: list[str] = []

        if not self.api_base_url.startswith(("https://", "http://")):
            errors.append(f"API_BASE_URL must be an http(s) URL, got: {self.api_base_url[:40]}")
        if not self.token_authority.startswith(("https://", "http://")):
            errors.append(
                f"TOKEN_AUTHORITY must be an http(s) URL, got: {self.token_authority[:40]}"
            )
        if self.request_timeout <= 0:
            errors.append(f"REQUEST_TIMEOUT must be positive, got: {self.request_timeout}")
        if self.token_validity_seconds <= 0:
            errors.append(
                f"TOKEN_VALIDITY_SECONDS must be positive, got: {self.token_validity_seconds}"
            )
        if self.status_poll_interval <= 0:
            errors.append(
                f"STATUS_POLL_INTERVAL must be positive, got: {self.status_poll_interval}"
            )
        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CONFIGURATION ERROR - STOREPUBLISH CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def token_url(self) -> str:
        """OAuth2 token endpoint for the configured tenant."""
        return f"{self.token_authority.rstrip('/')}/{self.tenant_id}/oauth2/token"


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
