"""Operator configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KEYCLOAK_IMAGE = "quay.io/keycloak/keycloak:9.0.2"


class Settings(BaseSettings):
    """Operator settings loaded from environment variables.

    Settings can be provided via:
    1. Environment variables (CELINE_KEYCLOAK_*)
    2. A .env file in the working directory
    3. CLI arguments (--base-url, --admin-user, ...)
    """

    model_config = SettingsConfigDict(
        env_prefix="CELINE_KEYCLOAK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    service_name: str = "celine-keycloak-operator"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Keycloak connection
    base_url: str = Field(
        default="http://localhost:8080",
        description="Keycloak base URL (without the /auth suffix)",
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )
    admin_user: str | None = Field(
        default=None,
        description="Keycloak admin username (master realm)",
    )
    admin_password: str | None = Field(
        default=None,
        description="Keycloak admin password (master realm)",
    )

    # Workload
    keycloak_image: str = Field(
        default=DEFAULT_KEYCLOAK_IMAGE,
        description="Keycloak image pinned by this operator release",
    )

    @property
    def admin_url(self) -> str:
        """Get the admin API root (realms collection)."""
        return f"{self.base_url.rstrip('/')}/auth/admin/realms"

    @property
    def token_url(self) -> str:
        """Get the master realm token endpoint."""
        return (
            f"{self.base_url.rstrip('/')}/auth/realms/master/protocol/openid-connect/token"
        )

    @property
    def has_admin_credentials(self) -> bool:
        """Check if admin user credentials are available."""
        return bool(self.admin_user and self.admin_password)

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        admin_user: str | None = None,
        admin_password: str | None = None,
        keycloak_image: str | None = None,
    ) -> "Settings":
        """Create a new settings instance with CLI overrides applied."""
        return self.model_copy(
            update={
                "base_url": base_url or self.base_url,
                "admin_user": admin_user or self.admin_user,
                "admin_password": admin_password or self.admin_password,
                "keycloak_image": keycloak_image or self.keycloak_image,
            }
        )


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return the module-level settings singleton."""
    return settings
