"""Application configuration."""

import os
from typing import Literal
from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_analytics.domain.errors import InvalidTenantError

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    admin_token: str
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    analytics_timezone: str = "UTC"
    tenant_scoped: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_tenant_id(raw: str | None) -> UUID | None:
    """Parse an optional tenant id from a header value.

    A missing or blank value selects the global aggregate; anything else must be
    a UUID.
    """
    if raw is None or not raw.strip():
        return None
    try:
        return UUID(raw.strip())
    except ValueError as exc:
        raise InvalidTenantError(f"Invalid tenant id: {raw!r}") from exc
