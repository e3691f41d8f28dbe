"""Central environment-driven settings for the webhook service.

The process builds one `Settings` instance lazily through `get_settings()`.
Store credentials are optional at load time so that a missing secret surfaces
as a per-request configuration error instead of an import crash.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payment-webhook"
    log_level: str = "INFO"
    store_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("store_url", "STORE_URL"),
    )
    store_service_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "store_service_key", "STORE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY"
        ),
    )
    store_pool_size: int = 5
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    tracing_enabled: bool = True
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    def missing_store_settings(self) -> list[str]:
        """Names of the store settings that are unset or blank."""

        missing = []
        if not (self.store_url or "").strip():
            missing.append("STORE_URL")
        if not (self.store_service_key or "").strip():
            missing.append("STORE_SERVICE_KEY")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""

    return Settings()
