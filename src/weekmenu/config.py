"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from babel import UnknownLocaleError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weekmenu.normalize.units import parse_locale


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage mode: "local" has no share backend, so exports are blocked
    storage_mode: Literal["remote", "local"] = "remote"

    # Display
    locale: str = "nl-NL"

    # Inclusion state persistence
    inclusion_storage_prefix: str = "shopping:discarded:v2"

    # Share snapshots
    share_base_url: str = "http://localhost:3000"
    share_api_url: str = ""  # empty: keep snapshots in-process
    share_api_token: str = ""
    share_timeout: float = 10.0  # request timeout in seconds
    share_max_retries: int = 3
    share_ttl_hours: int = 24
    bring_deeplink_url: str = "https://api.getbring.com/rest/bringrecipes/deeplink"

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    @field_validator("locale")
    @classmethod
    def _known_locale(cls, value: str) -> str:
        try:
            parse_locale(value)
        except (UnknownLocaleError, ValueError) as e:
            raise ValueError(f"Unknown locale: {value!r}") from e
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_local_only(self) -> bool:
        """Check if sharing to external services is disabled."""
        return self.storage_mode == "local"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
