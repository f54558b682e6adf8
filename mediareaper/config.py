import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/mediareaper.db"
    master_key: Optional[str] = None
    api_token: Optional[str] = None
    probe_timeout: float = Field(default=10.0, ge=5.0, le=30.0)
    health_check_interval: int = Field(default=5, ge=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="MEDIAREAPER_", env_file=".env", extra="ignore")


settings = Settings()


def configure_logging(level: str = "INFO"):
    """Add a stream handler to the root logger if it has none, and set the level."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level.upper())


def require_api_token() -> str:
    """Return the configured API token or fail the boot."""
    if not settings.api_token:
        raise ConfigurationError("MEDIAREAPER_API_TOKEN must be set")
    return settings.api_token
