"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings pulled from GEOFORGE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEOFORGE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    # Map scale
    hex_size_km: float = Field(default=10.0, description="Distance across one hex in km")


settings = Settings()
