"""Application configuration using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # Database
    database_url: str = Field(default="sqlite:///./scoped_settings.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Alias registry (YAML with an "aliases" mapping)
    settings_registry_file: str = Field(default="settings.yaml", alias="SETTINGS_REGISTRY_FILE")

    # Raise SettingUndefined instead of falling back to defaults
    require_value: bool = Field(default=False, alias="REQUIRE_VALUE")

    # Security
    api_token: str = Field(default="", alias="API_TOKEN")  # empty disables write protection

    # Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


config = Config()
