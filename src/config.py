"""Application settings loaded from the environment.

Uses pydantic-settings for validation. Values come from environment variables
(RABBIT_URL, QUEUE_NAME, RABBIT_HOSTS, ...) and, when present, a .env file in the working
directory.
"""

from typing import Any

from pydantic import AmqpDsn, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the consumer (app name, broker URL, queue name)."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    app_name: str = Field(default="AMQP Message Consumer")
    rabbit_url: AmqpDsn | None = Field(None, description="Full broker URL; takes precedence over hosts")
    queue_name: str | None = Field(None, description="Queue to consume from")
    rabbit_hosts: list[str] | None = Field(None, description="Broker hosts (JSON list) for the legacy URL builder")
    rabbit_username: str | None = Field(None, description="Broker username for the legacy URL builder")
    rabbit_password: str | None = Field(None, description="Broker password for the legacy URL builder")
    drain_timeout: float | None = Field(None, description="Seconds close() waits for in-flight messages")

    def consumer_config(self) -> dict[str, Any]:
        """Return the settings as an Application config dict, dropping unset values."""
        config = self.model_dump(exclude_none=True, exclude={"app_name"})
        if "rabbit_url" in config:
            config["rabbit_url"] = str(self.rabbit_url)
        for key in ("hosts", "username", "password"):
            if f"rabbit_{key}" in config:
                config[key] = config.pop(f"rabbit_{key}")
        return config


def get_settings() -> Settings:
    """Return the loaded settings instance."""
    return Settings()
