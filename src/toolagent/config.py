"""
Configuration management for the toolagent demo.

This module provides a Settings class that loads configuration from environment
variables (prefix ``TOOLAGENT_``) or a ``.env`` file, allowing the model
provider to be switched without code changes.
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Provider endpoint
    scheme: str = "https"
    host: str = "api.openai.com"
    port: int | None = None
    base_path: str = "/v1"
    api_key: str = ""

    # Model settings
    model: str = "gpt-4o-mini"
    timeout: float = 30.0
    temperature: float | None = None
    stream: bool = True
    extra_body: dict[str, Any] = Field(default_factory=dict)  # JSON in the env var

    # Conversation settings
    system_prompt: str | None = None
    max_iterations: int = 10
    tool_timeout: float | None = 30.0
    tool_failure_message: str | None = None  # fixed text instead of error details
    weather_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"
    log_file: str = "toolagent.log"

    model_config = SettingsConfigDict(
        env_prefix="TOOLAGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def base_url(self) -> str:
        """Full API base URL assembled from scheme, host, port and base path."""
        netloc = self.host if self.port is None else f"{self.host}:{self.port}"
        path = self.base_path if self.base_path.startswith("/") else f"/{self.base_path}"
        return f"{self.scheme}://{netloc}{path.rstrip('/')}"


def get_settings(**overrides: Any) -> Settings:
    """Get the application settings instance."""
    return Settings(**overrides)
