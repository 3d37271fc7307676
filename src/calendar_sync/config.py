"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8765  # WebSocket sync channel
    http_port: int = 8080  # Health endpoints

    # Restrict the sync channel to one request path; None accepts any path
    ws_path: Optional[str] = None

    # Protocol-level keepalive, handled by the websockets library
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0

    max_message_size: int = 1024 * 1024

    # Shutdown settings
    shutdown_timeout: float = 5.0  # Seconds to wait for connections to close gracefully

    log_level: str = "INFO"

    def is_valid_path(self, path: str) -> bool:
        """
        Check if a request path is accepted for the sync channel.

        Args:
            path: The URL path, with or without a query string.

        Returns:
            True if no path restriction is configured or the path matches it.
        """
        if self.ws_path is None:
            return True
        return path.split("?", 1)[0] == self.ws_path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
