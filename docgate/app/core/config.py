from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Remote document API
    crpt_base_url: str = "https://ismp.crpt.ru/api/v3"
    crpt_create_endpoint: str = "/lk/documents/create"

    # Use the in-process mock transport instead of the remote API
    mock_transport: bool = False

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0  # Time to establish connection
    httpx_read_timeout: float = 30.0  # Time to read response data
    httpx_write_timeout: float = 10.0  # Time to send request data
    httpx_pool_timeout: float = 5.0  # Time to acquire connection from pool
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10
    httpx_http2: bool = False

    # Rate limiting settings (fixed window)
    rate_limit_time_unit: Literal["second", "minute", "hour", "day"] = "second"
    rate_limit_max_requests: int = 10
    # Overrides rate_limit_time_unit when set
    rate_limit_window_seconds: float | None = None
    # None waits for the next window, 0 rejects immediately
    rate_limit_acquire_timeout: float | None = None

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @property
    def rate_limit_window(self) -> float:
        """Window length in seconds.

        Priority:
        1. rate_limit_window_seconds
        2. rate_limit_time_unit
        """
        if self.rate_limit_window_seconds is not None:
            return self.rate_limit_window_seconds
        from docgate.app.services.rate_limiter import TimeUnit

        return TimeUnit(self.rate_limit_time_unit).seconds

    @property
    def crpt_create_url(self) -> str:
        return f"{self.crpt_base_url.rstrip('/')}{self.crpt_create_endpoint}"

    @field_validator("rate_limit_max_requests")
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator("rate_limit_window_seconds")
    @classmethod
    def validate_window_positive(cls, v: float | None) -> float | None:
        """Validate the window override is positive."""
        if v is not None and v <= 0:
            raise ValueError("rate_limit_window_seconds must be positive")
        return v

    @field_validator("rate_limit_acquire_timeout")
    @classmethod
    def validate_acquire_timeout(cls, v: float | None) -> float | None:
        """Validate acquire timeout is not negative."""
        if v is not None and v < 0:
            raise ValueError("rate_limit_acquire_timeout must not be negative")
        return v

    @field_validator(
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("httpx_max_connections", "httpx_max_keepalive_connections")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        """Validate pool sizes are positive."""
        if v < 1:
            raise ValueError("pool size values must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_prefix="DOCGATE_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()
