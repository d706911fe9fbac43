from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from exa_websets import __version__


class Settings(BaseSettings):
    """Server settings loaded from environment variables.

    All settings can be configured via ``WEBSETS_*`` environment variables or
    a .env file. The API key is read from ``EXA_API_KEY``. Durations are in
    milliseconds.
    """

    # Exa credentials
    api_key: str = Field(default="", validation_alias="EXA_API_KEY")

    # Endpoints
    base_url: str = "https://api.exa.ai/websets/v0"
    search_base_url: str = "https://api.exa.ai"

    # Request pipeline
    timeout: int = 30000  # Per-request timeout
    retry_attempts: int = 3  # Retries after the first attempt
    retry_delay: int = 1000  # Base backoff delay
    max_retry_delay: int = 10000  # Backoff cap

    # Rate limiting (token bucket)
    rate_limit: float = 10  # Requests per second
    burst_size: Optional[float] = None  # Defaults to 2x rate_limit

    # Circuit breaker
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60000  # Time spent open before probing
    circuit_breaker_monitoring_period: int = 60000

    # HTTP client
    user_agent: str = f"exa-websets-mcp/{__version__}"
    extra_headers: dict[str, str] = {}
    max_connections: int = 100
    max_keepalive_connections: int = 20
    max_cached_clients: int = 16  # Per-key clients kept by create_services
    enable_logging: bool = True  # Trace every outbound request/response

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # MCP transport
    transport: str = "stdio"  # stdio | streamable-http | sse

    @field_validator("base_url", "search_base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate endpoints are absolute http(s) URLs."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Valid base URL is required")
        return v.rstrip("/")

    @field_validator("timeout", "retry_delay", "circuit_breaker_timeout", "circuit_breaker_monitoring_period")
    @classmethod
    def validate_duration_positive(cls, v: int) -> int:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Retry attempts must be non-negative")
        return v

    @field_validator("rate_limit")
    @classmethod
    def validate_rate_limit(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Rate limit must be positive")
        return v

    @field_validator("burst_size")
    @classmethod
    def validate_burst_size(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 1:
            raise ValueError("Burst size must be at least 1")
        return v

    @field_validator("circuit_breaker_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Circuit breaker threshold must be positive")
        return v

    @field_validator("max_cached_clients")
    @classmethod
    def validate_max_cached_clients(cls, v: int) -> int:
        if v < 1:
            raise ValueError("At least one API client must be cached")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("stdio", "streamable-http", "sse"):
            raise ValueError("transport must be one of: stdio, streamable-http, sse")
        return v

    @model_validator(mode="after")
    def validate_retry_bounds(self) -> "Settings":
        """Backoff cap must sit above the base delay."""
        if self.max_retry_delay <= self.retry_delay:
            raise ValueError("Max retry delay must be greater than retry delay")
        return self

    @property
    def effective_burst_size(self) -> float:
        return self.burst_size if self.burst_size is not None else self.rate_limit * 2

    def with_changes(self, **changes: Any) -> "Settings":
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return Settings.model_validate(data)

    model_config = SettingsConfigDict(
        env_prefix="WEBSETS_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


# Global settings instance
settings = Settings()
