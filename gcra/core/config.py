from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Rate limiter settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # GCRA parameters: one unit of quantity costs rate_limit_period_seconds,
    # and up to rate_limit_max_burst + 1 units may arrive at once.
    rate_limit_period_seconds: float = 1.0
    rate_limit_max_burst: int = 10

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "gcra:"
    redis_reconnect_on_readonly: bool = True  # Reconnect once after a failover

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("rate_limit_period_seconds")
    @classmethod
    def validate_period_positive(cls, v: float) -> float:
        """Validate the rate period is positive."""
        if v <= 0:
            raise ValueError("rate_limit_period_seconds must be positive")
        return v

    @field_validator("rate_limit_max_burst")
    @classmethod
    def validate_burst_non_negative(cls, v: int) -> int:
        """Validate the burst is not negative."""
        if v < 0:
            raise ValueError("rate_limit_max_burst must be at least 0")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate the log format is one we know how to configure."""
        v = v.strip().lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
