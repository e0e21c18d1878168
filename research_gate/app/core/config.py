from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Auto-research budget
    auto_research_max_triggers: int = 10  # Per-session ceiling on successful triggers
    auto_research_ttl_seconds: int = 86400  # Window after which a counter is forgotten (24h)
    confidence_threshold: int = 90  # Below this percentage research is offered
    research_timeout_seconds: float = 30.0  # Max wait for both research calls

    # Rate limit backend
    rate_limit_fail_closed: bool = (
        False  # If True, deny triggers when Redis is unavailable
    )

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"

    # Documentation lookup provider
    docs_api_key: str = ""
    docs_base_url: str = "https://context7.com/api/v1"
    docs_timeout: float = 20.0

    # Web search provider
    search_api_key: str = ""
    search_base_url: str = "https://api.search.brave.com/res/v1/web"
    search_timeout: float = 20.0
    search_max_results: int = 5

    # Use simulated providers (development and tests)
    research_mock_providers: bool = False

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0  # Time to establish connection
    httpx_read_timeout: float = 30.0  # Time to read response data
    httpx_write_timeout: float = 10.0  # Time to send request data
    httpx_pool_timeout: float = 5.0  # Time to acquire connection from pool
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 50
    httpx_max_keepalive_connections: int = 10

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Recommendation decision log (JSON lines)
    recommendation_log_path: str = ".claude/logs/recommendations.jsonl"

    @field_validator("auto_research_max_triggers", "auto_research_ttl_seconds")
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator("confidence_threshold")
    @classmethod
    def validate_confidence_threshold(cls, v: int) -> int:
        """Validate threshold is a percentage."""
        if not 0 <= v <= 100:
            raise ValueError("confidence_threshold must be between 0 and 100")
        return v

    @field_validator(
        "research_timeout_seconds",
        "docs_timeout",
        "search_timeout",
        "httpx_connect_timeout",
        "httpx_read_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
