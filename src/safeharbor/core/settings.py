"""Application settings and configuration.

This module defines all configuration options for the SafeHarbor moderation
service. Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    External providers are enabled only when their API key is present.
    """

    # Application metadata
    app_name: str = Field(default="SafeHarbor Moderation", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration (audit log and human review queue)
    database_url: str = Field(default="sqlite:///./safeharbor.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Result cache
    cache_enabled: bool = Field(default=True, alias="MODERATION_CACHE_ENABLED")
    cache_ttl_minutes: float = Field(default=30.0, alias="MODERATION_CACHE_TTL_MINUTES")

    # Lexical scoring
    fast_track_max_length: int = Field(default=500, alias="FAST_TRACK_MAX_LENGTH")
    pattern_confidence: float = Field(default=0.8, alias="PATTERN_CONFIDENCE")
    pattern_weight: float = Field(default=1.0, alias="PATTERN_WEIGHT")
    # Per-category base weights, merged over the built-in defaults.
    category_weights: dict[str, int] = Field(default_factory=dict, alias="CATEGORY_WEIGHTS")

    # External text classifiers
    classifier_timeout_seconds: float = Field(default=5.0, alias="CLASSIFIER_TIMEOUT_SECONDS")
    aggregation_deadline_seconds: float = Field(
        default=8.0,
        alias="AGGREGATION_DEADLINE_SECONDS",
    )
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_moderation_url: str = Field(
        default="https://api.openai.com/v1/moderations",
        alias="OPENAI_MODERATION_URL",
    )
    openai_moderation_model: str = Field(
        default="omni-moderation-latest",
        alias="OPENAI_MODERATION_MODEL",
    )
    openai_weight: float = Field(default=0.4, alias="OPENAI_WEIGHT")
    perspective_api_key: str | None = Field(default=None, alias="PERSPECTIVE_API_KEY")
    perspective_url: str = Field(
        default="https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze",
        alias="PERSPECTIVE_URL",
    )
    perspective_weight: float = Field(default=0.3, alias="PERSPECTIVE_WEIGHT")
    perspective_threshold: float = Field(default=0.7, alias="PERSPECTIVE_THRESHOLD")

    # Image moderation
    google_vision_api_key: str | None = Field(default=None, alias="GOOGLE_VISION_API_KEY")
    google_vision_url: str = Field(
        default="https://vision.googleapis.com/v1/images:annotate",
        alias="GOOGLE_VISION_URL",
    )
    image_text_weight: float = Field(default=0.3, alias="IMAGE_TEXT_WEIGHT")

    # Circuit breaker shared by all providers
    breaker_failure_threshold: int = Field(default=5, alias="BREAKER_FAILURE_THRESHOLD")
    breaker_recovery_seconds: float = Field(default=60.0, alias="BREAKER_RECOVERY_SECONDS")
    breaker_success_threshold: int = Field(default=2, alias="BREAKER_SUCCESS_THRESHOLD")

    # Longest the request path waits on audit and review-queue writes
    escalation_timeout_seconds: float = Field(default=2.0, alias="ESCALATION_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def cache_ttl_seconds(self) -> float:
        """Return the cache TTL in seconds."""
        return self.cache_ttl_minutes * 60

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for migration tooling."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def enabled_providers(self) -> dict[str, bool]:
        """Return which external providers have credentials configured."""
        return {
            "openai": bool(self.openai_api_key),
            "perspective": bool(self.perspective_api_key),
            "google_vision": bool(self.google_vision_api_key),
        }


settings = Settings()  # type: ignore[call-arg]
