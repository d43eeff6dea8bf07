"""
Hotel Onboarding Core
Centralized Configuration Management

Pydantic settings with environment variable support for the onboarding
engines, their persistence layer and the downstream notification channel.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="hotel_onboarding", alias="database", description="Database name")
    user: str = Field(default="onboarding", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    pool_size: int = Field(default=20, description="Connection pool size")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Database URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Configuration (upload ticket store)"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class KafkaSettings(BaseSettings):
    """Kafka Configuration for downstream system-update notifications"""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = Field(default="localhost:9092", description="Kafka bootstrap servers")
    client_id: str = Field(default="hotel-onboarding", description="Producer client id")
    notifications_enabled: bool = Field(default=False, description="Publish system updates to Kafka")
    send_timeout_seconds: float = Field(default=10.0, description="Timeout for a single publish")

    topics_system_updates: str = Field(default="hotel-system-updates", description="System updates topic")


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    prometheus_port: int = Field(default=9090, alias="PROMETHEUS_PORT", description="Prometheus port")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class OnboardingSettings(BaseSettings):
    """Onboarding session, validation and integration tuning"""

    model_config = SettingsConfigDict(env_prefix="ONBOARDING_")

    session_ttl_days: int = Field(default=7, description="Days before an ACTIVE session expires")
    total_steps: int = Field(default=14, description="Number of wizard steps shown to the owner")
    strict_validation: bool = Field(
        default=False,
        description="Reject step updates that fail validation instead of storing them",
    )
    required_steps: List[str] = Field(
        default=["property-info"],
        description="Steps that must validate cleanly before a session can be committed",
    )
    sweep_interval_seconds: int = Field(default=3600, description="Expiry sweep interval")
    legacy_image_quality_score: float = Field(
        default=40.0,
        description="Quality sub-score assigned to images imported from legacy records",
    )
    upload_ticket_ttl_seconds: int = Field(default=3600, description="Upload ticket retention")

    @field_validator("legacy_image_quality_score")
    @classmethod
    def validate_quality_score(cls, v: float) -> float:
        """Quality sub-scores live on a 0-100 scale"""
        if not 0 <= v <= 100:
            raise ValueError("legacy_image_quality_score must be between 0 and 100")
        return v


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="hotel-onboarding", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    onboarding: OnboardingSettings = Field(default_factory=OnboardingSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience function for accessing settings
settings = get_settings()
