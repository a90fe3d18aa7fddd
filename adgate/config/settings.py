"""
Ads Decision Gate
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
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
    db: str = Field(default="ads_decisions", alias="database", description="Database name")
    user: str = Field(default="ads", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    create_schema: bool = Field(default=False, description="Create tables and seed platforms on startup")
    url: Optional[str] = Field(default=None, description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class IngestionSettings(BaseSettings):
    """Spreadsheet Ingestion Configuration"""

    model_config = SettingsConfigDict(env_prefix="INGEST_")

    batch_size: int = Field(default=1000, ge=1, description="Rows per insert/upsert transaction")
    sample_limit: int = Field(default=50, ge=0, description="Max skipped/error rows kept for review")
    read_chunk_size: int = Field(default=5000, ge=1, description="CSV rows parsed per read")
    flush_timeout_seconds: float = Field(default=60.0, gt=0, description="Deadline for one batch write")
    read_timeout_seconds: float = Field(default=60.0, gt=0, description="Deadline for one CSV chunk read")
    upload_dir: str = Field(default="./uploads/temp", description="Staging directory for uploads")
    max_upload_mb: int = Field(default=50, ge=1, description="Max upload size in megabytes")


class DecisionSettings(BaseSettings):
    """Decision Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="DECISION_")

    upsert_chunk_size: int = Field(default=1000, ge=1, description="Decisions per upsert statement")
    all_sellers_name: str = Field(default="All Sellers", description="Synthetic platform-wide seller name")


class ProductSyncSettings(BaseSettings):
    """External Products API Configuration"""

    model_config = SettingsConfigDict(env_prefix="PRODUCTS_API_")

    url: Optional[str] = Field(default=None, description="External products endpoint")
    key: Optional[SecretStr] = Field(default=None, description="API key sent as x-api-key")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")


class SecuritySettings(BaseSettings):
    """Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    ingestion_log_level: Optional[str] = Field(
        default=None, alias="INGESTION_LOG_LEVEL", description="Level for adgate.ingestion, inherits LOG_LEVEL"
    )
    decision_log_level: Optional[str] = Field(
        default=None, alias="DECISION_LOG_LEVEL", description="Level for adgate.decision, inherits LOG_LEVEL"
    )


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
    app_name: str = Field(default="ads-decision-gate", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    decision: DecisionSettings = Field(default_factory=DecisionSettings)
    product_sync: ProductSyncSettings = Field(default_factory=ProductSyncSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

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

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
