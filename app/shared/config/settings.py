# 📄 File: app/shared/config/settings.py
#
# 🧭 Purpose (Layman Explanation):
# The main configuration center that reads all settings from environment variables
# and provides them to the rest of our Plant Monitoring app in an organized way.
#
# 🧪 Purpose (Technical Summary):
# Pydantic-based settings management with environment variable loading,
# validation, and type safety for database pooling, retry, transaction and health parameters.
#
# 🔗 Dependencies:
# - pydantic-settings for configuration management
# - python-dotenv for .env file loading
# - typing for type hints
#
# 🔄 Connected Modules / Calls From:
# - app.main (application startup)
# - app.shared.infrastructure.database (connection, transaction)
# - app.monitoring.health_checks

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ISOLATION_LEVELS = ["READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety. Settings are loaded
    from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================

    APP_NAME: str = Field(default="Plant Monitoring API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    APP_DESCRIPTION: str = Field(
        default="Plant and soil-data monitoring backend",
        description="Application description"
    )
    ENVIRONMENT: str = Field(default="development", description="Runtime environment")
    DEBUG: bool = Field(default=False, description="Debug mode flag")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log output format (json or text)")
    LOG_FILE: Optional[str] = Field(None, description="Optional log file path")

    # =========================================================================
    # SERVER CONFIGURATION
    # =========================================================================

    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=3000, description="Server port")
    RELOAD: bool = Field(default=False, description="Auto-reload on changes")
    WORKERS: int = Field(default=1, description="Number of worker processes")

    # CORS Settings
    CORS_ORIGINS: str = Field(default="*", description="CORS allowed origins")
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True, description="CORS allow credentials")

    # =========================================================================
    # DATABASE CONFIGURATION
    # =========================================================================

    DATABASE_URL: Optional[str] = Field(None, description="Database connection URL")
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="plant_monitoring", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")

    # Connection Pool Settings
    DB_POOL_SIZE: int = Field(default=20, description="Database pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database pool overflow")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Seconds to wait for a pooled connection")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time")
    DB_COMMAND_TIMEOUT: float = Field(default=60.0, description="Per-statement timeout (seconds)")
    DB_PROBE_TIMEOUT: float = Field(default=5.0, description="Liveness probe timeout (seconds)")

    # =========================================================================
    # RESILIENCE SETTINGS
    # =========================================================================

    DB_RETRY_MAX_ATTEMPTS: int = Field(default=3, description="Attempts per retried operation")
    DB_RETRY_BASE_DELAY: float = Field(default=0.1, description="Base backoff delay (seconds)")

    DB_TRANSACTION_MAX_WAIT: float = Field(
        default=5.0,
        description="Max seconds to wait for a transaction to start"
    )
    DB_TRANSACTION_TIMEOUT: float = Field(
        default=10.0,
        description="Max seconds for a whole transaction"
    )
    DB_TRANSACTION_ISOLATION_LEVEL: str = Field(
        default="READ COMMITTED",
        description="Transaction isolation level"
    )

    # =========================================================================
    # HEALTH CHECK SETTINGS
    # =========================================================================

    HEALTH_MEMORY_THRESHOLD: float = Field(
        default=90.0,
        description="Memory percentage above which the service is unhealthy"
    )
    HEALTH_MEMORY_LIMIT_MB: Optional[int] = Field(
        None,
        description="Memory budget for the percentage (e.g. container limit), defaults to system memory"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed_environments = ["development", "staging", "production", "test"]
        if v.lower() not in allowed_environments:
            raise ValueError(f"Environment must be one of {allowed_environments}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of {allowed_levels}")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()

    @field_validator("DB_TRANSACTION_ISOLATION_LEVEL")
    @classmethod
    def validate_isolation_level(cls, v: str) -> str:
        """Validate transaction isolation level."""
        normalized = " ".join(v.replace("_", " ").upper().split())
        if normalized not in ISOLATION_LEVELS:
            raise ValueError(f"Isolation level must be one of {ISOLATION_LEVELS}")
        return normalized

    @field_validator("DB_RETRY_MAX_ATTEMPTS", "DB_POOL_SIZE")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator(
        "DB_PROBE_TIMEOUT",
        "DB_TRANSACTION_MAX_WAIT",
        "DB_TRANSACTION_TIMEOUT",
        "DB_COMMAND_TIMEOUT",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be greater than zero")
        return v

    @field_validator("HEALTH_MEMORY_LIMIT_MB")
    @classmethod
    def validate_memory_limit(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Memory limit must be greater than zero")
        return v

    @field_validator("DB_RETRY_BASE_DELAY")
    @classmethod
    def validate_base_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Base delay must not be negative")
        return v

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================

    @property
    def database_url(self) -> str:
        """Get the database URL, preferring explicit DATABASE_URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    @property
    def debug(self) -> bool:
        """Alias for DEBUG to allow access as settings.debug"""
        return self.DEBUG

    @property
    def health_memory_limit_bytes(self) -> Optional[int]:
        if self.HEALTH_MEMORY_LIMIT_MB is None:
            return None
        return self.HEALTH_MEMORY_LIMIT_MB * 1024 * 1024

    @property
    def database_pool_size(self) -> int:
        return self.DB_POOL_SIZE

    @property
    def database_max_overflow(self) -> int:
        return self.DB_MAX_OVERFLOW

    @property
    def database_pool_timeout(self) -> int:
        return self.DB_POOL_TIMEOUT

    @property
    def database_pool_recycle(self) -> int:
        return self.DB_POOL_RECYCLE


# ============================================================================
# SETTINGS FACTORY
# ============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Uses lru_cache to ensure settings are loaded only once
    and reused throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
