"""Application configuration with validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Audit scoring engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Food Safety Audit Scoring Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Snowflake
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: str = "FOODSAFETYDB"
    SNOWFLAKE_SCHEMA: str = "PUBLIC"
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # Connection pool
    DB_POOL_MAX_SIZE: int = Field(default=10, ge=1, le=50)
    DB_POOL_ACQUIRE_TIMEOUT: float = Field(default=10.0, gt=0, le=120)
    DB_LOGIN_TIMEOUT: int = Field(default=15, ge=1, le=300)      # connection establish
    DB_NETWORK_TIMEOUT: int = Field(default=60, ge=1, le=600)
    DB_STATEMENT_TIMEOUT: int = Field(default=30, le=3600)       # per statement / request

    # Scoring
    DEFAULT_PASSING_GRADE: int = Field(default=83, ge=0, le=100)
    EXCLUSION_HISTORY_LIMIT: int = Field(default=20, ge=1, le=500)
    EXCLUSION_SEARCH_LIMIT: int = Field(default=500, ge=1, le=5000)

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_PASSING_GRADE: int = 3600  # 1 hour
    CACHE_RETRY_SECONDS: int = Field(default=30, ge=0, le=3600)  # wait after a failed ping

    @field_validator("DB_STATEMENT_TIMEOUT")
    @classmethod
    def validate_statement_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("DB_STATEMENT_TIMEOUT must be greater than 0")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has Snowflake credentials."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            missing = [
                name for name in ("SNOWFLAKE_ACCOUNT", "SNOWFLAKE_USER", "SNOWFLAKE_PASSWORD")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"Missing Snowflake settings in production: {', '.join(missing)}")
        return self

    @property
    def snowflake_connect_kwargs(self) -> dict:
        """Keyword arguments for snowflake.connector.connect()."""
        return {
            "account": self.SNOWFLAKE_ACCOUNT,
            "user": self.SNOWFLAKE_USER,
            "password": self.SNOWFLAKE_PASSWORD.get_secret_value() if self.SNOWFLAKE_PASSWORD else None,
            "warehouse": self.SNOWFLAKE_WAREHOUSE,
            "database": self.SNOWFLAKE_DATABASE,
            "schema": self.SNOWFLAKE_SCHEMA,
            "role": self.SNOWFLAKE_ROLE,
            "login_timeout": self.DB_LOGIN_TIMEOUT,
            "network_timeout": self.DB_NETWORK_TIMEOUT,
            "session_parameters": {
                "STATEMENT_TIMEOUT_IN_SECONDS": self.DB_STATEMENT_TIMEOUT,
            },
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
