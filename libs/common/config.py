from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Jakarta"

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    # Seconds a SQLite writer waits for the database lock
    SQLITE_BUSY_TIMEOUT: int = 30

    # Auth
    # Placeholder keeps local/test runs working; real deployments override via env.
    JWT_SECRET: str = "test-jwt-secret"
    ADMIN_ROLES: list[str] = ["admin", "service_role"]

    # Background jobs
    REDIS_URL: str = "redis://localhost:6379/0"
    ARQ_QUEUE_NAME: str = "arq:orders"
    EXPIRY_SWEEP_BATCH_SIZE: int = 200

    # Payment gateway (Xendit invoice callbacks)
    XENDIT_CALLBACK_TOKEN: str = "test-callback-token"

    # Orders
    ORDER_CODE_PREFIX: str = "BLK"
    ORDER_PAYMENT_EXPIRY_HOURS: int = 24

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
