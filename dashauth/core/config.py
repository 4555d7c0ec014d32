from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Union
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Dashboard Accounts API"

    # Database Settings
    POSTGRES_USER: str = "user"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "dashboard_db"

    # Persistence calls must not block indefinitely
    DB_CONNECT_TIMEOUT_SECONDS: int = 5
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Field-level encryption (AES-256-GCM, key must be exactly 32 bytes)
    FIELD_ENCRYPTION_KEY: str = ""

    # Session tokens
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_DAYS: int = 7

    # Magic links
    MAGIC_LINK_KEY: str = ""
    MAGIC_LINK_TTL_MINUTES: int = 10
    MAGIC_LINK_STRATEGY: str = "derived"  # "derived" or "random"
    MAGIC_LINK_BASE_URL: str = "http://localhost:3000/account/verify"

    # Password reset
    PASSWORD_RESET_TTL_MINUTES: int = 10
    PASSWORD_RESET_BASE_URL: str = "http://localhost:3000/account/reset-password"

    # Brute-force lockout
    MAX_FAILED_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 10

    # Honor X-Forwarded-For only when a reverse proxy in front of the app sets it
    TRUST_FORWARDED_FOR: bool = False

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Outbound email (AWS SES)
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_SES_FROM_EMAIL: str = "noreply@localhost"
    AWS_SES_FROM_NAME: str = "Dashboard"

    # Redis Settings (for Celery task queue)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # CORS Settings - can be set as JSON string in .env
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[List[str], str]) -> List[str]:
        """Parse CORS origins from JSON string or list"""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, split by comma
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("MAGIC_LINK_STRATEGY")
    @classmethod
    def validate_magic_link_strategy(cls, v: str) -> str:
        if v not in ("derived", "random"):
            raise ValueError("MAGIC_LINK_STRATEGY must be 'derived' or 'random'")
        return v

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance (read once)."""
    return Settings()
