# stockpile/core/config.py
from typing import Optional
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator

# Locate the .env file relative to the project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"

PLACEHOLDER_SECRETS = {"change-me", "changeme", "secret", "dev-secret"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), extra="ignore")

    # Application
    PROJECT_NAME: str = "Stockpile"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_CREATE_ALL: bool = False

    # CORS
    CORS_ORIGIN: str = "http://localhost:8080"

    # Pagination
    PAGINATION_MAX_LIMIT: int = 500

    # Subscription gate
    SUBSCRIPTION_GATE_FAIL_CLOSED: bool = False
    TRIAL_PERIOD_DAYS: int = 60

    # Peach Payments
    PEACH_ENTITY_ID: Optional[str] = None
    PEACH_ACCESS_TOKEN: Optional[str] = None
    PEACH_WEBHOOK_SECRET: Optional[str] = None
    PEACH_BASE_URL: str = "https://eu-prod.oppwa.com"  # or https://test.oppwa.com for testing

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def only_hmac_algorithm(cls, v: str) -> str:
        if v != "HS256":
            raise ValueError("JWT_ALGORITHM must be HS256")
        return v

    @field_validator("PAGINATION_MAX_LIMIT")
    @classmethod
    def positive_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("PAGINATION_MAX_LIMIT must be at least 1")
        return v

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        if self.ENVIRONMENT in ("staging", "production"):
            secret = self.JWT_SECRET_KEY
            if secret.lower() in PLACEHOLDER_SECRETS or len(secret) < 32:
                raise ValueError("JWT_SECRET_KEY must be a random string of at least 32 characters")
        return self


settings = Settings()
