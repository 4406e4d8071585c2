# marketplace/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (PostgreSQL in production, sqlite:// for local runs)
      - JWT_SECRET (secret shared with the identity service that issues tokens)

    Optional:
      - PRICING_POLICY: "client" trusts submitted totals, "catalog" recomputes
      - ORDER_PAY_REQUIRES_ACCESS: restrict /pay to buyer, seller or admin
    """

    PROJECT_NAME: str = "Import Ventures Marketplace API"
    API_PREFIX: str = "/api"

    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DATABASE_REQUIRE_SSL: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # JWT verification (tokens are issued by the identity service)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Orders
    DEFAULT_CURRENCY: Literal["INR", "USD", "EUR", "GBP", "AED"] = "INR"
    PRICING_POLICY: Literal["client", "catalog"] = "client"
    ORDER_PAY_REQUIRES_ACCESS: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
