# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Optional env vars (.env):
      - DATABASE_URL (defaults to a local SQLite file; Postgres URLs are
        opened with sslmode=require and a single pooled connection)
      - CART_KEY_PREFIX (snapshot key prefix, key = "<prefix>-<cart_id>")
      - CART_ID_LENGTH (length of generated cart identifiers)
      - LOG_LEVEL
    """

    PROJECT_NAME: str = "Cart State Service"
    API_V1_STR: str = "/api/v1"

    # Snapshot storage
    DATABASE_URL: str = "sqlite:///./carts.db"

    # Cart snapshots
    CART_KEY_PREFIX: str = "cart"
    CART_ID_LENGTH: int = 12

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://0.0.0.0:3000",
        "http://[::1]:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
