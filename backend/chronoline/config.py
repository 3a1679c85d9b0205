"""
Configuration settings using Pydantic Settings.
"""

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

import os

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    DATABASE_PATH: str = "database/chronoline.db"

    JWT_SECRET: str = os.environ.get("JWT_SECRET") or "chronoline-dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_HASH_ROUNDS: int = 10

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024

    # Client-side settings
    API_BASE_URL: str = "http://localhost:3000/api"
    CLIENT_STORAGE_MODE: str = "api"
    LOCAL_DATABASE_PATH: str = "database/local-timelines.db"
    KEY_VALUE_PATH: str = ""
    DELETE_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @model_validator(mode="after")
    def resolve_relative_paths(self):
        db_path = Path(self.DATABASE_PATH)
        if not db_path.is_absolute():
            self.DATABASE_PATH = str((BASE_DIR / db_path).resolve())

        local_path = Path(self.LOCAL_DATABASE_PATH)
        if not local_path.is_absolute():
            self.LOCAL_DATABASE_PATH = str((BASE_DIR / local_path).resolve())

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    :return: Cached Settings instance
    :rtype: Settings
    """
    return Settings()


settings = get_settings()
