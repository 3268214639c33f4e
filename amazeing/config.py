"""
Amazeing - Configuration

Settings loaded from environment variables (and an optional .env file).
"""

from pathlib import Path
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Amazeing"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "production"] = "development"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Generator
    GENERATOR_MAX_ATTEMPTS: int = 50
    GENERATOR_MAX_ITERATIONS: int = 50_000
    GENERATOR_SHUFFLE_CHANCE: float = 0.3

    # Session
    HISTORY_CAPACITY: int = 50
    HINT_LENGTH: int = 3

    # Levels
    LEVELS_DIR: str = str(BASE_DIR / "levels")
    PACK_FILES: str = "pack1.json,pack2.json,pack3.json,pack4.json"
    SAMPLE_LEVELS_PER_PACK: int = 15

    # Storage
    STORAGE_BACKEND: Literal["memory", "json", "redis"] = "json"
    STORAGE_PATH: str = str(BASE_DIR / "data" / "amazeing_storage.json")
    STORAGE_KEY_PREFIX: str = "amazeing_"
    REDIS_URL: str = "redis://localhost:6379"

    @field_validator("GENERATOR_SHUFFLE_CHANCE")
    @classmethod
    def validate_shuffle_chance(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"GENERATOR_SHUFFLE_CHANCE must be within [0, 1], got: {value}")
        return value

    @field_validator("GENERATOR_MAX_ATTEMPTS", "GENERATOR_MAX_ITERATIONS", "HISTORY_CAPACITY", "HINT_LENGTH")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"value must be positive, got: {value}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {value}")
        return level

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def pack_files_list(self) -> list[str]:
        """Parses PACK_FILES into a list."""
        return [name.strip() for name in self.PACK_FILES.split(",") if name.strip()]

    @property
    def levels_path(self) -> Path:
        return Path(self.LEVELS_DIR)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()


settings = get_settings()
