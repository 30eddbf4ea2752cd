"""Application settings and configuration management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Look for .env file in the project root, then the current working directory
env_file = Path(__file__).parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv(".env", verbose=False)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Database Configuration
    database_path: str = Field(
        default="data/vocabulary.db", alias="VOCAB_SRS_DATABASE_PATH"
    )

    # Review Configuration
    session_cap: int = Field(default=20, ge=1, alias="VOCAB_SRS_SESSION_CAP")
    initial_ease_factor: float = Field(
        default=2.3, ge=1.3, alias="VOCAB_SRS_INITIAL_EASE_FACTOR"
    )

    # User Configuration
    user_id: str = Field(default="local", alias="VOCAB_SRS_USER_ID")
    native_language: str = Field(default="en", alias="VOCAB_SRS_NATIVE_LANGUAGE")
    target_language: str = Field(default="es", alias="VOCAB_SRS_TARGET_LANGUAGE")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="VOCAB_SRS_LOG_LEVEL")
    log_file: str = Field(default="logs/vocab_srs.log", alias="VOCAB_SRS_LOG_FILE")

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


def get_env_var(key: str, default: Any = None) -> Any:
    """Get environment variable with fallback to default."""
    return os.getenv(key, default)
