from __future__ import annotations

import sys
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./assessment.db"
    log_sql: bool = False

    # Server
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "json"
    allow_cors_origins: List[str] = ["*"]

    # Question catalog (empty = packaged data/questions.yml)
    catalog_path: str = ""

    # Rate limiting (limits grammar, per endpoint class)
    register_rate_limit: str = "5 per 5 minutes"
    answer_rate_limit: str = "30/minute"
    participant_rate_limit: str = "60/minute"
    rate_limit_sweep_seconds: int = 60

    # Progress engine
    submit_max_attempts: int = 3

    # Participant export (notification sink)
    export_url: str = ""
    export_secret: str = ""
    export_timeout_seconds: float = 5.0

    # Contact data encryption
    encryption_key: str = ""

    # Session cookie
    cookie_name: str = "participant_id"
    cookie_max_age_seconds: int = 60 * 60 * 24  # 1 day
    cookie_secure: bool = False

    model_config = SettingsConfigDict(env_prefix="ASSESSMENT_", env_file=".env", extra="ignore")

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v: str, info) -> str:
        """Refuse to start outside development without a contact-data key."""
        env = info.data.get("environment", "development")
        if env != "development" and not v:
            print(
                "\nFATAL: ASSESSMENT_ENCRYPTION_KEY is not set.\n"
                "   Participant contact data would be stored in plain text.\n"
                "   Generate one with: python -c \"from cryptography.fernet import Fernet; "
                "print(Fernet.generate_key().decode())\"\n",
                file=sys.stderr,
            )
            raise ValueError(
                "Encryption key is required in non-development environments. "
                "Set ASSESSMENT_ENCRYPTION_KEY env var."
            )
        return v

    @field_validator("submit_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("submit_max_attempts must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Module-level singleton for convenience
settings = get_settings()
