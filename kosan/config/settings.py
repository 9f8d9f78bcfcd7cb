"""
Environment configuration for the kos booking client.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import json
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Client settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    ENVIRONMENT: str = "development"

    # Backend API
    API_BASE_URL: str = "http://localhost:8081/api"
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # Proof-of-transfer uploads
    MAX_PROOF_UPLOAD_SIZE: int = 5 * 1024 * 1024
    ALLOWED_PROOF_CONTENT_TYPES: List[str] = Field(
        default=["image/jpeg", "image/png", "image/webp"]
    )

    # Cache
    CACHE_KEY_PREFIX: str = "kosan:"

    # Business rules mirrored from the backend for previews only
    DOWN_PAYMENT_RATIO: Decimal = Decimal("0.30")
    PENDING_BOOKING_EXPIRY_DAYS: int = 7

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"
    ENABLE_STRUCTURED_LOGGING: bool = False

    @field_validator("ALLOWED_PROOF_CONTENT_TYPES", mode="before")
    @classmethod
    def parse_content_types(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse ALLOWED_PROOF_CONTENT_TYPES from a JSON list or comma string"""
        if isinstance(v, str):
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [item.strip().lower() for item in v.split(",") if item.strip()]
        return v

    @field_validator("API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
