"""
Application settings - every value can be overridden through the environment
or a local .env file.
"""

import json
from typing import Any, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from a JSON list or a comma separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Community Project Records API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PORT: int = 8000
    CORS_ORIGINS: Any = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Document store
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: str = "community_records"

    # Object store (S3 or any S3-compatible endpoint)
    S3_BUCKET_NAME: str = "community-records"
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_PUBLIC_BASE_URL: Optional[str] = None

    # Report photographs
    REPORT_PHOTO_PREFIX: str = "reports"
    IMAGE_MAX_DIMENSION: int = 1920
    IMAGE_MAX_BYTES: int = 1024 * 1024

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v: Any) -> List[str]:
        return parse_cors_origins(v)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
