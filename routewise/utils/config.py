"""Configuration management using Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    google_maps_api_key: Optional[str] = None

    # App Configuration
    environment: str = "development"
    log_level: str = "INFO"

    # Provider Settings
    request_timeout: float = 10.0
    directions_request_delay: float = 0.1  # Google allows ~10 requests per second
    provider_max_attempts: int = 3

    # Route Constraints
    default_max_daily_drive_hours: float = 8.0
    default_max_daily_distance_km: float = 800.0
    max_split_depth: int = 4

    class Config:
        """Pydantic configuration."""
        env_file = os.path.join(os.path.dirname(__file__), "..", ".env")
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
