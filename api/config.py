"""
API configuration settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """HTTP server settings; catalog settings live in utilities.config."""

    # API Settings
    api_title: str = "Bookshelf Catalog API"
    api_version: str = "1.0.0"
    api_description: str = "Ownership-scoped authors, books and favorites for registered users"
    api_prefix: str = "/api/v1"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # CORS Settings
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="API_",
        extra="ignore",
    )


# Global config instance
config = APIConfig()
