"""
Configuration management using environment variables.
Holds the credential, pagination, storage and logging settings with
validation and defaults.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """
    Parse a token lifetime such as ``"1d"``, ``"12h"``, ``"30m"`` or ``"900"``.

    Args:
        value: Duration string; a bare number is read as seconds

    Returns:
        Parsed duration

    Raises:
        ValueError: If the string is not a positive duration
    """
    match = _DURATION_PATTERN.match(str(value).lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


class AppConfig(BaseSettings):
    """
    Configuration class for the catalog core.
    Uses pydantic BaseSettings for environment variable management.

    The instance is frozen: it is read once at startup and handed to each
    component at construction.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="bookshelf")

    # Credentials
    jwt_secret: Optional[str] = Field(default=None)
    jwt_expires_in: str = Field(default="1d")
    bcrypt_salt_rounds: int = Field(default=10)

    # Pagination
    default_page_limit: int = Field(default=10)
    max_page_limit: int = Field(default=100)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Runtime
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_expires_in(cls, v):
        """Ensure the token lifetime parses."""
        parse_duration(v)
        return v

    @field_validator("bcrypt_salt_rounds")
    @classmethod
    def validate_salt_rounds(cls, v):
        """bcrypt accepts cost factors 4 through 31."""
        if v < 4 or v > 31:
            raise ValueError("bcrypt_salt_rounds must be between 4 and 31")
        return v

    @field_validator("default_page_limit", "max_page_limit")
    @classmethod
    def validate_page_limit(cls, v):
        """Ensure page sizes are positive."""
        if v < 1:
            raise ValueError("page limits must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @model_validator(mode="after")
    def validate_page_bounds(self):
        if self.default_page_limit > self.max_page_limit:
            raise ValueError("default_page_limit cannot exceed max_page_limit")
        return self

    @property
    def token_lifetime(self) -> timedelta:
        """Token lifetime as a timedelta."""
        return parse_duration(self.jwt_expires_in)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


# Global configuration instance, read by the entry points only
config = AppConfig()
