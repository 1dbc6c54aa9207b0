"""
Tests for configuration parsing.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from utilities.config import AppConfig, parse_duration


@pytest.mark.parametrize("value,expected", [
    ("1d", timedelta(days=1)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("900", timedelta(seconds=900)),
    (" 45S ", timedelta(seconds=45)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "0", "1w", "-5m", "soon"])
def test_parse_duration_rejects(value):
    with pytest.raises(ValueError):
        parse_duration(value)


class TestAppConfig:

    def test_defaults(self):
        config = AppConfig(_env_file=None)
        assert config.default_page_limit == 10
        assert config.max_page_limit == 100
        assert config.token_lifetime == timedelta(days=1)
        assert config.get_log_file_path() is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-env")
        monkeypatch.setenv("JWT_EXPIRES_IN", "2h")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = AppConfig(_env_file=None)
        assert config.jwt_secret == "from-env"
        assert config.token_lifetime == timedelta(hours=2)
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("overrides", [
        {"jwt_expires_in": "forever"},
        {"bcrypt_salt_rounds": 3},
        {"max_page_limit": 0},
        {"default_page_limit": 50, "max_page_limit": 20},
        {"log_format": "xml"},
    ])
    def test_rejects_invalid(self, overrides):
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, **overrides)

    def test_frozen(self):
        config = AppConfig(_env_file=None)
        with pytest.raises(ValidationError):
            config.max_page_limit = 5
