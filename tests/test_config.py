"""
Tests for API configuration settings.
"""

import pytest
from pydantic import ValidationError

from library_api.config import APIConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove settings that may leak in from the developer's shell."""
    for name in ("PORT", "HOST", "DEBUG", "MONGODB_URL", "LOG_LEVEL", "LOG_FORMAT", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Test defaults match the local development setup."""
    settings = APIConfig(_env_file=None)

    assert settings.port == 5000
    assert settings.host == "0.0.0.0"
    assert settings.mongodb_url == "mongodb://localhost:27017"
    assert settings.cors_origins == ["*"]
    assert settings.cors_allow_credentials is False
    assert settings.log_level == "INFO"
    assert settings.log_file is None


def test_environment_overrides(monkeypatch):
    """Test port and connection string come from the environment."""
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("MONGODB_URL", "mongodb+srv://cluster0.example.mongodb.net")
    monkeypatch.setenv("log_format", "JSON")

    settings = APIConfig(_env_file=None)

    assert settings.port == 8080
    assert settings.mongodb_url == "mongodb+srv://cluster0.example.mongodb.net"
    assert settings.log_format == "json"


def test_env_file(tmp_path):
    """Test values are read from a .env file."""
    env_file = tmp_path / ".env"
    env_file.write_text("PORT=5050\nMONGODB_URL=mongodb://mongo:27017\n")

    settings = APIConfig(_env_file=str(env_file))

    assert settings.port == 5050
    assert settings.mongodb_url == "mongodb://mongo:27017"


def test_log_level_is_normalized():
    assert APIConfig(_env_file=None, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize("overrides", [
    {"log_level": "verbose"},
    {"log_format": "xml"},
    {"port": 0},
    {"port": 70000},
])
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        APIConfig(_env_file=None, **overrides)
