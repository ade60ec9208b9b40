"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from survey_flow.config import Settings


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self, monkeypatch):
        """Test optional settings fall back to their defaults."""
        for name in ("CLASSIFIER_TIMEOUT_SECONDS", "SURVEY_SOURCE", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(api_base_url="https://api.example.com", _env_file=None)

        assert settings.classifier_timeout_seconds == 10.0
        assert settings.api_timeout_seconds == 15.0
        assert settings.survey_source == "api"
        assert settings.log_level == "INFO"
        assert settings.session_timeout_minutes == 60

    def test_base_url_trailing_slash_stripped(self):
        settings = Settings(api_base_url="https://api.example.com/", _env_file=None)
        assert settings.api_base_url == "https://api.example.com"

    def test_base_url_must_be_http(self):
        """Test non-HTTP base URLs are rejected."""
        with pytest.raises(ValidationError):
            Settings(api_base_url="ftp://api.example.com", _env_file=None)

    def test_environment_normalized(self):
        settings = Settings(api_base_url="https://api.example.com", environment="PRODUCTION", _env_file=None)
        assert settings.environment == "production"
        assert settings.is_production
        assert not settings.is_development

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(api_base_url="https://api.example.com", environment="qa", _env_file=None)

    def test_log_level_normalized(self):
        settings = Settings(api_base_url="https://api.example.com", log_level="debug", _env_file=None)
        assert settings.log_level == "DEBUG"

    def test_survey_source(self):
        """Test survey source accepts api or local only."""
        settings = Settings(api_base_url="https://api.example.com", survey_source="LOCAL", _env_file=None)
        assert settings.survey_source == "local"

        with pytest.raises(ValidationError):
            Settings(api_base_url="https://api.example.com", survey_source="s3", _env_file=None)

    def test_classifier_timeout_must_be_finite_and_positive(self):
        """Test the classifier timeout is bounded."""
        with pytest.raises(ValidationError):
            Settings(api_base_url="https://api.example.com", classifier_timeout_seconds=0, _env_file=None)
        with pytest.raises(ValidationError):
            Settings(api_base_url="https://api.example.com", classifier_timeout_seconds=600, _env_file=None)

    def test_allowed_origins_list(self):
        settings = Settings(
            api_base_url="https://api.example.com",
            allowed_origins="https://a.example.com, https://b.example.com",
            _env_file=None,
        )
        assert settings.get_allowed_origins_list() == ["https://a.example.com", "https://b.example.com"]
