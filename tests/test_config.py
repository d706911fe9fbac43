"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from exa_websets.app.core.config import Settings


class TestDefaults:
    """Test default configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("EXA_API_KEY", raising=False)
        config = Settings(_env_file=None)

        assert config.api_key == ""
        assert config.base_url == "https://api.exa.ai/websets/v0"
        assert config.timeout == 30000
        assert config.retry_attempts == 3
        assert config.retry_delay == 1000
        assert config.max_retry_delay == 10000
        assert config.rate_limit == 10
        assert config.effective_burst_size == 20
        assert config.circuit_breaker_threshold == 5
        assert config.circuit_breaker_timeout == 60000
        assert config.max_cached_clients == 16
        assert config.transport == "stdio"


class TestEnvironment:
    """Test environment variable loading."""

    def test_api_key_from_exa_env(self, monkeypatch):
        monkeypatch.setenv("EXA_API_KEY", "from-env")
        assert Settings(_env_file=None).api_key == "from-env"

    def test_prefixed_settings(self, monkeypatch):
        monkeypatch.setenv("WEBSETS_RATE_LIMIT", "3")
        monkeypatch.setenv("WEBSETS_BURST_SIZE", "4")
        monkeypatch.setenv("WEBSETS_TRANSPORT", "SSE")

        config = Settings(_env_file=None)

        assert config.rate_limit == 3
        assert config.effective_burst_size == 4
        assert config.transport == "sse"

    def test_trailing_slash_stripped(self):
        config = Settings(_env_file=None, base_url="https://api.exa.ai/websets/v0/")
        assert config.base_url == "https://api.exa.ai/websets/v0"


class TestValidation:
    """Test rejected configurations."""

    @pytest.mark.parametrize(
        "changes",
        [
            {"base_url": "ftp://example.com"},
            {"base_url": "not a url"},
            {"timeout": 0},
            {"retry_attempts": -1},
            {"rate_limit": 0},
            {"burst_size": 0},
            {"circuit_breaker_threshold": 0},
            {"max_cached_clients": 0},
            {"log_format": "xml"},
            {"transport": "carrier-pigeon"},
            {"retry_delay": 5000, "max_retry_delay": 5000},
        ],
    )
    def test_invalid(self, changes):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **changes)

    def test_with_changes_returns_validated_copy(self, test_settings):
        updated = test_settings.with_changes(rate_limit=2)

        assert updated.rate_limit == 2
        assert updated.api_key == "test-key"
        assert test_settings.rate_limit == 100

    def test_with_changes_rejects_invalid(self, test_settings):
        with pytest.raises(ValidationError):
            test_settings.with_changes(max_retry_delay=1)
