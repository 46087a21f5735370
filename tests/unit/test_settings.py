"""Unit tests for the settings module."""

from __future__ import annotations

import pytest

from ipflix.settings import AppSettings, _coerce_bool, _coerce_float, _coerce_int, load_settings


class TestCoercionHelpers:
    """Test the helper functions for type coercion."""

    def test_coerce_bool_true_values(self) -> None:
        """Test boolean coercion with truthy string values."""
        for value in ["1", "true", "TRUE", "t", "yes", "Y", "on"]:
            assert _coerce_bool(value, False) is True, f"Expected {value} to coerce to True"

    def test_coerce_bool_false_values(self) -> None:
        """Test boolean coercion with falsy string values."""
        for value in ["0", "false", "F", "no", "n", "OFF"]:
            assert _coerce_bool(value, True) is False, f"Expected {value} to coerce to False"

    def test_coerce_bool_invalid_values_use_default(self) -> None:
        """Test invalid values fall back to the default."""
        for value in ["maybe", "2", "", "   "]:
            assert _coerce_bool(value, True) is True
            assert _coerce_bool(value, False) is False
        assert _coerce_bool(None, True) is True

    def test_coerce_int(self) -> None:
        """Test integer coercion."""
        assert _coerce_int(" 789 ", 0) == 789
        assert _coerce_int("12.5", 42) == 42
        assert _coerce_int(None, 99) == 99

    def test_coerce_float(self) -> None:
        """Test float coercion."""
        assert _coerce_float("2.5", 1.0) == 2.5
        assert _coerce_float("fast", 1.0) == 1.0
        assert _coerce_float(None, 3.0) == 3.0


class TestAppSettings:
    """Test AppSettings.from_sources precedence."""

    def test_defaults(self) -> None:
        """Test defaults without environment or config."""
        settings = AppSettings.from_sources()

        assert settings.abuseipdb_api_key is None
        assert settings.abuseipdb_enabled is False
        assert settings.request_timeout == 10.0
        assert settings.user_agent == "IPFlix/1.0"
        assert settings.osint_user_agent == "IPFlix-OSINT/1.0"
        assert settings.reverse_dns is True
        assert settings.cache_max_age == 3600
        assert settings.geo_headers["country"] == "x-vercel-ip-country"

    def test_environment_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test prefixed environment variables are read."""
        monkeypatch.setenv("IPFLIX_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("IPFLIX_REVERSE_DNS", "off")
        monkeypatch.setenv("IPFLIX_CACHE_MAX_AGE", "60")
        monkeypatch.setenv("IPFLIX_LOG_LEVEL", "debug")
        monkeypatch.setenv("IPFLIX_USER_AGENT", "custom/2.0")

        settings = AppSettings.from_sources()

        assert settings.request_timeout == 2.5
        assert settings.reverse_dns is False
        assert settings.cache_max_age == 60
        assert settings.log_level == "DEBUG"
        assert settings.user_agent == "custom/2.0"

    def test_unprefixed_abuseipdb_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the bare ABUSEIPDB_API_KEY variable enables the lookup."""
        monkeypatch.setenv("ABUSEIPDB_API_KEY", "  secret  ")

        settings = load_settings()

        assert settings.abuseipdb_api_key == "secret"
        assert settings.abuseipdb_enabled is True

    def test_prefixed_key_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the prefixed variable takes priority over the bare one."""
        monkeypatch.setenv("ABUSEIPDB_API_KEY", "bare")
        monkeypatch.setenv("IPFLIX_ABUSEIPDB_API_KEY", "prefixed")

        assert load_settings().abuseipdb_api_key == "prefixed"

    def test_config_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test explicit config beats the environment."""
        monkeypatch.setenv("IPFLIX_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("ABUSEIPDB_API_KEY", "from-env")

        settings = AppSettings.from_sources({"request_timeout": 7.0, "abuseipdb_api_key": "from-config"})

        assert settings.request_timeout == 7.0
        assert settings.abuseipdb_api_key == "from-config"

    def test_invalid_environment_values_fall_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test malformed environment values keep the defaults."""
        monkeypatch.setenv("IPFLIX_CACHE_MAX_AGE", "one hour")
        monkeypatch.setenv("IPFLIX_REQUEST_TIMEOUT", "slow")

        settings = AppSettings.from_sources()

        assert settings.cache_max_age == 3600
        assert settings.request_timeout == 10.0

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a custom environment prefix."""
        monkeypatch.setenv("EDGE_CACHE_MAX_AGE", "120")

        assert AppSettings.from_sources(env_prefix="edge_").cache_max_age == 120
