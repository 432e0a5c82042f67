"""Tests for configuration validation and parsing."""

from datetime import datetime, timezone

import pytest

from rest_sync.config import parse_configuration, validate_configuration
from rest_sync.providers import get_provider

OKTA_CONFIG = {
    "provider": "okta",
    "api_token": "00abc",
    "base_url": "https://trial.okta.com",
    "objects": "users, groups,logs",
    "page_size": "150",
    "initial_sync_start": "2024-01-01T00:00:00Z",
    "request_timeout_seconds": "10",
}


class TestValidateConfiguration:
    def test_valid(self):
        validate_configuration(OKTA_CONFIG)

    @pytest.mark.parametrize("key", ["provider", "api_token"])
    def test_required_keys(self, key):
        configuration = dict(OKTA_CONFIG)
        del configuration[key]
        with pytest.raises(ValueError, match=f"Missing required configuration value: {key}"):
            validate_configuration(configuration)

    def test_blank_value_counts_as_missing(self):
        with pytest.raises(ValueError, match="api_token"):
            validate_configuration({**OKTA_CONFIG, "api_token": "  "})

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            validate_configuration({**OKTA_CONFIG, "provider": "salesforce"})

    def test_base_url_required_without_default(self):
        configuration = dict(OKTA_CONFIG)
        del configuration["base_url"]
        with pytest.raises(ValueError, match="base_url"):
            validate_configuration(configuration)

    def test_base_url_optional_with_default(self):
        validate_configuration({"provider": "supersend", "api_token": "sk"})

    @pytest.mark.parametrize("key", ["page_size", "request_timeout_seconds"])
    @pytest.mark.parametrize("value", ["abc", "-1", "1.5"])
    def test_invalid_integers(self, key, value):
        with pytest.raises(ValueError, match=key):
            validate_configuration({**OKTA_CONFIG, key: value})

    def test_invalid_initial_sync_start(self):
        with pytest.raises(ValueError, match="initial_sync_start"):
            validate_configuration({**OKTA_CONFIG, "initial_sync_start": "last tuesday"})

    def test_unknown_objects_are_listed(self):
        with pytest.raises(ValueError, match="widgets, gadgets"):
            validate_configuration({**OKTA_CONFIG, "objects": "users,widgets,gadgets"})


class TestParseConfiguration:
    def test_values(self):
        config = parse_configuration(OKTA_CONFIG)

        assert config.provider == "okta"
        assert config.api_token == "00abc"
        assert config.base_url == "https://trial.okta.com"
        assert config.objects == ["users", "groups", "logs"]
        assert config.page_size == 150
        assert config.initial_sync_start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert config.request_timeout_seconds == 10

    def test_defaults(self):
        config = parse_configuration({"provider": "SuperSend", "api_token": "sk"})

        assert config.provider == "supersend"
        assert config.base_url == "https://api.supersend.io"
        assert config.objects == get_provider("supersend").schema.object_names()
        assert config.page_size == 0
        assert config.initial_sync_start is None
        assert config.request_timeout_seconds == 30

    def test_objects_as_list(self):
        config = parse_configuration({**OKTA_CONFIG, "objects": ["users", " apps "]})
        assert config.objects == ["users", "apps"]


class TestProviderRegistry:
    def test_lookup_is_case_insensitive(self):
        assert get_provider(" Okta ").name == "okta"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_provider("hubspot")
