"""
Tests for Roster2GroupsConfig and the validate_config helper.

Tests validation rules for URL format, token length, range constraints,
boolean coercion, environment precedence, defaults and store checks.
"""

import logging

import pytest
from pydantic import ValidationError

from validation.config import DEFAULT_DIRECTORY_URL, Roster2GroupsConfig, validate_config
from validation.errors import ConfigurationError


class TestRoster2GroupsConfig:
    """Tests for Roster2GroupsConfig model."""

    # =========================================================================
    # Required field tests
    # =========================================================================

    def test_valid_config_with_required_fields(self, valid_config_dict):
        config = Roster2GroupsConfig(**valid_config_dict)
        assert config.roster_path == valid_config_dict["roster_path"]
        assert config.access_token == valid_config_dict["access_token"]

    @pytest.mark.parametrize("field", ["roster_path", "settings_path", "access_token"])
    def test_required_fields(self, valid_config_dict, field):
        del valid_config_dict[field]
        config, error = validate_config(valid_config_dict)
        assert config is None
        assert field in error

    # =========================================================================
    # Defaults
    # =========================================================================

    def test_defaults(self, valid_config_dict):
        config = Roster2GroupsConfig(**valid_config_dict)
        assert config.enabled is True
        assert config.directory_url == DEFAULT_DIRECTORY_URL
        assert config.max_wait_seconds == 180.0
        assert config.initial_backoff == 1.0
        assert config.max_backoff == 30.0
        assert config.max_workers == 1
        assert config.page_size == 100
        assert config.min_interval_minutes == 0
        assert config.debug_logging is False
        assert config.log_json is False
        assert config.excluded_members is None

    # =========================================================================
    # URL / token validation
    # =========================================================================

    @pytest.mark.parametrize("invalid_url", ["ftp://server", "server.com", "localhost:8080"])
    def test_directory_url_must_be_http(self, valid_config_dict, invalid_url):
        valid_config_dict["directory_url"] = invalid_url
        with pytest.raises(ValidationError):
            Roster2GroupsConfig(**valid_config_dict)

    def test_directory_url_trailing_slash_stripped(self, valid_config_dict):
        valid_config_dict["directory_url"] = "http://localhost:8080/v1/"
        assert Roster2GroupsConfig(**valid_config_dict).directory_url == "http://localhost:8080/v1"

    def test_short_token_rejected(self, valid_config_dict):
        valid_config_dict["access_token"] = "short"
        config, error = validate_config(valid_config_dict)
        assert config is None
        assert "too short" in error

    def test_blank_path_rejected(self, valid_config_dict):
        valid_config_dict["roster_path"] = "   "
        config, error = validate_config(valid_config_dict)
        assert config is None
        assert "roster_path" in error

    # =========================================================================
    # Range constraints
    # =========================================================================

    @pytest.mark.parametrize("field,value", [
        ("max_wait_seconds", 0),
        ("max_wait_seconds", 7200),
        ("max_workers", 0),
        ("max_workers", 17),
        ("page_size", 0),
        ("page_size", 201),
        ("min_interval_minutes", -1),
    ])
    def test_out_of_range_rejected(self, valid_config_dict, field, value):
        valid_config_dict[field] = value
        config, error = validate_config(valid_config_dict)
        assert config is None
        assert field in error

    # =========================================================================
    # Boolean coercion
    # =========================================================================

    @pytest.mark.parametrize("value,expected", [
        (True, True), ("true", True), ("1", True), ("yes", True),
        (False, False), ("false", False), ("0", False), ("no", False),
    ])
    def test_boolean_strings(self, valid_config_dict, value, expected):
        valid_config_dict["enabled"] = value
        assert Roster2GroupsConfig(**valid_config_dict).enabled is expected

    @pytest.mark.parametrize("value", ["maybe", 1, None])
    def test_invalid_boolean_rejected(self, valid_config_dict, value):
        valid_config_dict["log_json"] = value
        with pytest.raises(ValidationError):
            Roster2GroupsConfig(**valid_config_dict)

    # =========================================================================
    # Environment precedence
    # =========================================================================

    def test_env_overrides_file_values(self, valid_config_dict, monkeypatch):
        valid_config_dict["max_workers"] = 2
        monkeypatch.setenv("R2G_MAX_WORKERS", "4")
        assert Roster2GroupsConfig(**valid_config_dict).max_workers == 4

    def test_env_supplies_required_values(self, valid_config_dict, monkeypatch):
        token = valid_config_dict.pop("access_token")
        monkeypatch.setenv("R2G_ACCESS_TOKEN", token)

        config, error = validate_config(valid_config_dict)
        assert error is None
        assert config.access_token == token

    def test_env_boolean(self, valid_config_dict, monkeypatch):
        monkeypatch.setenv("R2G_ENABLED", "false")
        assert Roster2GroupsConfig(**valid_config_dict).enabled is False

    # =========================================================================
    # Excluded members
    # =========================================================================

    def test_excluded_member_set_parsing(self, valid_config_dict):
        valid_config_dict["excluded_members"] = " admin@x.com, owner@x.com,,  "
        config = Roster2GroupsConfig(**valid_config_dict)
        assert config.excluded_member_set == {"admin@x.com", "owner@x.com"}

    def test_excluded_member_set_lower_cased(self, valid_config_dict):
        valid_config_dict["excluded_members"] = "Admin@X.com,OWNER@x.com"
        config = Roster2GroupsConfig(**valid_config_dict)
        assert config.excluded_member_set == {"admin@x.com", "owner@x.com"}

    def test_excluded_member_set_empty(self, valid_config_dict):
        assert Roster2GroupsConfig(**valid_config_dict).excluded_member_set == set()

    # =========================================================================
    # Store checks and logging
    # =========================================================================

    def test_ensure_stores_ok(self, valid_config_dict):
        Roster2GroupsConfig(**valid_config_dict).ensure_stores()

    def test_ensure_stores_lists_missing(self, valid_config_dict, tmp_path):
        valid_config_dict["roster_path"] = str(tmp_path / "nope.csv")
        valid_config_dict["settings_path"] = str(tmp_path / "nope.json")

        with pytest.raises(ConfigurationError) as exc_info:
            Roster2GroupsConfig(**valid_config_dict).ensure_stores()

        assert "nope.csv" in str(exc_info.value)
        assert "nope.json" in str(exc_info.value)

    def test_log_config_masks_token(self, valid_config_dict, caplog):
        config = Roster2GroupsConfig(**valid_config_dict)
        with caplog.at_level(logging.INFO, logger="Roster2Groups.config"):
            config.log_config()

        assert config.access_token not in caplog.text
        assert "ya29****cdef" in caplog.text


def test_validate_config_error_format():
    """Errors are joined as 'field: message; field: message'."""
    config, error = validate_config({})
    assert config is None
    assert "roster_path" in error
    assert "; " in error
