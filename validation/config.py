"""
Configuration validation for Roster2Groups.

Provides a pydantic-settings model with fail-fast validation and sensible
defaults. Values come from (highest to lowest precedence):
1. R2G_-prefixed environment variables
2. The JSON config file passed in as keyword arguments
3. Defaults defined below
"""

import logging
import os
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from roster.models import normalize_identity
from validation.errors import ConfigurationError

log = logging.getLogger('Roster2Groups.config')

DEFAULT_DIRECTORY_URL = "https://cloudidentity.googleapis.com/v1"


class Roster2GroupsConfig(BaseSettings):
    """
    Roster2Groups configuration with validation.

    Required:
        roster_path: CSV roster of group/member/validity rows
        settings_path: JSON settings store holding the maintenance flag
        access_token: Bearer token for the directory API

    Optional tunables:
        enabled: Master on/off switch (default: True)
        max_wait_seconds: Shared ceiling for maintenance wait + lock wait (default: 180)
        initial_backoff / max_backoff: Polling backoff schedule (default: 1s doubling to 30s)
        max_workers: Groups reconciled concurrently (default: 1 = sequential)
        page_size: Members per listing page (default: 100)
    """

    model_config = SettingsConfigDict(env_prefix="R2G_", extra="ignore")

    # Required fields
    roster_path: str
    settings_path: str
    access_token: str

    enabled: bool = True

    directory_url: str = DEFAULT_DIRECTORY_URL
    data_dir: str = "./data"

    excluded_members: Optional[str] = Field(
        default=None,
        description="Comma-separated identities that are never added or removed automatically."
    )

    # Exclusion coordinator timing (in seconds)
    max_wait_seconds: float = Field(default=180.0, ge=1.0, le=3600.0)
    initial_backoff: float = Field(default=1.0, ge=0.01, le=60.0)
    max_backoff: float = Field(default=30.0, ge=0.01, le=300.0)

    max_workers: int = Field(default=1, ge=1, le=16)

    # Directory connection
    request_timeout: float = Field(default=30.0, ge=1.0, le=120.0)
    page_size: int = Field(default=100, ge=1, le=200)

    min_interval_minutes: int = Field(
        default=0,
        ge=0,
        le=10080,
        description="Skip 'run --if-due' invocations closer than this to the previous run."
    )

    debug_logging: bool = Field(
        default=False,
        description="Enable verbose debug logging"
    )
    log_json: bool = Field(
        default=False,
        description="Emit structured JSON log records"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Return sources in priority order: env > config file (init)."""
        return (env_settings, init_settings)

    @property
    def excluded_member_set(self) -> set[str]:
        """Parse excluded_members into a set of identities.

        Returns:
            Set of trimmed, lower-cased, non-empty identities (empty set if unset).
            "admin@x.com, owner@x.com" -> {"admin@x.com", "owner@x.com"}
        """
        if not self.excluded_members:
            return set()
        return {normalize_identity(m) for m in self.excluded_members.split(',') if m.strip()}

    @field_validator('directory_url', mode='after')
    @classmethod
    def validate_directory_url(cls, v: str) -> str:
        """Validate directory_url is a valid HTTP/HTTPS URL."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('directory_url must start with http:// or https://')
        return v.rstrip('/')  # Normalize: remove trailing slash

    @field_validator('access_token', mode='after')
    @classmethod
    def validate_access_token(cls, v: str) -> str:
        """Validate access_token is present and reasonable length."""
        if not v:
            raise ValueError('access_token is required')
        if len(v) < 10:
            raise ValueError('access_token appears invalid (too short)')
        return v

    @field_validator('roster_path', 'settings_path', mode='after')
    @classmethod
    def validate_paths(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('path must not be empty')
        return v.strip()

    @field_validator('enabled', 'debug_logging', 'log_json', mode='before')
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.strip().lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no'):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    def ensure_stores(self) -> None:
        """Check that the roster and settings stores exist.

        Raises:
            ConfigurationError: Listing every missing store.
        """
        missing = []
        if not os.path.isfile(self.roster_path):
            missing.append(f"roster '{self.roster_path}'")
        if not os.path.isfile(self.settings_path):
            missing.append(f"settings '{self.settings_path}'")
        if missing:
            raise ConfigurationError(
                f"Required stores not found: {', '.join(missing)}. Create them before running."
            )

    def log_config(self) -> None:
        """Log configuration with masked token for security."""
        masked = self.access_token[:4] + '****' + self.access_token[-4:]
        excluded = self.excluded_member_set
        log.info(
            f"Roster2Groups config: roster={self.roster_path}, settings={self.settings_path}, "
            f"directory={self.directory_url}, token={masked}, "
            f"excluded={len(excluded)} identities, "
            f"max_wait={self.max_wait_seconds}s, "
            f"backoff={self.initial_backoff}s..{self.max_backoff}s, "
            f"max_workers={self.max_workers}, enabled={self.enabled}"
        )
        if not excluded:
            log.info("No excluded identities configured (excluded_members is empty)")
        if self.debug_logging:
            log.warning(
                "DEBUG LOGGING ENABLED: member identities will appear in the log output."
            )


def validate_config(config_dict: dict) -> tuple[Optional[Roster2GroupsConfig], Optional[str]]:
    """
    Validate configuration dictionary and return Roster2GroupsConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Tuple of (Roster2GroupsConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = Roster2GroupsConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


__all__ = ['Roster2GroupsConfig', 'validate_config', 'ValidationError', 'DEFAULT_DIRECTORY_URL']
