"""Purge configuration and persisted settings.

``PurgeConfig`` is the immutable configuration of a single run. It is
assembled by the CLI from command-line options, environment variables and
the optional settings file (``~/.config/pteropurge/config.toml``) described
by ``PanelSettings``.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from pteropurge.core.filter import parse_node_ids
from pteropurge.core.paths import get_settings_path

logger = logging.getLogger(__name__)

# Default page-count ceiling (100 servers per page)
DEFAULT_MAX_PAGES = 1000


class PurgeConfig(BaseModel):
    """Configuration for one purge run.

    Read-only once a run starts. Node ids are kept as the raw string the
    operator typed; ``target_node_ids`` derives the parsed form.

    Attributes:
        panel_url: Base URL of the panel.
        api_key: Application API key (bearer token).
        node_ids: Comma-separated node ids whose servers may be deleted.
        exclude_keyword: Servers whose name contains this substring are kept.
        timeout_seconds: Per-request timeout; None uses the transport default.
        max_pages: Page-count ceiling for listing; None (or 0) disables it.
        delete_retries: Extra delete attempts after a failure.
        retry_backoff_seconds: Base delay between delete attempts.
        concurrency: Number of delete calls allowed in flight.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    panel_url: Annotated[str, Field(min_length=1, description="Panel base URL")]
    api_key: Annotated[SecretStr, Field(description="Application API key")]
    node_ids: str = ""
    exclude_keyword: str = ""
    timeout_seconds: Annotated[float | None, Field(gt=0)] = None
    max_pages: Annotated[int | None, Field(ge=0)] = DEFAULT_MAX_PAGES
    delete_retries: Annotated[int, Field(ge=0, le=10)] = 0
    retry_backoff_seconds: Annotated[float, Field(ge=0)] = 1.0
    concurrency: Annotated[int, Field(ge=1, le=16)] = 1

    @field_validator("panel_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the panel URL so routes can be appended."""
        return v.strip().rstrip("/")

    @field_validator("max_pages")
    @classmethod
    def zero_means_unlimited(cls, v: int | None) -> int | None:
        """Map 0 to no page ceiling."""
        return v or None

    @property
    def target_node_ids(self) -> tuple[str, ...]:
        """Return the parsed node ids."""
        return parse_node_ids(self.node_ids)


class PanelSettings(BaseModel):
    """Defaults stored in the settings file.

    Every field is optional; command-line options take precedence.
    """

    model_config = ConfigDict(extra="forbid")

    panel_url: str | None = None
    api_key: SecretStr | None = None
    node_ids: str | None = None
    exclude_keyword: str | None = None
    timeout_seconds: Annotated[float | None, Field(gt=0)] = None
    max_pages: Annotated[int | None, Field(ge=0)] = None
    delete_retries: Annotated[int | None, Field(ge=0, le=10)] = None
    retry_backoff_seconds: Annotated[float | None, Field(ge=0)] = None
    concurrency: Annotated[int | None, Field(ge=1, le=16)] = None

    def merged_with(self, **overrides: Any) -> dict[str, Any]:
        """Merge non-None overrides on top of these settings.

        Args:
            **overrides: Values from the command line (None means "not given").

        Returns:
            Dictionary suitable for ``PurgeConfig.model_validate``.
        """
        data: dict[str, Any] = {}
        for name, value in self.model_dump(exclude_none=True).items():
            data[name] = value.get_secret_value() if isinstance(value, SecretStr) else value
        for name, value in overrides.items():
            if value is not None:
                data[name] = value
        return data


class SettingsError(Exception):
    """Base exception for settings file errors."""


class SettingsNotFoundError(SettingsError):
    """Raised when the settings file does not exist."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None) -> PanelSettings:
    """Load settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default path.

    Returns:
        Validated PanelSettings object.

    Raises:
        SettingsNotFoundError: If the file doesn't exist.
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the content doesn't match the schema.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        raise SettingsNotFoundError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return PanelSettings.model_validate(data.get("panel", {}))
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def load_settings_or_default(path: Path | None = None) -> PanelSettings:
    """Load settings, falling back to empty settings if the file is missing.

    Raises:
        SettingsError: If the file exists but is invalid.
    """
    try:
        return load_settings(path)
    except SettingsNotFoundError:
        logger.debug("No settings file, using command-line options only")
        return PanelSettings()


def save_settings(settings: PanelSettings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically through a temporary file in the same
    directory. The API key is written only if it is set.

    Args:
        settings: Settings to save.
        path: Destination path. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    data = {"panel": settings.merged_with()}

    tmp_path: Path | None = None
    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        # The file may hold the API key
        os.chmod(tmp_path, 0o600)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path
