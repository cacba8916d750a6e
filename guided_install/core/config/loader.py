"""
Configuration loader — reads installer.yml into typed settings.

Every tunable of the install core lives here, never as a literal in
the logic: validation attempts and interval, catalog location, query
backend, status store location, link base URL and default install
options. The file is optional; a missing file yields defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from guided_install.core.models.options import InstallOptions

logger = logging.getLogger(__name__)

# Default config filename
INSTALLER_CONFIG_FILE = "installer.yml"


class ConfigError(Exception):
    """Raised when installer configuration is invalid or unreadable."""


class ValidationSettings(BaseModel):
    """Polling policy for post-install validation."""

    max_attempts: int = Field(default=60, ge=1)
    interval_seconds: float = Field(default=5.0, ge=0)
    backoff_multiplier: float = Field(default=1.0, ge=1.0)
    max_interval_seconds: float = Field(default=60.0, ge=0)
    count_field: str = "count"
    entity_guid_field: str = "entityGuid"
    # Optional second query resolving the entity GUID when validation rows carry none
    entity_lookup_query: str = ""


class CatalogSettings(BaseModel):
    """Where recipe definitions are read from."""

    recipes_dir: str = "recipes"


class QuerySettings(BaseModel):
    """Telemetry query backend used for validation."""

    url: str = ""
    api_key_env: str = "GI_QUERY_API_KEY"
    timeout_seconds: float = Field(default=30.0, gt=0)


class StatusStoreSettings(BaseModel):
    """Local directory standing in for the remote status document store."""

    path: str = ".state/status"
    collection: str = "install-status"


class InstallerConfig(BaseModel):
    """Root configuration model (installer.yml)."""

    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    status_store: StatusStoreSettings = Field(default_factory=StatusStoreSettings)
    link_base_url: str = "https://one.newrelic.com"
    options: InstallOptions = Field(default_factory=InstallOptions)

    # Directory the config was loaded from; relative paths resolve here
    base_dir: Path = Field(default_factory=Path.cwd, exclude=True)

    def resolve_path(self, value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.base_dir / path


# Environment overrides: env var → (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GI_VALIDATION_MAX_ATTEMPTS": ("validation", "max_attempts"),
    "GI_VALIDATION_INTERVAL": ("validation", "interval_seconds"),
    "GI_RECIPES_DIR": ("catalog", "recipes_dir"),
    "GI_QUERY_URL": ("query", "url"),
    "GI_STATUS_DIR": ("status_store", "path"),
}


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for installer.yml starting from ``start_dir``, walking up.

    Returns:
        Path to installer.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / INSTALLER_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | None = None, env: dict[str, str] | None = None) -> InstallerConfig:
    """Load and validate installer configuration.

    Args:
        path: Explicit path to installer.yml. If None, searches upward
            and falls back to defaults when nothing is found.
        env: Environment mapping for overrides (default: ``os.environ``).

    Returns:
        Validated InstallerConfig.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    if path is None:
        path = find_config_file()

    data: dict = {}
    base_dir = Path.cwd()

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        logger.debug("Loading installer config from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")

        data = loaded
        base_dir = path.parent.resolve()

    _apply_env_overrides(data, os.environ if env is None else env)

    try:
        config = InstallerConfig.model_validate({**data, "base_dir": base_dir})
    except ValidationError as e:
        raise ConfigError(f"Invalid installer configuration: {e}") from e

    logger.info(
        "Loaded installer config (max_attempts=%d, interval=%.1fs)",
        config.validation.max_attempts,
        config.validation.interval_seconds,
    )
    return config


def _apply_env_overrides(data: dict, env: dict[str, str]) -> None:
    """Merge GI_* environment overrides into the raw config mapping."""
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        target = data.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"Section '{section}' must be a mapping")
        target[key] = value
        logger.debug("Config override %s.%s from %s", section, key, var)
