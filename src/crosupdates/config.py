"""
Configuration loading for crosupdates.

Settings come from built-in defaults, an optional YAML file with UPPER_CASE
keys, and a couple of environment variable overrides, in that order.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from crosupdates.constants import (
    APP_NAME,
    BOARD_DATA_URL_TEMPLATE,
    CACHE_DIR_ENV_VAR,
    CONFIG_FILE_NAME,
    DEVICE_CACHE_FILE,
    ENHANCED_BATCH_DELAY,
    ENHANCED_BATCH_SIZE,
    ENHANCED_CACHE_FILE,
    ENHANCED_CACHE_HOURS,
    FLEX_RECOVERY_URL,
    FLEX_SERVING_BUILDS_URL,
    LOG_LEVEL_ENV_VAR,
    RECOVERY_URL,
    SERVING_BUILDS_URL,
)
from crosupdates.exceptions import ConfigFileError, ConfigValidationError
from crosupdates.log_utils import logger


def _default_cache_dir() -> Path:
    return Path(platformdirs.user_cache_dir(APP_NAME))


@dataclass
class Settings:
    """Runtime settings for one pipeline invocation."""

    serving_builds_url: str = SERVING_BUILDS_URL
    recovery_url: str = RECOVERY_URL
    flex_serving_builds_url: str = FLEX_SERVING_BUILDS_URL
    flex_recovery_url: str = FLEX_RECOVERY_URL
    board_data_url_template: str = BOARD_DATA_URL_TEMPLATE
    cache_dir: Path = field(default_factory=_default_cache_dir)
    enhanced_cache_hours: float = ENHANCED_CACHE_HOURS
    enhanced_batch_size: int = ENHANCED_BATCH_SIZE
    enhanced_batch_delay: float = ENHANCED_BATCH_DELAY
    log_level: Optional[str] = None

    @property
    def device_cache_file(self) -> Path:
        return Path(self.cache_dir) / DEVICE_CACHE_FILE

    @property
    def enhanced_cache_file(self) -> Path:
        return Path(self.cache_dir) / ENHANCED_CACHE_FILE


_URL_KEYS = (
    "serving_builds_url",
    "recovery_url",
    "flex_serving_builds_url",
    "flex_recovery_url",
    "board_data_url_template",
)


def default_config_path() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(
            f"Could not read configuration file {config_path}", str(e)
        ) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(
            f"Invalid YAML in configuration file {config_path}", str(e)
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigFileError(
            f"Configuration file {config_path} must contain a mapping",
            f"got {type(raw).__name__}",
        )
    return raw


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw config value to the type of the Settings field `name`."""
    try:
        if name == "cache_dir":
            return Path(os.path.expanduser(str(value)))
        if name == "enhanced_batch_size":
            if isinstance(value, bool):
                raise TypeError("boolean is not a batch size")
            parsed = int(value)
            if parsed < 1:
                raise ValueError("must be >= 1")
            return parsed
        if name in ("enhanced_cache_hours", "enhanced_batch_delay"):
            if isinstance(value, bool):
                raise TypeError("boolean is not a number")
            parsed = float(value)
            if parsed < 0:
                raise ValueError("must be >= 0")
            return parsed
        if name in _URL_KEYS:
            if not isinstance(value, str) or not value.startswith(
                ("http://", "https://")
            ):
                raise ValueError("must be an http(s) URL")
            if name == "board_data_url_template" and "{board}" not in value:
                raise ValueError("must contain a {board} placeholder")
            return value
        if name == "log_level":
            return str(value).upper()
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(
            f"Invalid value for {name.upper()}: {value!r}", str(e)
        ) from e
    return value


def settings_from_mapping(config: Dict[str, Any]) -> Settings:
    """
    Build Settings from a configuration mapping.

    Keys are matched case-insensitively against Settings field names, so
    `CACHE_DIR` and `cache_dir` are equivalent. Unknown keys are logged and
    ignored.
    """
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}
    for key, value in config.items():
        name = str(key).lower()
        if name not in known:
            logger.warning(f"Ignoring unknown configuration key: {key}")
            continue
        if value is None:
            continue
        values[name] = _coerce(name, value)
    return Settings(**values)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings from YAML and the environment.

    Parameters:
        config_path (Optional[Path]): Explicit configuration file. When omitted,
            the platformdirs config location is used if a file exists there.

    Returns:
        Settings: The resolved settings.

    Raises:
        ConfigFileError: If an explicit file is missing or any file cannot be parsed.
        ConfigValidationError: If a value has the wrong type.
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigFileError(f"Configuration file not found: {config_path}")
        config = _read_config_file(config_path)
        logger.debug(f"Loaded configuration from {config_path}")
    else:
        candidate = default_config_path()
        if candidate.exists():
            config = _read_config_file(candidate)
            logger.debug(f"Loaded configuration from {candidate}")
        else:
            config = {}

    config = dict(config)
    env_cache_dir = os.environ.get(CACHE_DIR_ENV_VAR)
    if env_cache_dir:
        config["CACHE_DIR"] = env_cache_dir
    env_log_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_log_level:
        config["LOG_LEVEL"] = env_log_level

    return settings_from_mapping(config)
