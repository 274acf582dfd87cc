"""Provides loading of objcache configuration settings.

Supports loading from a YAML configuration file (default
``~/.objcache/config.yaml``), a .env file and ``OBJCACHE_*`` environment
variables. The result is an explicit ``CacheSettings`` object that is
passed to the cache factory; nothing is read from globals afterwards.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import dotenv_values

from objcache.infrastructure.monitoring.logger_setup import APP_LOG_FORMAT

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".objcache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "OBJCACHE_"


class ConfigurationError(ValueError):
    """Raised when a configuration value is missing or invalid."""


@dataclass
class CacheSettings:
    """All tunables of the cache, with defaults."""
    store_path: Path = DEFAULT_CONFIG_DIR / "store"
    global_groups: List[str] = field(default_factory=list)
    non_persistent_groups: List[str] = field(default_factory=list)
    non_persistent_keys: List[str] = field(default_factory=list)
    namespace_prefix: str = ""
    max_ttl: int = 0
    audit_enabled: bool = False
    audit_file: Path = DEFAULT_CONFIG_DIR / "object-cache.log"
    audit_max_bytes: int = 10_000_000
    audit_truncate_on_flush: bool = True
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    log_format: str = APP_LOG_FORMAT

    def validate(self) -> "CacheSettings":
        """Checks value ranges. Returns self so calls can be chained."""
        if self.max_ttl < 0:
            raise ConfigurationError(f"max_ttl must be >= 0, got {self.max_ttl}")
        if self.audit_max_bytes <= 0:
            raise ConfigurationError(f"audit_max_bytes must be > 0, got {self.audit_max_bytes}")
        if str(self.store_path) in ("", "/"):
            raise ConfigurationError(f"store_path must not be the filesystem root, got {self.store_path!r}")
        return self


_FIELDS = {f.name: f for f in dataclasses.fields(CacheSettings)}
_LIST_FIELDS = {"global_groups", "non_persistent_groups", "non_persistent_keys"}
_PATH_FIELDS = {"store_path", "audit_file", "log_file"}
_INT_FIELDS = {"max_ttl", "audit_max_bytes"}
_BOOL_FIELDS = {"audit_enabled", "audit_truncate_on_flush"}


def _coerce(name: str, value: Any) -> Any:
    """Converts a raw config value (often a string from the environment) to the field's type."""
    if name in _LIST_FIELDS:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item) for item in value]
        raise ConfigurationError(f"{name} must be a list or comma-separated string")
    if name in _PATH_FIELDS:
        if value is None or value == "":
            if name == "log_file":
                return None
            raise ConfigurationError(f"{name} must not be empty")
        return Path(value).expanduser()
    if name in _BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off", ""):
            return False
        raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
    if name in _INT_FIELDS:
        if isinstance(value, bool):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
    return "" if value is None else str(value)


def _load_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.is_file():
        logger.debug(f"YAML config file not found: {config_file}")
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML config file {config_file} did not contain a mapping.")
    # Accept both flat keys and a top-level 'cache:' section
    section = data.get("cache", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'cache' section of {config_file} must be a mapping.")
    logger.info(f"Loaded configuration from YAML: {config_file}")
    return section


def _prefixed(source: Dict[str, Optional[str]]) -> Dict[str, Any]:
    """Picks OBJCACHE_* entries from an env-like mapping, keyed by field name."""
    values = {}
    for env_key, env_value in source.items():
        if env_key.startswith(ENV_PREFIX) and env_value is not None:
            name = env_key[len(ENV_PREFIX):].lower()
            if name in _FIELDS:
                values[name] = env_value
    return values


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def load_settings(
    config_file: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> CacheSettings:
    """Builds CacheSettings from every configuration source.

    Priority order (highest to lowest):
    1. Keyword overrides
    2. Environment variables (OBJCACHE_<FIELD>)
    3. .env file
    4. YAML configuration file
    5. Defaults

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        environ: Environment mapping to read instead of ``os.environ``.
        **overrides: Field values that take precedence over everything else.

    Raises:
        ConfigurationError: On unknown override names or invalid values.
    """
    unknown = set(overrides) - set(_FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")

    merged: Dict[str, Any] = {}

    yaml_values = _load_yaml(Path(config_file).expanduser() if config_file else DEFAULT_CONFIG_FILE)
    for name, value in yaml_values.items():
        if name in _FIELDS:
            merged[name] = value
        else:
            logger.warning(f"Ignoring unknown configuration key '{name}'")

    dotenv_path = Path(env_file) if env_file else find_dotenv_path()
    if dotenv_path and dotenv_path.is_file():
        merged.update(_prefixed(dotenv_values(dotenv_path)))
        logger.debug(f"Loaded environment values from: {dotenv_path}")

    merged.update(_prefixed(dict(os.environ if environ is None else environ)))
    merged.update({name: value for name, value in overrides.items() if value is not None})

    settings = CacheSettings(**{name: _coerce(name, value) for name, value in merged.items()})
    return settings.validate()
