"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .types import BackendConfig, CacheConfig, DirectivesConfig, LoggingConfig

CONFIG_FILENAMES = [
    "tagged-cache.yaml",
    "tagged-cache.yml",
    "tagged-cache.json",
    "taggedcache.yaml",
    "taggedcache.yml",
    "taggedcache.json",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _discover_config() -> Path | None:
    """Walk up from CWD, stopping at home or the filesystem root."""
    cwd = Path.cwd()
    home = Path.home()
    for directory in (cwd, *cwd.parents):
        for name in CONFIG_FILENAMES:
            if (directory / name).is_file():
                return directory / name
        if directory == home:
            break
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    text = path.read_text()
    try:
        if path.suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file {path} must hold a mapping at top level, got {type(raw).__name__}"
        )
    return raw


def _build_config(raw: dict[str, Any]) -> CacheConfig:
    """Build a CacheConfig from a raw dict."""
    backend_raw = raw.get("backend", {}) or {}
    backend = BackendConfig(
        cache_db_complete_path=backend_raw.get("cache_db_complete_path"),
        automatic_vacuum_factor=backend_raw.get("automatic_vacuum_factor", 10),
        busy_timeout=backend_raw.get("busy_timeout", 5.0),
    )

    directives_raw = raw.get("directives", {}) or {}
    directives = DirectivesConfig(
        lifetime=directives_raw.get("lifetime", 3600),
    )

    logging_raw = raw.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=str(logging_raw.get("level", "WARNING")).upper(),
    )

    return CacheConfig(
        version=str(raw.get("version", "1.0")),
        backend=backend,
        directives=directives,
        logging=logging_config,
    )


def validate_config(config: CacheConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    if not config.backend.cache_db_complete_path:
        errors.append("backend.cache_db_complete_path must be set")

    factor = config.backend.automatic_vacuum_factor
    if not isinstance(factor, int) or isinstance(factor, bool) or factor < 0:
        errors.append(
            f"automatic_vacuum_factor ({factor!r}) must be an integer >= 0"
        )

    if config.backend.busy_timeout <= 0:
        errors.append(f"busy_timeout ({config.backend.busy_timeout}) must be > 0")

    lifetime = config.directives.lifetime
    if lifetime is not None and (not isinstance(lifetime, int) or lifetime < 0):
        errors.append(f"directives.lifetime ({lifetime!r}) must be null or an integer >= 0")

    if config.logging.level not in LOG_LEVELS:
        errors.append(
            f"Unknown logging level '{config.logging.level}' "
            f"(expected one of {', '.join(LOG_LEVELS)})"
        )

    return errors


def configure_logging(config: CacheConfig, verbose: bool = False) -> None:
    """Apply the logging section to the root logger."""
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
) -> CacheConfig:
    """Build a CacheConfig from ``config_dict``, ``config_path``, or a discovered file.

    With none of them, every setting takes its default. Raises ConfigError if
    the file cannot be parsed or does not hold a mapping.
    """
    if config_dict is not None:
        return _build_config(config_dict)

    path = Path(config_path) if config_path is not None else _discover_config()
    if path is None:
        return _build_config({})
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    return _build_config(_read_config_file(path))
