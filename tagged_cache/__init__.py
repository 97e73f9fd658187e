"""tagged-cache: SQLite cache backend with expiry, tags and tag-based invalidation."""

from .config import load_config, validate_config
from .core.backend import CacheBackend, ExtendedCacheBackend
from .exceptions import CacheError, ConfigError, SchemaError, StorageUnavailableError
from .storage.sqlite import SQLiteBackend
from .types import (
    BackendCapabilities,
    CacheConfig,
    CacheMetadata,
    CleaningMode,
)

__version__ = "0.1.0"

__all__ = [
    "SQLiteBackend",
    "CacheBackend",
    "ExtendedCacheBackend",
    "load_config",
    "validate_config",
    "BackendCapabilities",
    "CacheConfig",
    "CacheMetadata",
    "CleaningMode",
    "CacheError",
    "ConfigError",
    "SchemaError",
    "StorageUnavailableError",
]
