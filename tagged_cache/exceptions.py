"""Exceptions raised for conditions the cache cannot recover from."""

from __future__ import annotations


class CacheError(Exception):
    """Base class for all tagged-cache errors."""


class ConfigError(CacheError):
    """Missing or invalid backend option, directive, or config value."""


class StorageUnavailableError(CacheError):
    """The sqlite3 module is missing or the store file cannot be opened."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class SchemaError(CacheError):
    """The on-disk structure could not be rebuilt or re-verified."""
