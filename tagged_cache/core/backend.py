"""CacheBackend abstract base classes: the contract a cache frontend relies on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from ..exceptions import ConfigError
from ..types import BackendCapabilities, CacheMetadata, CleaningMode

# Passed as ``specific_lifetime`` to mean "use the lifetime directive".
DEFAULT_LIFETIME = False


class CacheBackend(ABC):
    """Pluggable storage for serialized cache entries.

    Subclasses declare their options in ``OPTIONS`` (name -> default). The
    frontend-wide directives (currently only the default ``lifetime``) are
    shared by every backend.
    """

    OPTIONS: dict[str, Any] = {}
    DIRECTIVES: dict[str, Any] = {"lifetime": 3600}

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        self.options: dict[str, Any] = dict(self.OPTIONS)
        self.directives: dict[str, Any] = dict(self.DIRECTIVES)
        for name, value in (options or {}).items():
            self.set_option(name, value)

    def set_option(self, name: str, value: Any) -> None:
        if name not in self.options:
            raise ConfigError(f"Incorrect option name: {name}")
        self.options[name] = value

    def set_directives(self, directives: Mapping[str, Any]) -> None:
        for name, value in directives.items():
            if name not in self.directives:
                raise ConfigError(f"Unknown directive: {name}")
            self.directives[name] = value

    def get_lifetime(self, specific_lifetime: int | None | bool = DEFAULT_LIFETIME) -> int | None:
        """Resolve a per-call lifetime. False -> directive, None -> infinite."""
        if specific_lifetime is False:
            return self.directives["lifetime"]
        return specific_lifetime

    def is_automatic_cleaning_available(self) -> bool:
        return True

    @abstractmethod
    def load(self, cache_id: str, skip_validity: bool = False) -> bytes | None:
        """Content for ``cache_id``. None if missing or (unless skipped) expired."""

    @abstractmethod
    def test(self, cache_id: str) -> int | None:
        """Last-modified timestamp of a valid entry, None otherwise."""

    @abstractmethod
    def save(
        self,
        data: bytes,
        cache_id: str,
        tags: Iterable[str] | None = None,
        specific_lifetime: int | None | bool = DEFAULT_LIFETIME,
    ) -> bool:
        """Store ``data`` under ``cache_id``. True if the row and every tag were written."""

    @abstractmethod
    def remove(self, cache_id: str) -> bool:
        """Delete an entry and its tags. True if it existed and both deletes ran."""

    @abstractmethod
    def clean(
        self,
        mode: CleaningMode | str = CleaningMode.ALL,
        tags: str | Iterable[str] | None = None,
    ) -> bool:
        """Bulk removal. See CleaningMode."""


class ExtendedCacheBackend(CacheBackend):
    """Backends that can also enumerate ids/tags and report metadata."""

    @abstractmethod
    def get_ids(self) -> list[str]:
        """Ids of entries that are still valid."""

    @abstractmethod
    def get_tags(self) -> list[str]:
        """Every distinct tag name."""

    @abstractmethod
    def get_ids_matching_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        """Ids carrying all of ``tags``."""

    @abstractmethod
    def get_ids_not_matching_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        """Ids carrying none of ``tags``."""

    @abstractmethod
    def get_ids_matching_any_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        """Ids carrying at least one of ``tags``."""

    @abstractmethod
    def get_filling_percentage(self) -> int:
        """Used space on the backing storage, 0-100."""

    @abstractmethod
    def get_metadatas(self, cache_id: str) -> CacheMetadata | None:
        """Tags, mtime and expire for ``cache_id``. None if there is no entry."""

    @abstractmethod
    def touch(self, cache_id: str, extra_lifetime: int) -> bool:
        """Extend a valid entry's lifetime."""

    @abstractmethod
    def get_capabilities(self) -> BackendCapabilities:
        """Static feature flags."""
