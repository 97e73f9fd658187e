"""SQLiteBackend: tagged cache backend on a single SQLite file."""

from __future__ import annotations

import logging
import random
import shutil
import time
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.backend import DEFAULT_LIFETIME, ExtendedCacheBackend
from ..core.vacuum import VacuumScheduler
from ..exceptions import CacheError, ConfigError
from ..types import BackendCapabilities, CacheConfig, CacheMetadata, CleaningMode, Clock
from .cleaning import CleanEngine
from .connection import DEFAULT_BUSY_TIMEOUT, ConnectionManager, ensure_sqlite_available
from .records import RecordStore
from .schema import SchemaManager
from .tags import TagIndex, normalize_tags

logger = logging.getLogger(__name__)

CAPABILITIES = BackendCapabilities()


class SQLiteBackend(ExtendedCacheBackend):
    """Cache entries, tags and a version row in one SQLite database.

    Options:

    - ``cache_db_complete_path``: database file, required
    - ``automatic_vacuum_factor``: 0 disables VACUUM, 1 runs it after every
      remove/clean, n > 1 runs it about once every n calls (default 10)
    - ``busy_timeout``: seconds to wait on a locked database (default 5)

    Every public method first makes sure the structure is at the expected
    version, rebuilding (and emptying) the database if it is not.
    """

    OPTIONS: dict[str, Any] = {
        "cache_db_complete_path": None,
        "automatic_vacuum_factor": 10,
        "busy_timeout": DEFAULT_BUSY_TIMEOUT,
    }

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        directives: Mapping[str, Any] | None = None,
        clock: Clock = time.time,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(options)
        if directives:
            self.set_directives(directives)

        db_path = self.options["cache_db_complete_path"]
        if not db_path:
            raise ConfigError("cache_db_complete_path option has to be set")
        factor = self.options["automatic_vacuum_factor"]
        if not isinstance(factor, int) or isinstance(factor, bool) or factor < 0:
            raise ConfigError(f"automatic_vacuum_factor must be an integer >= 0, got {factor!r}")
        ensure_sqlite_available()

        self.connection = ConnectionManager(db_path, busy_timeout=self.options["busy_timeout"])
        self.schema = SchemaManager(self.connection)
        self.vacuum = VacuumScheduler(factor, rng=rng)
        self.tag_index = TagIndex(self.connection)
        self.records = RecordStore(self.connection, self.tag_index, self.vacuum, clock=clock)
        self.cleaner = CleanEngine(self.records, self.tag_index)
        logger.debug("SQLite cache backend at %s (vacuum factor %d)", db_path, factor)

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        clock: Clock = time.time,
        rng: random.Random | None = None,
    ) -> SQLiteBackend:
        return cls(
            options={
                "cache_db_complete_path": config.backend.cache_db_complete_path,
                "automatic_vacuum_factor": config.backend.automatic_vacuum_factor,
                "busy_timeout": config.backend.busy_timeout,
            },
            directives={"lifetime": config.directives.lifetime},
            clock=clock,
            rng=rng,
        )

    @property
    def db_path(self) -> str:
        return str(self.connection.db_path)

    def __enter__(self) -> SQLiteBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def load(self, cache_id: str, skip_validity: bool = False) -> bytes | None:
        self.schema.ensure()
        return self.records.load(cache_id, skip_validity=skip_validity)

    def test(self, cache_id: str) -> int | None:
        self.schema.ensure()
        return self.records.test(cache_id)

    def save(
        self,
        data: bytes,
        cache_id: str,
        tags: str | Iterable[str] | None = None,
        specific_lifetime: int | None | bool = DEFAULT_LIFETIME,
    ) -> bool:
        self.schema.ensure()
        lifetime = self.get_lifetime(specific_lifetime)
        return self.records.save(cache_id, data, normalize_tags(tags), lifetime=lifetime)

    def remove(self, cache_id: str) -> bool:
        self.schema.ensure()
        return self.records.remove(cache_id)

    def touch(self, cache_id: str, extra_lifetime: int) -> bool:
        self.schema.ensure()
        return self.records.touch(cache_id, extra_lifetime)

    def get_ids(self) -> list[str]:
        self.schema.ensure()
        return self.records.ids()

    # ------------------------------------------------------------------
    # Tags & cleaning
    # ------------------------------------------------------------------

    def clean(
        self,
        mode: CleaningMode | str = CleaningMode.ALL,
        tags: str | Iterable[str] | None = None,
    ) -> bool:
        self.schema.ensure()
        result = self.cleaner.clean(mode, tags)
        self.vacuum.maybe_vacuum(self.connection.get())
        return result

    def get_tags(self) -> list[str]:
        self.schema.ensure()
        return self.tag_index.tags()

    def get_ids_matching_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        self.schema.ensure()
        return self.tag_index.ids_matching(tags)

    def get_ids_not_matching_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        self.schema.ensure()
        return self.tag_index.ids_not_matching(tags)

    def get_ids_matching_any_tags(self, tags: str | Iterable[str] | None = None) -> list[str]:
        self.schema.ensure()
        return self.tag_index.ids_matching_any(tags)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_metadatas(self, cache_id: str) -> CacheMetadata | None:
        self.schema.ensure()
        # Tags are read separately from the row, so stray links show up as-is
        tags = self.tag_index.tags_for(cache_id)
        record = self.records.get(cache_id)
        if record is None:
            return None
        return CacheMetadata(tags=tags, mtime=record.last_modified, expire=record.expire)

    def get_filling_percentage(self) -> int:
        self.connection.get()
        usage = shutil.disk_usage(self.connection.db_path.parent)
        if usage.total == 0:
            raise CacheError(f"Can't get total disk space for {self.connection.db_path.parent}")
        if usage.free >= usage.total:
            return 100
        return int(100.0 * (usage.total - usage.free) / usage.total)

    def get_capabilities(self) -> BackendCapabilities:
        return CAPABILITIES

    def close(self) -> None:
        self.connection.close()
