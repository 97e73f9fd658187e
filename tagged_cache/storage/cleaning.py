"""CleanEngine: bulk removal by age, by tag, or everything."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..types import CleaningMode
from .records import RecordStore
from .tags import TagIndex

logger = logging.getLogger(__name__)


def parse_mode(mode: CleaningMode | str) -> CleaningMode | None:
    """Coerce a mode name to CleaningMode. None if it is not one."""
    if isinstance(mode, CleaningMode):
        return mode
    try:
        return CleaningMode(str(mode).lower())
    except ValueError:
        return None


class CleanEngine:
    """Runs one cleaning mode over the record store and tag index.

    ALL and OLD are single bulk deletes. The tag modes resolve the matching
    ids first and then call RecordStore.remove() once per id, so each removal
    gets its own vacuum check.
    """

    def __init__(self, records: RecordStore, tags: TagIndex) -> None:
        self._records = records
        self._tags = tags

    def clean(
        self,
        mode: CleaningMode | str = CleaningMode.ALL,
        tags: str | Iterable[str] | None = None,
    ) -> bool:
        parsed = parse_mode(mode)
        if parsed is None:
            logger.warning("Unknown cleaning mode: %r", mode)
            return False

        if parsed is CleaningMode.ALL:
            records_ok = self._records.delete_all()
            tags_ok = self._tags.delete_all()
            return records_ok and tags_ok

        if parsed is CleaningMode.OLD:
            now = self._records.now()
            tags_ok = self._tags.delete_expired(now)
            records_ok = self._records.delete_expired(now)
            return tags_ok and records_ok

        if parsed is CleaningMode.MATCHING_TAG:
            ids = self._tags.ids_matching(tags)
        elif parsed is CleaningMode.NOT_MATCHING_TAG:
            ids = self._tags.ids_not_matching(tags)
        else:
            ids = self._tags.ids_matching_any(tags)

        result = True
        for cache_id in ids:
            result = self._records.remove(cache_id) and result
        logger.debug("Clean %s removed %d ids", parsed.value, len(ids))
        return result
