"""TagIndex: the tag <-> cache id relation and its set-algebra queries."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

# One statement, so SQLite's write lock makes the check-and-insert atomic.
REGISTER_SQL = """\
INSERT INTO tag (name, id)
SELECT :name, :id
WHERE NOT EXISTS (SELECT 1 FROM tag WHERE name = :name AND id = :id)
"""


def normalize_tags(tags: str | Iterable[str] | None) -> list[str]:
    """Accept a single tag, an iterable of tags, or None."""
    if tags is None:
        return []
    if isinstance(tags, str):
        return [tags]
    return list(tags)


class TagIndex:
    """Many-to-many links between tag names and cache ids.

    None of the queries look at ``cache.expire``: an expired record still
    matches its tags until it is physically removed.
    """

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection

    def register(self, cache_id: str, tag: str) -> bool:
        conn = self._connection.get()
        try:
            conn.execute(REGISTER_SQL, {"name": tag, "id": cache_id})
        except sqlite3.Error as e:
            logger.warning("Impossible to register tag=%s on id=%s: %s", tag, cache_id, e)
            return False
        return True

    def delete_for(self, cache_id: str) -> bool:
        conn = self._connection.get()
        try:
            conn.execute("DELETE FROM tag WHERE id = ?", (cache_id,))
        except sqlite3.Error as e:
            logger.warning("Impossible to delete tags of id=%s: %s", cache_id, e)
            return False
        return True

    def delete_all(self) -> bool:
        conn = self._connection.get()
        try:
            conn.execute("DELETE FROM tag")
        except sqlite3.Error as e:
            logger.warning("Impossible to delete tags: %s", e)
            return False
        return True

    def delete_expired(self, now: int) -> bool:
        """Drop links whose record has a finite expire at or before ``now``."""
        conn = self._connection.get()
        try:
            conn.execute(
                "DELETE FROM tag WHERE id IN "
                "(SELECT id FROM cache WHERE expire > 0 AND expire <= ?)",
                (now,),
            )
        except sqlite3.Error as e:
            logger.warning("Impossible to delete tags of expired records: %s", e)
            return False
        return True

    def tags_for(self, cache_id: str) -> list[str]:
        conn = self._connection.get()
        try:
            rows = conn.execute("SELECT name FROM tag WHERE id = ?", (cache_id,)).fetchall()
        except sqlite3.Error as e:
            logger.warning("Impossible to read tags of id=%s: %s", cache_id, e)
            return []
        return [r["name"] for r in rows]

    def tags(self) -> list[str]:
        conn = self._connection.get()
        try:
            rows = conn.execute("SELECT DISTINCT(name) AS name FROM tag").fetchall()
        except sqlite3.Error as e:
            logger.warning("Impossible to list tags: %s", e)
            return []
        return [r["name"] for r in rows]

    def _ids_with_tag(self, tag: str) -> list[str]:
        conn = self._connection.get()
        rows = conn.execute(
            "SELECT DISTINCT(id) AS id FROM tag WHERE name = ?", (tag,)
        ).fetchall()
        return [r["id"] for r in rows]

    def ids_matching(self, tags: str | Iterable[str] | None) -> list[str]:
        """Ids carrying every one of ``tags`` (logical AND)."""
        ids: list[str] = []
        first = True
        try:
            for tag in normalize_tags(tags):
                tagged = self._ids_with_tag(tag)
                if first:
                    ids = tagged
                    first = False
                else:
                    keep = set(tagged)
                    ids = [i for i in ids if i in keep]
        except sqlite3.Error as e:
            logger.warning("Tag query failed for %s: %s", tags, e)
            return []
        return ids

    def ids_matching_any(self, tags: str | Iterable[str] | None) -> list[str]:
        """Ids carrying at least one of ``tags`` (logical OR)."""
        ids: list[str] = []
        seen: set[str] = set()
        try:
            for tag in normalize_tags(tags):
                for cache_id in self._ids_with_tag(tag):
                    if cache_id not in seen:
                        seen.add(cache_id)
                        ids.append(cache_id)
        except sqlite3.Error as e:
            logger.warning("Tag query failed for %s: %s", tags, e)
            return []
        return ids

    def ids_not_matching(self, tags: str | Iterable[str] | None) -> list[str]:
        """Every stored id (expired or not) carrying none of ``tags``.

        Probes each (id, tag) pair one at a time.
        """
        tag_list = normalize_tags(tags)
        conn = self._connection.get()
        result: list[str] = []
        try:
            rows = conn.execute("SELECT id FROM cache").fetchall()
            for row in rows:
                cache_id = row["id"]
                matching = False
                for tag in tag_list:
                    count = conn.execute(
                        "SELECT COUNT(*) FROM tag WHERE name = ? AND id = ?",
                        (tag, cache_id),
                    ).fetchone()[0]
                    if count > 0:
                        matching = True
                        break
                if not matching:
                    result.append(cache_id)
        except sqlite3.Error as e:
            logger.warning("Tag query failed for %s: %s", tags, e)
            return []
        return result
