"""RecordStore: cache rows and their expiration rules."""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterable

from ..core.vacuum import VacuumScheduler
from ..types import CacheRecord, Clock
from .connection import ConnectionManager
from .tags import TagIndex

logger = logging.getLogger(__name__)

VALID_SQL = "(expire = 0 OR expire > :now)"


class RecordStore:
    """CRUD over the ``cache`` table.

    Expiry is lazy: an expired row stays on disk and is only filtered out at
    read time, until remove() or a clean deletes it. None of the multi-step
    operations run inside a transaction; each statement commits on its own.

    Writes log and return False on a database error. Reads (load, test, get,
    ids, count) let sqlite3.Error propagate to the caller.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        tags: TagIndex,
        vacuum: VacuumScheduler,
        clock: Clock = time.time,
    ) -> None:
        self._connection = connection
        self._tags = tags
        self._vacuum = vacuum
        self._clock = clock

    def now(self) -> int:
        return int(self._clock())

    def load(self, cache_id: str, skip_validity: bool = False) -> bytes | None:
        conn = self._connection.get()
        sql = "SELECT content FROM cache WHERE id = :id"
        if not skip_validity:
            sql += f" AND {VALID_SQL}"
        row = conn.execute(sql, {"id": cache_id, "now": self.now()}).fetchone()
        if not row:
            return None
        return bytes(row["content"])

    def test(self, cache_id: str) -> int | None:
        """lastModified of a currently valid record, None otherwise."""
        conn = self._connection.get()
        row = conn.execute(
            f"SELECT lastModified FROM cache WHERE id = :id AND {VALID_SQL}",
            {"id": cache_id, "now": self.now()},
        ).fetchone()
        if not row:
            return None
        return int(row["lastModified"])

    def get(self, cache_id: str) -> CacheRecord | None:
        """Raw row, expired or not."""
        conn = self._connection.get()
        row = conn.execute(
            "SELECT id, content, lastModified, expire FROM cache WHERE id = ?",
            (cache_id,),
        ).fetchone()
        if not row:
            return None
        return CacheRecord(
            id=row["id"],
            content=bytes(row["content"]),
            last_modified=int(row["lastModified"]),
            expire=int(row["expire"]),
        )

    def save(
        self,
        cache_id: str,
        content: bytes,
        tags: Iterable[str] = (),
        lifetime: int | None = None,
    ) -> bool:
        """Replace the row for ``cache_id`` and tag it.

        ``lifetime`` None means the record never expires. A failed tag
        registration makes the result False but keeps the row.
        """
        mtime = self.now()
        expire = 0 if lifetime is None else mtime + lifetime
        conn = self._connection.get()
        try:
            conn.execute("DELETE FROM cache WHERE id = ?", (cache_id,))
            conn.execute(
                "INSERT INTO cache (id, content, lastModified, expire) VALUES (?, ?, ?, ?)",
                (cache_id, sqlite3.Binary(content), mtime, expire),
            )
        except sqlite3.Error as e:
            logger.warning("Impossible to store the cache id=%s: %s", cache_id, e)
            return False

        result = True
        for tag in tags:
            result = self._tags.register(cache_id, tag) and result
        return result

    def remove(self, cache_id: str) -> bool:
        conn = self._connection.get()
        try:
            existed = conn.execute(
                "SELECT COUNT(*) FROM cache WHERE id = ?", (cache_id,)
            ).fetchone()[0] > 0
        except sqlite3.Error as e:
            logger.warning("Impossible to look up cache id=%s: %s", cache_id, e)
            existed = False

        try:
            conn.execute("DELETE FROM cache WHERE id = ?", (cache_id,))
            deleted = True
        except sqlite3.Error as e:
            logger.warning("Impossible to delete cache id=%s: %s", cache_id, e)
            deleted = False

        tags_deleted = self._tags.delete_for(cache_id)

        self._vacuum.maybe_vacuum(conn)
        return existed and deleted and tags_deleted

    def touch(self, cache_id: str, extra_lifetime: int) -> bool:
        """Push a valid record's expire forward by ``extra_lifetime`` seconds.

        The extension is added to the stored expire, not to the current time.
        """
        now = self.now()
        conn = self._connection.get()
        try:
            row = conn.execute(
                f"SELECT expire FROM cache WHERE id = :id AND {VALID_SQL}",
                {"id": cache_id, "now": now},
            ).fetchone()
            if not row:
                return False
            conn.execute(
                "UPDATE cache SET lastModified = ?, expire = ? WHERE id = ?",
                (now, int(row["expire"]) + extra_lifetime, cache_id),
            )
        except sqlite3.Error as e:
            logger.warning("Impossible to touch cache id=%s: %s", cache_id, e)
            return False
        return True

    def ids(self) -> list[str]:
        """Ids of records that are still valid."""
        conn = self._connection.get()
        rows = conn.execute(
            f"SELECT id FROM cache WHERE {VALID_SQL}", {"now": self.now()}
        ).fetchall()
        return [r["id"] for r in rows]

    def count(self) -> int:
        """Rows on disk, expired ones included."""
        conn = self._connection.get()
        return conn.execute("SELECT COUNT(*) FROM cache").fetchone()[0]

    def delete_all(self) -> bool:
        conn = self._connection.get()
        try:
            conn.execute("DELETE FROM cache")
        except sqlite3.Error as e:
            logger.warning("Impossible to delete cache rows: %s", e)
            return False
        return True

    def delete_expired(self, now: int) -> bool:
        conn = self._connection.get()
        try:
            conn.execute("DELETE FROM cache WHERE expire > 0 AND expire <= ?", (now,))
        except sqlite3.Error as e:
            logger.warning("Impossible to delete expired cache rows: %s", e)
            return False
        return True

    def expire_now(self, cache_id: str) -> None:
        """Force a record into the past. Meant for tests."""
        past = self.now() - 1
        conn = self._connection.get()
        conn.execute(
            "UPDATE cache SET lastModified = ?, expire = ? WHERE id = ?",
            (past, past, cache_id),
        )
