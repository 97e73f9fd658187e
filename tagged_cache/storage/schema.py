"""SchemaManager: checks the structure version and rebuilds on mismatch."""

from __future__ import annotations

import logging
import sqlite3

from ..exceptions import SchemaError
from ..types import SchemaState
from .connection import ConnectionManager

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

DROP_SQL = (
    "DROP TABLE IF EXISTS version",
    "DROP TABLE IF EXISTS cache",
    "DROP TABLE IF EXISTS tag",
)

CREATE_SQL = (
    "CREATE TABLE version (num INTEGER PRIMARY KEY)",
    "CREATE TABLE cache (id TEXT PRIMARY KEY, content BLOB, lastModified INTEGER, expire INTEGER)",
    "CREATE TABLE tag (name TEXT, id TEXT)",
    "CREATE INDEX tag_id_index ON tag(id)",
    "CREATE INDEX tag_name_index ON tag(name)",
    "CREATE INDEX cache_id_expire_index ON cache(id, expire)",
)


class SchemaManager:
    """Per-backend guard that makes sure the tables exist at the right version.

    The first ``ensure()`` reads the version row. Anything other than
    ``SCHEMA_VERSION`` (missing table, empty table, other number) drops all
    three tables and recreates them, wiping every record and tag. There is no
    migration between versions. Once valid, the check is never repeated for
    this instance.
    """

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self.state = SchemaState.UNCHECKED

    def ensure(self) -> None:
        if self.state is SchemaState.VALID:
            return
        if not self.check_version():
            self.rebuild()
            if not self.check_version():
                raise SchemaError(
                    f"Impossible to build cache structure in {self._connection.db_path}"
                )
        self.state = SchemaState.VALID

    def check_version(self) -> bool:
        conn = self._connection.get()
        try:
            row = conn.execute("SELECT num FROM version").fetchone()
        except sqlite3.Error:
            return False
        return row is not None and row[0] == SCHEMA_VERSION

    def rebuild(self) -> None:
        """Drop and recreate every table inside one exclusive transaction."""
        self.state = SchemaState.REBUILDING
        conn = self._connection.get()
        logger.warning(
            "Cache structure in %s missing or not at version %d; rebuilding (all entries dropped)",
            self._connection.db_path, SCHEMA_VERSION,
        )
        try:
            conn.execute("BEGIN EXCLUSIVE TRANSACTION")
            for stmt in DROP_SQL + CREATE_SQL:
                conn.execute(stmt)
            conn.execute("INSERT INTO version (num) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            self.state = SchemaState.UNCHECKED
            raise SchemaError(
                f"Impossible to build cache structure in {self._connection.db_path}: {e}"
            ) from e
