"""ConnectionManager: the single sqlite3 handle owned by a backend."""

from __future__ import annotations

import importlib.util
import logging
import sqlite3
from pathlib import Path

from ..exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT = 5.0


def ensure_sqlite_available() -> None:
    """Raise if this interpreter was built without the sqlite3 extension."""
    if importlib.util.find_spec("_sqlite3") is None:
        raise StorageUnavailableError(
            "Cannot use SQLite storage because the '_sqlite3' extension "
            "is not available in the current Python environment"
        )


class ConnectionManager:
    """Lazily opens one connection to the store file.

    The connection runs in autocommit mode, so every statement commits on its
    own; multi-statement transactions must be opened explicitly with BEGIN.
    ``busy_timeout`` makes a writer wait for a lock instead of failing at once.
    """

    def __init__(self, db_path: str | Path, busy_timeout: float = DEFAULT_BUSY_TIMEOUT) -> None:
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def get(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def _open(self) -> sqlite3.Connection:
        conn = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            # Paths that are not database files fail here
            conn.execute("PRAGMA schema_version").fetchone()
        except (OSError, sqlite3.Error) as e:
            if conn is not None:
                conn.close()
            raise StorageUnavailableError(
                f"Impossible to open {self.db_path} cache DB file: {e}",
                path=str(self.db_path),
            ) from e
        logger.debug("Opened cache database %s (busy timeout %.1fs)", self.db_path, self.busy_timeout)
        return conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
