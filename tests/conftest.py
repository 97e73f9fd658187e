"""Shared fixtures for tagged-cache tests."""

from __future__ import annotations

import random
import sqlite3
import tempfile
from pathlib import Path

import pytest

from tagged_cache.storage.sqlite import SQLiteBackend

T0 = 1_768_471_200  # 2026-01-15 10:00:00 UTC


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = T0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedRandom(random.Random):
    """Random source whose randint() returns queued values, then ``default``."""

    def __init__(self, values: list[int] | None = None, default: int = 2):
        super().__init__(0)
        self.values = list(values or [])
        self.default = default
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        if self.values:
            return self.values.pop(0)
        return self.default


def count_rows(db_path: Path, sql: str, params: tuple = ()) -> int:
    """Open a second connection and run a COUNT query."""
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute(sql, params).fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def tmp_store_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def tmp_sqlite_db(tmp_store_dir):
    return tmp_store_dir / "cache.db"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def never_vacuum() -> ScriptedRandom:
    return ScriptedRandom(default=2)


@pytest.fixture
def backend(tmp_sqlite_db, clock, never_vacuum):
    b = SQLiteBackend(
        options={"cache_db_complete_path": str(tmp_sqlite_db)},
        clock=clock,
        rng=never_vacuum,
    )
    yield b
    b.close()


@pytest.fixture
def tagged_backend(backend):
    """a:[t1,t2], b:[t1], c:[t2], d:[] all immortal."""
    backend.save(b"A", "a", ["t1", "t2"], None)
    backend.save(b"B", "b", ["t1"], None)
    backend.save(b"C", "c", ["t2"], None)
    backend.save(b"D", "d", [], None)
    return backend
