"""VacuumScheduler: probabilistic VACUUM after deletes and cleans."""

from __future__ import annotations

import logging
import random
import sqlite3

logger = logging.getLogger(__name__)


class VacuumScheduler:
    """Decides when to compact the store file.

    ``factor`` tunes how often a delete or clean is followed by a VACUUM:

    - ``0``: never
    - ``1``: after every delete/clean
    - ``n > 1``: randomly, about once every ``n`` calls

    VACUUM rewrites the whole database file, so it is amortized rather than
    run on every mutation.
    """

    def __init__(self, factor: int = 10, rng: random.Random | None = None) -> None:
        if factor < 0:
            raise ValueError(f"automatic_vacuum_factor must be >= 0, got {factor}")
        self.factor = factor
        self._rng = rng or random.Random()
        self.runs = 0

    def should_vacuum(self) -> bool:
        if self.factor == 0:
            return False
        if self.factor == 1:
            return True
        return self._rng.randint(1, self.factor) == 1

    def maybe_vacuum(self, conn: sqlite3.Connection) -> bool:
        """Run VACUUM if the draw says so. Returns True if it ran."""
        if not self.should_vacuum():
            return False
        try:
            conn.execute("VACUUM")
        except sqlite3.Error as e:
            logger.warning("Automatic vacuum failed: %s", e)
            return False
        self.runs += 1
        logger.debug("Automatic vacuum completed (run %d)", self.runs)
        return True
