from .sqlite import SQLiteBackend

__all__ = ["SQLiteBackend"]
