"""All dataclasses, enums, and type aliases for tagged-cache."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable


Clock = Callable[[], float]


# ---------------------------------------------------------------------------
# Records & Tags
# ---------------------------------------------------------------------------

@dataclass
class CacheRecord:
    """A single row of the ``cache`` table."""
    id: str
    content: bytes
    last_modified: int  # epoch seconds
    expire: int = 0  # epoch seconds, 0 = never expires


@dataclass
class CacheMetadata:
    """Tags and timestamps for one cache id."""
    tags: list[str] = field(default_factory=list)
    mtime: int = 0
    expire: int = 0


class CleaningMode(str, Enum):
    ALL = "all"
    OLD = "old"
    MATCHING_TAG = "matching_tag"
    NOT_MATCHING_TAG = "not_matching_tag"
    MATCHING_ANY_TAG = "matching_any_tag"


class SchemaState(Enum):
    UNCHECKED = "unchecked"
    VALID = "valid"
    REBUILDING = "rebuilding"


@dataclass(frozen=True)
class BackendCapabilities:
    """Static feature flags advertised to the cache frontend."""
    automatic_cleaning: bool = True
    tags: bool = True
    expired_read: bool = True  # load(..., skip_validity=True) works
    priority: bool = False
    infinite_lifetime: bool = True
    get_list: bool = True  # ids and tags can be enumerated

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass
class BackendConfig:
    cache_db_complete_path: str | None = None
    automatic_vacuum_factor: int = 10
    busy_timeout: float = 5.0  # seconds a writer waits on a locked database


@dataclass
class DirectivesConfig:
    lifetime: int | None = 3600  # default lifetime in seconds, None = infinite


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class CacheConfig:
    """Top-level config."""
    version: str = "1.0"
    backend: BackendConfig = field(default_factory=BackendConfig)
    directives: DirectivesConfig = field(default_factory=DirectivesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
