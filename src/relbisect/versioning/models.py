"""Data models for the release catalog."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

import semantic_version

# A release reference: either a parsed version or its string form.
SemOrStr = Union[semantic_version.Version, str]


class FeedShape(Enum):
    """Shape of a raw release document."""
    STRINGS = "strings"
    RECORDS = "records"
    MIXED = "mixed"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class NormalizedFeed:
    """A raw release document reduced to candidate version strings."""
    shape: FeedShape
    raw_versions: Tuple[str, ...]
    invalid_count: int


@dataclass(frozen=True)
class LoadSummary:
    """Outcome of loading a document into a catalog."""
    shape: FeedShape
    accepted: int
    dropped: int


@dataclass(frozen=True)
class CacheRecord:
    """Raw fetched document plus the epoch time it was fetched."""
    document: Any
    fetched_at: float

    def is_fresh(self, now: float, ttl_sec: float) -> bool:
        """Check whether this record is still within its TTL."""
        return now - self.fetched_at <= ttl_sec
