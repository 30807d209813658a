"""Release catalog: parsing, branch ordering, classification and caching."""

from .catalog import UnknownVersionError, VersionCatalog
from .models import CacheRecord, FeedShape, LoadSummary, NormalizedFeed, SemOrStr
from .parser import compare_versions, normalize_feed, parse_version
from .refresh import FeedError, RefreshingCatalog, fetch_releases

__all__ = [
    "CacheRecord",
    "FeedError",
    "FeedShape",
    "LoadSummary",
    "NormalizedFeed",
    "RefreshingCatalog",
    "SemOrStr",
    "UnknownVersionError",
    "VersionCatalog",
    "compare_versions",
    "fetch_releases",
    "normalize_feed",
    "parse_version",
]
