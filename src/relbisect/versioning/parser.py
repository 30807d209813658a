"""Release document normalization, version parsing and branch ordering."""

import functools
import logging
from typing import Any, Iterable, List, Optional, Tuple

import semantic_version

from relbisect.constants import Constants
from .models import FeedShape, NormalizedFeed, SemOrStr

logger = logging.getLogger(__name__)


def _entry_version(entry: Any) -> Optional[str]:
    """Extract the version string from a feed entry, or None if it has none."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("version")
        if isinstance(value, str):
            return value
    return None


def normalize_feed(document: Any) -> NormalizedFeed:
    """Reduce a release document to a flat tuple of version strings.

    Accepts a list of strings or a list of records carrying a ``version``
    string. Entries matching neither shape are dropped and counted.
    """
    if not isinstance(document, list):
        return NormalizedFeed(shape=FeedShape.UNRECOGNIZED, raw_versions=(), invalid_count=0)

    if all(isinstance(entry, str) for entry in document):
        shape = FeedShape.STRINGS
    elif all(isinstance(entry, dict) and isinstance(entry.get("version"), str) for entry in document):
        shape = FeedShape.RECORDS
    else:
        shape = FeedShape.MIXED

    raw_versions = []
    invalid = 0
    for entry in document:
        value = _entry_version(entry)
        if value is None:
            invalid += 1
        else:
            raw_versions.append(value)
    return NormalizedFeed(shape=shape, raw_versions=tuple(raw_versions), invalid_count=invalid)


def parse_version(raw: str) -> Optional[semantic_version.Version]:
    """Parse a version string, tolerating a leading ``v`` or ``=``.

    Returns:
        The parsed version, or None when ``raw`` is not a valid semver.
    """
    text = raw.strip().lstrip("=v").strip()
    try:
        return semantic_version.Version(text)
    except ValueError:
        return None


def parse_versions(raw_versions: Iterable[str]) -> Tuple[List[semantic_version.Version], List[str]]:
    """Parse each string independently.

    Returns:
        Tuple of (parsed versions, strings that failed to parse)
    """
    parsed = []
    rejected = []
    for raw in raw_versions:
        version = parse_version(raw)
        if version is None:
            rejected.append(raw)
        else:
            parsed.append(version)
    return parsed, rejected


def canonical(ref: SemOrStr) -> str:
    """Canonical string form of a version reference."""
    if isinstance(ref, semantic_version.Version):
        return str(ref)
    version = parse_version(ref)
    return str(version) if version is not None else ref.strip()


def is_stable(version: semantic_version.Version) -> bool:
    """True when the version carries no prerelease identifiers."""
    return not version.prerelease


def compare_versions(a: semantic_version.Version, b: semantic_version.Version) -> int:
    """Order two versions in branch order.

    Releases go nightly -> other prerelease tags -> stable within one
    major.minor.patch, so ``nightly`` is forced ahead of other prerelease
    tags before falling back to semver precedence.
    """
    main_a = (a.major, a.minor, a.patch)
    main_b = (b.major, b.minor, b.patch)
    if main_a != main_b:
        return -1 if main_a < main_b else 1

    pre_a = a.prerelease[0] if a.prerelease else None
    pre_b = b.prerelease[0] if b.prerelease else None
    if pre_a == Constants.NIGHTLY_TAG and pre_b != Constants.NIGHTLY_TAG:
        return -1
    if pre_a != Constants.NIGHTLY_TAG and pre_b == Constants.NIGHTLY_TAG:
        return 1

    if a < b:
        return -1
    if a > b:
        return 1
    # equal precedence, differing only in build metadata
    text_a, text_b = str(a), str(b)
    return (text_a > text_b) - (text_a < text_b)


version_sort_key = functools.cmp_to_key(compare_versions)
