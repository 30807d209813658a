"""In-memory catalog of known releases, kept in branch order."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import semantic_version

from relbisect.common.logging_utils import extra_context, is_debug_enabled
from relbisect.constants import Constants
from .models import LoadSummary, SemOrStr
from .parser import canonical, is_stable, normalize_feed, parse_versions, version_sort_key

logger = logging.getLogger(__name__)


class UnknownVersionError(ValueError):
    """Raised when a range endpoint is not in the catalog."""

    def __init__(self, version: SemOrStr):
        self.version = canonical(version)
        super().__init__(f"Unknown version: {self.version}")


@dataclass(frozen=True)
class _Snapshot:
    """Sorted releases and their positions, published as one unit."""
    versions: Tuple[semantic_version.Version, ...] = ()
    positions: Dict[str, int] = field(default_factory=dict)


class VersionCatalog:
    """Ordered, deduplicated set of known releases.

    The catalog is fed its data through :meth:`load`; it never fetches
    anything itself. See ``RefreshingCatalog`` for the self-populating
    variant used in production.
    """

    def __init__(
        self,
        document: Any = None,
        *,
        supported_count: int = Constants.NUM_SUPPORTED_MAJORS,
        log: Optional[logging.Logger] = None,
    ):
        self._supported_count = supported_count
        self._log = log or logger
        self._snapshot = _Snapshot()
        if document is not None:
            self.load(document)

    def load(self, document: Any) -> LoadSummary:
        """Replace the catalog contents with the releases in ``document``.

        Unparseable entries are dropped with a warning. The new sequence is
        built completely before it replaces the old one.
        """
        feed = normalize_feed(document)
        parsed, rejected = parse_versions(feed.raw_versions)
        dropped = feed.invalid_count + len(rejected)
        if dropped:
            self._log.warning(
                "Dropped %d unrecognized release entries (shape=%s)",
                dropped,
                feed.shape.value,
            )
            if is_debug_enabled(self._log) and rejected:
                self._log.debug(
                    "Rejected version strings: %s",
                    ", ".join(rejected[:20]),
                    extra=extra_context(event="parse", component="catalog", action="load", count=len(rejected)),
                )

        unique: Dict[str, semantic_version.Version] = {}
        for version in sorted(parsed, key=version_sort_key):
            unique.setdefault(str(version), version)
        ordered = tuple(unique.values())
        positions = {str(version): i for i, version in enumerate(ordered)}
        self._snapshot = _Snapshot(versions=ordered, positions=positions)

        if is_debug_enabled(self._log):
            self._log.debug(
                "Catalog loaded",
                extra=extra_context(
                    event="function_exit", component="catalog", action="load",
                    outcome=feed.shape.value, count=len(ordered)
                ),
            )
        return LoadSummary(shape=feed.shape, accepted=len(ordered), dropped=dropped)

    @property
    def versions(self) -> List[semantic_version.Version]:
        """Full list of known releases, sorted in branch order."""
        return list(self._snapshot.versions)

    @property
    def latest(self) -> Optional[semantic_version.Version]:
        """The latest release (by version, not by date)."""
        versions = self._snapshot.versions
        return versions[-1] if versions else None

    @property
    def latest_stable(self) -> Optional[semantic_version.Version]:
        """The latest stable release (by version, not by date)."""
        stable = None
        for version in self._snapshot.versions:
            if is_stable(version):
                stable = version
        return stable

    @property
    def prerelease_majors(self) -> List[int]:
        """Majors of branches that only have prereleases."""
        versions = self._snapshot.versions
        stable = {v.major for v in versions if is_stable(v)}
        majors: List[int] = []
        for version in versions:
            if version.major not in stable and version.major not in majors:
                majors.append(version.major)
        return majors

    @property
    def stable_majors(self) -> List[int]:
        """Majors of branches with at least one stable release."""
        majors: List[int] = []
        for version in self._snapshot.versions:
            if is_stable(version) and version.major not in majors:
                majors.append(version.major)
        return majors

    @property
    def supported_majors(self) -> List[int]:
        """Majors of the newest stable branches, ascending."""
        if self._supported_count <= 0:
            return []
        return self.stable_majors[-self._supported_count:]

    @property
    def obsolete_majors(self) -> List[int]:
        """Stable majors that are no longer supported."""
        stable = self.stable_majors
        if self._supported_count <= 0:
            return stable
        return stable[:-self._supported_count]

    def is_version(self, ref: SemOrStr) -> bool:
        """Return True iff ``ref`` is a release this catalog knows about."""
        return canonical(ref) in self._snapshot.positions

    def in_major(self, major: int) -> List[semantic_version.Version]:
        """All releases with the given major, in branch order."""
        return [v for v in self._snapshot.versions if v.major == major]

    def in_range(self, a: SemOrStr, b: SemOrStr) -> List[semantic_version.Version]:
        """All releases between ``a`` and ``b`` inclusive, in branch order.

        The slice is taken by catalog position, so the endpoints may be
        given in either order.

        Raises:
            UnknownVersionError: if either endpoint is not in the catalog.
        """
        snapshot = self._snapshot
        first = snapshot.positions.get(canonical(a))
        if first is None:
            raise UnknownVersionError(a)
        last = snapshot.positions.get(canonical(b))
        if last is None:
            raise UnknownVersionError(b)
        if first > last:
            first, last = last, first
        return list(snapshot.versions[first:last + 1])

    def __len__(self) -> int:
        return len(self._snapshot.versions)
