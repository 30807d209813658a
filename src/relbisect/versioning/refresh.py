"""Self-populating release catalog with TTL-gated background refresh.

``RefreshingCatalog`` wraps a plain :class:`VersionCatalog`. Every accessor
goes through a single freshness check; when the data is older than the TTL
a refresh is started on a daemon thread and the caller is answered from the
data already in memory. A failed refresh is logged and otherwise ignored.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Any, Callable, List, Optional

import semantic_version

from relbisect.common.http_client import get_json
from relbisect.common.logging_utils import extra_context, is_debug_enabled, safe_url
from relbisect.constants import Constants
from .cache import ReleaseCache
from .catalog import VersionCatalog
from .models import FeedShape, SemOrStr
from .parser import normalize_feed, parse_versions

logger = logging.getLogger(__name__)


class FeedError(RuntimeError):
    """Raised when the upstream release feed cannot be used."""


def fetch_releases(url: str = Constants.RELEASES_URL) -> Any:
    """Fetch the raw release document from ``url``.

    Raises:
        FeedError: on transport failure, a non-200 status or invalid JSON.
    """
    logger.debug("fetching releases list from %s", safe_url(url))
    status_code, _, data = get_json(url)
    if status_code != 200 or data is None:
        raise FeedError(f"Could not fetch releases from {safe_url(url)} (status {status_code})")
    return data


class RefreshingCatalog:
    """Release catalog that keeps itself fresh from an upstream feed."""

    def __init__(
        self,
        catalog: VersionCatalog,
        *,
        fetcher: Callable[[], Any],
        cache: Optional[ReleaseCache] = None,
        fetched_at: float = 0.0,
        ttl_sec: float = Constants.VERSION_CACHE_TTL_SEC,
        clock: Callable[[], float] = time.time,
        log: Optional[logging.Logger] = None,
    ):
        self._catalog = catalog
        self._fetcher = fetcher
        self._cache = cache
        self._fetched_at = fetched_at
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._log = log or logger
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def create(
        cls,
        cache_path: str,
        *,
        url: str = Constants.RELEASES_URL,
        ttl_sec: float = Constants.VERSION_CACHE_TTL_SEC,
        supported_count: int = Constants.NUM_SUPPORTED_MAJORS,
        fetcher: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.time,
        log: Optional[logging.Logger] = None,
    ) -> "RefreshingCatalog":
        """Build a catalog from the persisted cache, fetching if it is stale.

        A failed startup fetch falls back to whatever the cache held.
        """
        log = log or logger
        cache = ReleaseCache(cache_path)
        record = cache.read()
        now = clock()

        catalog = VersionCatalog(
            record.document if record is not None else None,
            supported_count=supported_count,
            log=log,
        )
        instance = cls(
            catalog,
            fetcher=fetcher or functools.partial(fetch_releases, url),
            cache=cache,
            fetched_at=record.fetched_at if record is not None else 0.0,
            ttl_sec=ttl_sec,
            clock=clock,
            log=log,
        )

        if record is None or not record.is_fresh(now, ttl_sec):
            if not instance.refresh():
                # stale-but-available: do not retry until the TTL lapses again
                instance._fetched_at = now
        return instance

    @property
    def catalog(self) -> VersionCatalog:
        """The wrapped catalog, without a freshness check."""
        return self._catalog

    @property
    def fetched_at(self) -> float:
        return self._fetched_at

    def is_fresh(self) -> bool:
        return self._clock() - self._fetched_at <= self._ttl_sec

    def refresh(self) -> bool:
        """Fetch the feed now and replace the catalog contents.

        Returns:
            True if the catalog was refreshed, False if the fetch failed.
        """
        with self._lock:
            previous = self._fetched_at
            stamped = self._clock()
            self._fetched_at = stamped
        return self._refresh_or_restore(previous, stamped)

    def wait_for_refresh(self, timeout: Optional[float] = None) -> None:
        """Block until an in-flight background refresh finishes."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _refresh_or_restore(self, previous: float, stamped: float) -> bool:
        ok = self._refresh_now()
        if not ok:
            with self._lock:
                if self._fetched_at == stamped:
                    self._fetched_at = previous
        return ok

    def _refresh_now(self) -> bool:
        try:
            document = self._fetcher()
            feed = normalize_feed(document)
            if feed.shape is FeedShape.UNRECOGNIZED:
                raise FeedError("Unrecognized release document")
            if document and not parse_versions(feed.raw_versions)[0]:
                raise FeedError(f"No usable versions in release document ({len(document)} entries)")
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # Stale data stays authoritative; the caller never sees this.
            self._log.debug("error fetching versions: %s", exc)
            return False

        summary = self._catalog.load(document)
        with self._lock:
            self._fetched_at = self._clock()

        if self._cache is not None:
            try:
                self._cache.write(document)
            except OSError as exc:
                self._log.warning("Could not save release cache %s: %s", self._cache.path, exc)

        if is_debug_enabled(self._log):
            self._log.debug(
                "Release catalog refreshed",
                extra=extra_context(
                    event="refresh", component="catalog", action="refresh",
                    outcome="success", count=summary.accepted
                ),
            )
        return True

    def _keep_fresh(self) -> None:
        """Start a background refresh iff the data is too old."""
        now = self._clock()
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            if now - self._fetched_at <= self._ttl_sec:
                return
            previous = self._fetched_at
            self._fetched_at = now
            thread = threading.Thread(
                target=self._refresh_or_restore,
                args=(previous, now),
                name="relbisect-catalog-refresh",
                daemon=True,
            )
            self._thread = thread
        thread.start()

    def _fresh(self) -> VersionCatalog:
        self._keep_fresh()
        return self._catalog

    @property
    def versions(self) -> List[semantic_version.Version]:
        return self._fresh().versions

    @property
    def latest(self) -> Optional[semantic_version.Version]:
        return self._fresh().latest

    @property
    def latest_stable(self) -> Optional[semantic_version.Version]:
        return self._fresh().latest_stable

    @property
    def prerelease_majors(self) -> List[int]:
        return self._fresh().prerelease_majors

    @property
    def stable_majors(self) -> List[int]:
        return self._fresh().stable_majors

    @property
    def supported_majors(self) -> List[int]:
        return self._fresh().supported_majors

    @property
    def obsolete_majors(self) -> List[int]:
        return self._fresh().obsolete_majors

    def is_version(self, ref: SemOrStr) -> bool:
        return self._fresh().is_version(ref)

    def in_major(self, major: int) -> List[semantic_version.Version]:
        return self._fresh().in_major(major)

    def in_range(self, a: SemOrStr, b: SemOrStr) -> List[semantic_version.Version]:
        return self._fresh().in_range(a, b)

    def __len__(self) -> int:
        return len(self._fresh())
