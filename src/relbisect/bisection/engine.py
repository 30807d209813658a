"""Tri-outcome binary search over a range of releases.

Each step runs the payload against the release in the middle of the current
window. A pass moves the left edge up, a fail moves the right edge down, and
an inconclusive run (launch failure or unexpected exit code) stops the
search, since it says nothing about which side the boundary is on.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

import semantic_version

from relbisect.common.logging_utils import extra_context, is_debug_enabled
from relbisect.runner.models import RunOptions, TestResult, TestStatus
from relbisect.runner.process import ProcessRunner
from relbisect.runner.resolvers import ExecutableResolver, PayloadResolver, ResolutionError
from relbisect.versioning.catalog import UnknownVersionError, VersionCatalog
from relbisect.versioning.models import SemOrStr
from relbisect.versioning.parser import canonical
from relbisect.versioning.refresh import RefreshingCatalog
from .models import BisectError, BisectResult, BisectStatus, BisectStep

logger = logging.getLogger(__name__)

Catalog = Union[VersionCatalog, RefreshingCatalog]


class BisectObserver:
    """Receives progress notifications from a bisection session.

    All hooks are no-ops; subclasses override what they need. Exceptions
    raised by a hook are logged and never change the search.
    """

    def bisect_started(self, versions: List[semantic_version.Version], source: str) -> None:
        """Called once the range and payload are resolved."""

    def step_completed(self, step: BisectStep) -> None:
        """Called after each test run."""

    def bisect_finished(self, result: BisectResult) -> None:
        """Called with the final result of every session."""


def midpoint(left: int, right: int) -> int:
    """``round(left + (right - left) / 2)`` with halves rounded up."""
    return (left + right + 1) // 2


class BisectionEngine:
    """Finds the adjacent (last good, first bad) pair of releases."""

    def __init__(
        self,
        catalog: Catalog,
        runner: ProcessRunner,
        executable_resolver: ExecutableResolver,
        payload_resolver: PayloadResolver,
        *,
        observer: Optional[BisectObserver] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._catalog = catalog
        self._runner = runner
        self._executable_resolver = executable_resolver
        self._payload_resolver = payload_resolver
        self._observer = observer
        self._log = log or logger

    def _notify(self, hook: str, *args: Any) -> None:
        if self._observer is None:
            return
        try:
            getattr(self._observer, hook)(*args)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._log.warning("Bisect observer %s failed: %s", hook, exc)

    def _finish(self, result: BisectResult) -> BisectResult:
        self._notify("bisect_finished", result)
        return result

    def test(
        self,
        version_or_path: SemOrStr,
        payload_source: Any,
        options: Optional[RunOptions] = None,
    ) -> TestResult:
        """Run the payload once against a single release or local build.

        Raises:
            ResolutionError: if the executable or payload cannot be resolved.
        """
        payload = self._payload_resolver.resolve(payload_source)
        ref = str(version_or_path)
        executable = self._executable_resolver.resolve(ref)
        label = canonical(ref) if self._catalog.is_version(ref) else None
        return self._runner.run_once(
            executable, payload.entry_path, options, version=label, source=payload.source
        )

    def bisect(
        self,
        version_a: SemOrStr,
        version_b: SemOrStr,
        payload_source: Any,
        options: Optional[RunOptions] = None,
    ) -> BisectResult:
        """Bisect the releases between ``version_a`` and ``version_b``.

        The endpoints may be given in either order. Endpoints are never run
        implicitly; success requires a recorded pass immediately followed by
        a recorded fail.
        """
        options = options or RunOptions()

        try:
            versions = self._catalog.in_range(version_a, version_b)
        except UnknownVersionError as exc:
            return self._finish(BisectResult.failure(BisectError.UNKNOWN_VERSION, str(exc)))

        if len(versions) < 2 or canonical(version_a) == canonical(version_b):
            return self._finish(BisectResult.failure(
                BisectError.DEGENERATE_RANGE,
                f"Need at least two versions to bisect, got {len(versions)} "
                f"in [{canonical(version_a)}..{canonical(version_b)}]",
                versions=versions,
            ))

        try:
            payload = self._payload_resolver.resolve(payload_source)
        except ResolutionError as exc:
            self._log.error("%s", exc)
            return self._finish(BisectResult.failure(BisectError.SYSTEM_ERROR, str(exc), versions=versions))

        self._log.info(
            "Bisecting %d versions in [%s..%s]",
            len(versions), versions[0], versions[-1],
        )
        self._notify("bisect_started", versions, payload.source)

        left = 0
        right = len(versions) - 1
        results: Dict[int, TestResult] = {}
        steps: List[BisectStep] = []
        last: Optional[TestResult] = None

        while right - left > 1:
            mid = midpoint(left, right)
            version = versions[mid]
            self._log.debug("bisecting, range [%d..%d], mid %d (%s)", left, right, mid, version)

            try:
                executable = self._executable_resolver.resolve(str(version))
            except ResolutionError as exc:
                self._log.error("%s", exc)
                return self._finish(BisectResult.failure(
                    BisectError.SYSTEM_ERROR, str(exc), versions=versions, steps=steps
                ))

            last = self._runner.run_once(
                executable, payload.entry_path, options, version=str(version), source=payload.source
            )
            results[mid] = last
            step = BisectStep(
                order=len(steps) + 1, index=mid, version=version, left=left, right=right, result=last
            )
            steps.append(step)
            self._notify("step_completed", step)

            if is_debug_enabled(self._log):
                self._log.debug(
                    "Bisect step finished",
                    extra=extra_context(
                        event="decision", component="bisect", action="step",
                        target=str(version), outcome=last.status.value, count=step.order
                    ),
                )

            if last.status is TestStatus.PASSED:
                left = mid
            elif last.status is TestStatus.FAILED:
                right = mid
            else:
                break

        good = results.get(left)
        bad = results.get(right)
        if (
            good is not None and good.status is TestStatus.PASSED
            and bad is not None and bad.status is TestStatus.FAILED
        ):
            return self._finish(BisectResult(
                status=BisectStatus.SUCCEEDED,
                good=str(versions[left]),
                bad=str(versions[right]),
                versions=versions,
                steps=steps,
            ))

        if last is not None and not last.is_conclusive:
            error = BisectError.from_inconclusive(last.kind)
            message = f"Test of {steps[-1].version} did not pass or fail ({error.value})"
            if last.detail:
                message += f": {last.detail}"
        else:
            error = BisectError.CONVERGENCE_FAILURE
            message = (
                f"No passing/failing pair found between {versions[left]} and {versions[right]}"
            )
        return self._finish(BisectResult.failure(error, message, versions=versions, steps=steps))
