"""Human-readable rendering of test results and bisection progress."""

from __future__ import annotations

import logging
from typing import List, Optional, TextIO

import semantic_version

from relbisect.runner.models import InconclusiveKind, TestResult, TestStatus
from .engine import BisectObserver
from .models import BisectResult, BisectStep

logger = logging.getLogger(__name__)


def display_emoji(result: TestResult) -> str:
    if result.status is TestStatus.PASSED:
        return "🟢"
    if result.status is TestStatus.FAILED:
        return "🔴"
    if result.kind is InconclusiveKind.LAUNCH_FAILURE:
        return "🟠"
    return "🔵"


def display_result(result: TestResult) -> str:
    """One-line summary of a test result, e.g. ``🟢 passed``."""
    text = display_emoji(result)
    if result.status is TestStatus.PASSED:
        return text + " passed"
    if result.status is TestStatus.FAILED:
        return text + " failed"
    if result.kind is InconclusiveKind.LAUNCH_FAILURE:
        return text + " system error: test did not pass or fail"
    return text + " test error: test did not pass or fail"


def display_index(i: int) -> str:
    return "#" + str(i).rjust(4)


def format_range(versions: List[semantic_version.Version]) -> List[str]:
    return [f"{display_index(i)} - {version}" for i, version in enumerate(versions)]


class LoggingObserver(BisectObserver):
    """Writes bisection progress to a text sink, or to the log if none."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        *,
        compare_url_template: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._out = out
        self._compare_url_template = compare_url_template
        self._log = log or logger
        self._started = False

    def _emit(self, *lines: str) -> None:
        text = "\n".join(lines)
        if self._out is not None:
            self._out.write(text + "\n")
        else:
            self._log.info("%s", text)

    def bisect_started(self, versions: List[semantic_version.Version], source: str) -> None:
        self._started = True
        self._emit(
            "📐 Bisect Requested",
            "",
            f" - payload is {source}",
            f" - the version range is [{versions[0]}..{versions[-1]}]",
            f" - there are {len(versions)} versions in this range:",
            "",
            *format_range(versions),
        )

    def step_completed(self, step: BisectStep) -> None:
        self._emit(
            f"bisecting, range [{step.left}..{step.right}], mid {step.index} ({step.version})",
            f"{display_result(step.result)} {step.version}",
            "",
        )

    def bisect_finished(self, result: BisectResult) -> None:
        started, self._started = self._started, False
        if not started and not result.succeeded:
            self._emit(f"❌ Bisect not started: {result.message}")
            return

        lines = [f"🏁 finished bisecting across {len(result.versions)} versions..."]
        for step in sorted(result.steps, key=lambda s: s.index):
            lines.append(
                f"{display_index(step.index)} {display_result(step.result)} "
                f"{step.version} (test #{step.order})"
            )
        lines.extend(["", "🏁 Done bisecting"])

        if result.succeeded:
            good_step = next(s for s in result.steps if str(s.version) == result.good)
            bad_step = next(s for s in result.steps if str(s.version) == result.bad)
            lines.append(f"{display_result(good_step.result)} {result.good}")
            lines.append(f"{display_result(bad_step.result)} {result.bad}")
            if self._compare_url_template:
                lines.append("Commits between versions:")
                lines.append(self._compare_url_template.format(good=result.good, bad=result.bad) + " ↔")
        else:
            lines.append(f"❌ Bisect failed ({result.error.value}): {result.message}")
        self._emit(*lines)
