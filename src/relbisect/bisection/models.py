"""Data models for bisection sessions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import semantic_version

from relbisect.runner.models import InconclusiveKind, TestResult


class BisectStatus(Enum):
    """Overall outcome of a bisection session."""
    SUCCEEDED = "bisect_succeeded"
    FAILED = "bisect_failed"


class BisectError(Enum):
    """Why a bisection session ended without a boundary."""
    DEGENERATE_RANGE = "degenerate-range"
    UNKNOWN_VERSION = "unknown-version"
    LAUNCH_FAILURE = "launch-failure"
    ABNORMAL_EXIT = "abnormal-exit"
    SYSTEM_ERROR = "system-error"
    CONVERGENCE_FAILURE = "convergence-failure"

    @classmethod
    def from_inconclusive(cls, kind: Optional[InconclusiveKind]) -> "BisectError":
        if kind is InconclusiveKind.LAUNCH_FAILURE:
            return cls.LAUNCH_FAILURE
        return cls.ABNORMAL_EXIT


@dataclass(frozen=True)
class BisectStep:
    """One test run within a session."""
    order: int  # 1-based position in the test sequence
    index: int  # position of ``version`` in the session's slice
    version: semantic_version.Version
    left: int
    right: int
    result: TestResult


@dataclass
class BisectResult:
    """Outcome of a bisection session."""
    status: BisectStatus
    good: Optional[str] = None
    bad: Optional[str] = None
    error: Optional[BisectError] = None
    message: Optional[str] = None
    versions: List[semantic_version.Version] = field(default_factory=list)
    steps: List[BisectStep] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is BisectStatus.SUCCEEDED

    @property
    def range(self) -> Optional[Tuple[str, str]]:
        """The (last good, first bad) pair, when found."""
        if self.good is None or self.bad is None:
            return None
        return self.good, self.bad

    @classmethod
    def failure(
        cls,
        error: BisectError,
        message: str,
        versions: Optional[List[semantic_version.Version]] = None,
        steps: Optional[List[BisectStep]] = None,
    ) -> "BisectResult":
        return cls(
            status=BisectStatus.FAILED,
            error=error,
            message=message,
            versions=list(versions or []),
            steps=list(steps or []),
        )
