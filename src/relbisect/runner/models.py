"""Data models for single test runs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TextIO


class TestStatus(Enum):
    """Classified outcome of one test run."""
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


class InconclusiveKind(Enum):
    """Why a run gave no directional signal."""
    LAUNCH_FAILURE = "launch-failure"
    ABNORMAL_EXIT = "abnormal-exit"


@dataclass(frozen=True)
class TestResult:
    """Outcome of running a payload against one executable."""
    __test__ = False

    status: TestStatus
    kind: Optional[InconclusiveKind] = None
    exit_code: Optional[int] = None
    detail: Optional[str] = None

    @classmethod
    def passed(cls) -> "TestResult":
        return cls(status=TestStatus.PASSED, exit_code=0)

    @classmethod
    def failed(cls) -> "TestResult":
        return cls(status=TestStatus.FAILED, exit_code=1)

    @classmethod
    def inconclusive(
        cls,
        kind: InconclusiveKind,
        exit_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> "TestResult":
        return cls(status=TestStatus.INCONCLUSIVE, kind=kind, exit_code=exit_code, detail=detail)

    @property
    def is_conclusive(self) -> bool:
        return self.status is not TestStatus.INCONCLUSIVE


@dataclass
class RunOptions:
    """Per-run settings shared by every test in a session."""

    args: List[str] = field(default_factory=list)  # appended before the payload entry
    headless: bool = False  # wrap in a virtual display where needed
    out: Optional[TextIO] = None  # receives combined stdout/stderr
    show_config: bool = True  # write a test header to ``out`` before each run
