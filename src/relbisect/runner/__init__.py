"""Single test runs: process spawning, outcome classification, resolvers."""

from .models import InconclusiveKind, RunOptions, TestResult, TestStatus
from .process import ProcessLaunchError, ProcessRunner, classify_exit
from .resolvers import (
    ExecutableNotFoundError,
    ExecutableResolver,
    InvalidPayloadError,
    LocalExecutableResolver,
    LocalPayloadResolver,
    Payload,
    PayloadResolver,
    ResolutionError,
)

__all__ = [
    "ExecutableNotFoundError",
    "ExecutableResolver",
    "InconclusiveKind",
    "InvalidPayloadError",
    "LocalExecutableResolver",
    "LocalPayloadResolver",
    "Payload",
    "PayloadResolver",
    "ProcessLaunchError",
    "ProcessRunner",
    "ResolutionError",
    "RunOptions",
    "TestResult",
    "TestStatus",
    "classify_exit",
]
