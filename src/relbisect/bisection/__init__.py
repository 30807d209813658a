"""Bisection engine and its progress reporting."""

from .engine import BisectionEngine, BisectObserver, midpoint
from .models import BisectError, BisectResult, BisectStatus, BisectStep
from .report import LoggingObserver, display_result

__all__ = [
    "BisectError",
    "BisectObserver",
    "BisectResult",
    "BisectStatus",
    "BisectStep",
    "BisectionEngine",
    "LoggingObserver",
    "display_result",
    "midpoint",
]
