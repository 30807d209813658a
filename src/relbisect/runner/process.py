"""Run a test payload inside one executable and classify how it exited."""

from __future__ import annotations

import datetime
import logging
import os
import platform as platform_info
import subprocess
import sys
import threading
from typing import List, Optional, TextIO, Tuple

from relbisect.common.logging_utils import extra_context, is_debug_enabled
from relbisect.constants import Constants
from .models import InconclusiveKind, RunOptions, TestResult

logger = logging.getLogger(__name__)


class ProcessLaunchError(OSError):
    """Raised when the test process could not be started at all."""


def classify_exit(code: Optional[int]) -> TestResult:
    """Map an exit code to a test outcome: 0 passes, 1 fails, else inconclusive."""
    if code == 0:
        return TestResult.passed()
    if code == 1:
        return TestResult.failed()
    return TestResult.inconclusive(
        InconclusiveKind.ABNORMAL_EXIT,
        exit_code=code,
        detail=f"exited with code {code}",
    )


def needs_display_wrapper(os_platform: str) -> bool:
    """True on platforms without native GUI support for headless runs."""
    return os_platform not in Constants.NATIVE_GUI_PLATFORMS


def _pump(stream: TextIO, sink: TextIO) -> None:
    """Copy ``stream`` into ``sink`` line by line until EOF."""
    try:
        for line in stream:
            sink.write(line)
            flush = getattr(sink, "flush", None)
            if callable(flush):
                flush()
    finally:
        stream.close()


class ProcessRunner:
    """Spawns test processes, one at a time, and classifies their exit."""

    def __init__(self, *, os_platform: str = sys.platform, log: Optional[logging.Logger] = None):
        self._platform = os_platform
        self._log = log or logger

    def build_command(self, executable: str, entry_path: str, options: RunOptions) -> List[str]:
        """Build the argv for one run, wrapped in a virtual display if asked."""
        command = [executable, *options.args, entry_path]
        if options.headless and needs_display_wrapper(self._platform):
            command = [Constants.HEADLESS_WRAPPER, *Constants.HEADLESS_WRAPPER_ARGS, *command]
        return command

    def spawn_info(
        self,
        executable: str,
        entry_path: str,
        version: Optional[str] = None,
        source: Optional[str] = None,
    ) -> str:
        """Human-readable header describing the run about to happen."""
        return "\n".join([
            "",
            "🧪 Testing",
            "",
            f"  - date: {datetime.datetime.now(datetime.timezone.utc).isoformat()}",
            "",
            "  - payload:",
            f"      - source: {source or entry_path}",
            f"      - local copy: {os.path.dirname(os.path.abspath(entry_path))}",
            "",
            f"  - version: {version or 'local build'}",
            f"      - local copy: {os.path.dirname(os.path.abspath(executable))}",
            "",
            "  - test platform:",
            f"      - os_arch: {platform_info.machine()}",
            f"      - os_platform: {self._platform}",
            f"      - os_release: {platform_info.release()}",
            f"      - os_version: {platform_info.version()}",
            "",
        ])

    def _write_header(self, options: RunOptions, executable: str, entry_path: str,
                      version: Optional[str], source: Optional[str]) -> None:
        if options.out is not None and options.show_config:
            options.out.write(self.spawn_info(executable, entry_path, version, source) + "\n")

    def _spawn(
        self,
        executable: str,
        entry_path: str,
        options: RunOptions,
        version: Optional[str],
        source: Optional[str],
    ) -> Tuple[subprocess.Popen, Optional[threading.Thread]]:
        command = self.build_command(executable, entry_path, options)
        self._write_header(options, executable, entry_path, version, source)
        if is_debug_enabled(self._log):
            self._log.debug(
                "Spawning test process: %s",
                " ".join(command),
                extra=extra_context(event="spawn", component="runner", action="spawn", target=executable),
            )

        try:
            if options.out is None:
                proc = subprocess.Popen(  # noqa: S603
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                return proc, None
            proc = subprocess.Popen(  # noqa: S603
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise ProcessLaunchError(f"Could not start {command[0]}: {exc}") from exc

        pump = threading.Thread(
            target=_pump,
            args=(proc.stdout, options.out),
            name="relbisect-output-pump",
            daemon=True,
        )
        pump.start()
        return proc, pump

    def spawn(
        self,
        executable: str,
        entry_path: str,
        options: Optional[RunOptions] = None,
        *,
        version: Optional[str] = None,
        source: Optional[str] = None,
    ) -> subprocess.Popen:
        """Start a test process and return the live handle.

        Output is streamed to ``options.out`` as it arrives.

        Raises:
            ProcessLaunchError: if the process could not be started.
        """
        proc, _ = self._spawn(executable, entry_path, options or RunOptions(), version, source)
        return proc

    def run_once(
        self,
        executable: str,
        entry_path: str,
        options: Optional[RunOptions] = None,
        *,
        version: Optional[str] = None,
        source: Optional[str] = None,
    ) -> TestResult:
        """Run one test to completion and classify its exit.

        If waiting is interrupted (including KeyboardInterrupt), the child
        is killed and reaped before the exception propagates.
        """
        try:
            proc, pump = self._spawn(executable, entry_path, options or RunOptions(), version, source)
        except ProcessLaunchError as exc:
            self._log.warning("%s", exc)
            return TestResult.inconclusive(InconclusiveKind.LAUNCH_FAILURE, detail=str(exc))

        try:
            code = proc.wait()
        except BaseException:
            self._log.warning("Test run abandoned; killing pid %s", proc.pid)
            proc.kill()
            proc.wait()
            raise
        finally:
            if pump is not None:
                pump.join()

        result = classify_exit(code)
        if is_debug_enabled(self._log):
            self._log.debug(
                "Test process exited",
                extra=extra_context(
                    event="function_exit", component="runner", action="run_once",
                    outcome=result.status.value, exit_code=code
                ),
            )
        return result

    def spawn_sync(
        self,
        executable: str,
        entry_path: str,
        options: Optional[RunOptions] = None,
        *,
        version: Optional[str] = None,
        source: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Run a test, blocking, and return its captured combined output.

        Raises:
            ProcessLaunchError: if the process could not be started.
        """
        options = options or RunOptions()
        command = self.build_command(executable, entry_path, options)
        self._log.debug("Running test process: %s", " ".join(command))
        try:
            result = subprocess.run(  # noqa: S603
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ProcessLaunchError(f"Could not start {command[0]}: {exc}") from exc

        if options.out is not None:
            self._write_header(options, executable, entry_path, version, source)
            options.out.write(result.stdout or "")
        return result

    def run_sync(
        self,
        executable: str,
        entry_path: str,
        options: Optional[RunOptions] = None,
        **kwargs: Optional[str],
    ) -> TestResult:
        """Classified form of :meth:`spawn_sync`."""
        try:
            completed = self.spawn_sync(executable, entry_path, options, **kwargs)
        except ProcessLaunchError as exc:
            return TestResult.inconclusive(InconclusiveKind.LAUNCH_FAILURE, detail=str(exc))
        return classify_exit(completed.returncode)
