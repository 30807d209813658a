"""Collaborators that turn user input into something runnable.

An executable resolver maps a version or local path to a binary; a payload
resolver maps a source descriptor to a test payload with an entry file.
Installing releases on demand is delegated to an injected ``installer``.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from relbisect.constants import Constants
from relbisect.versioning.parser import canonical

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Base class for failures to resolve an executable or payload."""


class ExecutableNotFoundError(ResolutionError):
    """Raised for input that is neither a local build nor a known version."""


class InvalidPayloadError(ResolutionError):
    """Raised when a payload source cannot be materialized."""


@dataclass(frozen=True)
class Payload:
    """A materialized test payload."""
    source: str
    entry_path: str


def default_executable_name(os_platform: str = sys.platform) -> str:
    """Relative path of the executable inside an unpacked build."""
    if os_platform == "darwin":
        return os.path.join("Electron.app", "Contents", "MacOS", "Electron")
    if os_platform == "win32":
        return "electron.exe"
    return "electron"


class ExecutableResolver(ABC):
    """Maps a version string or local path to an executable path."""

    @abstractmethod
    def resolve(self, version_or_path: str) -> str:
        """Return a path to a runnable executable.

        Raises:
            ExecutableNotFoundError: if the input cannot be resolved.
        """


class PayloadResolver(ABC):
    """Maps a payload source descriptor to a runnable payload."""

    @abstractmethod
    def resolve(self, source: Any) -> Payload:
        """Return the materialized payload.

        Raises:
            InvalidPayloadError: if the source cannot be materialized.
        """


class LocalExecutableResolver(ExecutableResolver):
    """Resolves local builds and known releases.

    - an existing file is used as-is (a local build);
    - an existing directory is searched for the platform executable;
    - a known version is passed to ``installer`` when one is given,
      otherwise looked up under ``builds_dir/<version>/``.

    Results are memoized, so resolving the same version twice is cheap and
    returns the same path, including across concurrent sessions.
    """

    def __init__(
        self,
        is_version: Callable[[str], bool],
        *,
        builds_dir: Optional[str] = None,
        installer: Optional[Callable[[str], str]] = None,
        executable_name: Optional[str] = None,
    ):
        self._is_version = is_version
        self._builds_dir = os.path.expanduser(builds_dir) if builds_dir else None
        self._installer = installer
        self._executable_name = executable_name or default_executable_name()
        self._resolved: Dict[str, str] = {}
        self._lock = threading.Lock()

    def _from_directory(self, directory: str) -> Optional[str]:
        candidate = os.path.join(directory, self._executable_name)
        return candidate if os.path.isfile(candidate) else None

    def resolve(self, version_or_path: str) -> str:
        if os.path.isfile(version_or_path):
            return version_or_path
        if os.path.isdir(version_or_path):
            found = self._from_directory(version_or_path)
            if found:
                return found
            raise ExecutableNotFoundError(
                f"No {self._executable_name} in directory: {version_or_path}"
            )

        if not self._is_version(version_or_path):
            raise ExecutableNotFoundError(f'Unrecognized executable name: "{version_or_path}"')

        version = canonical(version_or_path)
        with self._lock:
            cached = self._resolved.get(version)
            if cached is not None:
                return cached
            path = self._locate(version)
            self._resolved[version] = path
        logger.debug("Resolved %s to %s", version, path)
        return path

    def _locate(self, version: str) -> str:
        if self._installer is not None:
            try:
                return self._installer(version)
            except ResolutionError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise ExecutableNotFoundError(f"Could not install {version}: {exc}") from exc

        if self._builds_dir:
            for name in (version, f"v{version}"):
                found = self._from_directory(os.path.join(self._builds_dir, name))
                if found:
                    return found
        raise ExecutableNotFoundError(
            f"Version {version} is not installed"
            + (f" under {self._builds_dir}" if self._builds_dir else "")
        )


class LocalPayloadResolver(PayloadResolver):
    """Resolves payloads stored on the local filesystem.

    A directory resolves to its entry file; a file is its own entry.
    """

    def __init__(self, entry_name: str = Constants.PAYLOAD_ENTRY_NAME):
        self._entry_name = entry_name

    def resolve(self, source: Any) -> Payload:
        if not isinstance(source, (str, os.PathLike)):
            raise InvalidPayloadError(f"Invalid payload: {source!r}")
        path = os.path.abspath(os.path.expanduser(os.fspath(source)))
        if os.path.isdir(path):
            entry = os.path.join(path, self._entry_name)
            if not os.path.isfile(entry):
                raise InvalidPayloadError(f"Payload directory has no {self._entry_name}: {path}")
            return Payload(source=os.fspath(source), entry_path=entry)
        if os.path.isfile(path):
            return Payload(source=os.fspath(source), entry_path=path)
        raise InvalidPayloadError(f"Invalid payload: {source!r}")
