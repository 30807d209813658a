"""Persisted copy of the upstream release document.

The file's modification time doubles as the last-fetch timestamp.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Optional

from .models import CacheRecord

logger = logging.getLogger(__name__)


class ReleaseCache:
    """JSON cache file holding the last fetched release document."""

    def __init__(self, path: str):
        self._path = os.path.abspath(os.path.expanduser(path))

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> Optional[CacheRecord]:
        """Load the cached document.

        Returns:
            The cached record, or None if the file is missing or unreadable.
        """
        try:
            mtime = os.stat(self._path).st_mtime
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            logger.debug("Release cache not found: %s", self._path)
            return None
        except (OSError, ValueError) as exc:
            logger.debug("Release cache unreadable (%s): %s", self._path, exc)
            return None
        return CacheRecord(document=document, fetched_at=mtime)

    def write(self, document: Any) -> CacheRecord:
        """Overwrite the cache with ``document``.

        The document is written to a temporary file in the same directory
        and moved into place, so readers never see a half-written file.

        Raises:
            OSError: if the directory cannot be created or written.
        """
        directory = os.path.dirname(self._path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".releases-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Failed to remove temp file: %s", tmp_path)
            raise
        logger.debug("Saved release cache %s", self._path)
        return CacheRecord(document=document, fetched_at=os.stat(self._path).st_mtime)
