"""
Per-worker scratch files holding raw discovery tool output.

Each worker thread owns at most one anonymous temporary file. It is truncated
at the start of every discovery run and may stay open until the WARC writer
has turned it into a metadata record for the same resource.
"""
from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO, Optional

from media_scout.logger import get_logger

log = get_logger("scratch")


class ScratchBufferManager:
    """Hands every worker thread its own reusable scratch file."""

    def __init__(
        self,
        prefix: str = "ydl",
        suffix: str = ".json",
        directory: Optional[Path] = None,
    ) -> None:
        self.prefix = prefix
        self.suffix = suffix
        self.directory = directory
        self._local = threading.local()

    def _current(self) -> Optional[BinaryIO]:
        return getattr(self._local, "buffer", None)

    @staticmethod
    def is_open(buffer: BinaryIO) -> bool:
        if buffer.closed:
            return False
        try:
            os.fstat(buffer.fileno())
        except (OSError, ValueError):
            log.info("scratch file is not open")
            return False
        return True

    def _open_new(self) -> BinaryIO:
        log.info("opening new scratch file")
        # unnamed: removed from the filesystem as soon as it is created
        return tempfile.TemporaryFile(
            mode="w+b",
            prefix=self.prefix,
            suffix=self.suffix,
            dir=str(self.directory) if self.directory is not None else None,
        )

    def get(self) -> BinaryIO:
        """This worker's scratch file, reopened if it was closed behind our back."""
        buffer = self._current()
        if buffer is None or not self.is_open(buffer):
            buffer = self._open_new()
            self._local.buffer = buffer
        return buffer

    def reset(self) -> BinaryIO:
        """This worker's scratch file, emptied and positioned at offset 0."""
        buffer = self.get()
        buffer.seek(0)
        buffer.truncate(0)
        return buffer

    def has_open_buffer(self) -> bool:
        buffer = self._current()
        return buffer is not None and self.is_open(buffer)

    def release(self) -> None:
        """Close this worker's scratch file, if any; never opens one just to close it."""
        buffer = self._current()
        if buffer is None or not self.is_open(buffer):
            return
        try:
            buffer.close()
        except OSError as exc:
            log.warning("problem closing scratch file %s", exc)
        finally:
            self._local.buffer = None


__all__ = ["ScratchBufferManager"]
