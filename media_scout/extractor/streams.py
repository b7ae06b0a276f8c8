"""Stream wrappers used while reading discovery tool output."""
from __future__ import annotations

import io
from typing import BinaryIO


class TeedReader(io.RawIOBase):
    """Copies every byte read from *source* into *sink* before returning it."""

    def __init__(self, source: BinaryIO, sink: BinaryIO) -> None:
        super().__init__()
        self._source = source
        self._sink = sink

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data = self._source.read()
        elif hasattr(self._source, "read1"):
            data = self._source.read1(size)
        else:
            data = self._source.read(size)
        if data:
            self._sink.write(data)
        return data or b""


__all__ = ["TeedReader"]
