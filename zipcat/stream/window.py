"""
zipcat Bounded Window
Reads a fixed byte range of the archive without trusting the file position,
so several windows can share one file object.
"""
from typing import BinaryIO

from ..errors import InvalidArchiveError


class BoundedWindow:
    def __init__(self, fp: BinaryIO, start: int, length: int, name: str = '<entry>'):
        self.fp = fp
        self.name = name
        self.pos = start
        self.end = start + length

    @property
    def remaining(self) -> int:
        return self.end - self.pos

    def read(self, size: int = -1) -> bytes:
        if size < 0 or size > self.remaining:
            size = self.remaining
        if size <= 0:
            return b""
        self.fp.seek(self.pos)
        data = self.fp.read(size)
        if len(data) < size:
            raise InvalidArchiveError(f"Unexpected end of archive while reading {self.name}")
        self.pos += len(data)
        return data

    def read_exact(self, size: int) -> bytes:
        if size > self.remaining:
            raise InvalidArchiveError(f"{self.name}: compressed size too small for its headers")
        return self.read(size)


__all__ = ["BoundedWindow"]
