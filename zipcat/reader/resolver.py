"""
zipcat Entry Resolver
Maps entry names to central-directory records and finds where each entry's
data starts behind its local file header.
"""
import struct
from typing import BinaryIO, Dict, Sequence

from ..errors import EntryNotFoundError, InvalidArchiveError
from .records import EntryRecord


LOCAL_HEADER = struct.Struct('<4sHHHHHIIIHH')
LOCAL_HEADER_SIGNATURE = b'PK\x03\x04'


class EntryResolver:
    def __init__(self, entries: Sequence[EntryRecord], archive_name: str = '<archive>'):
        self.entries = tuple(entries)
        self.archive_name = archive_name

        # Duplicate names resolve to the first one in directory order
        self._by_name: Dict[str, int] = {}
        for index, entry in enumerate(self.entries):
            self._by_name.setdefault(entry.name, index)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def by_name(self, name: str) -> EntryRecord:
        index = self._by_name.get(name)
        if index is None:
            raise EntryNotFoundError(name, self.archive_name)
        return self.entries[index]

    def by_index(self, index: int) -> EntryRecord:
        if not 0 <= index < len(self.entries):
            raise IndexError(f"Entry index {index} out of range for {self.archive_name}")
        return self.entries[index]

    def data_offset(self, fp: BinaryIO, entry: EntryRecord) -> int:
        """
        Read the local file header of an entry and return the absolute
        offset of its (possibly encrypted) compressed data.

        The local name and extra lengths can differ from the central ones,
        so they must come from the local header itself.
        """
        fp.seek(entry.header_offset)
        raw = fp.read(LOCAL_HEADER.size)
        if len(raw) < LOCAL_HEADER.size:
            raise InvalidArchiveError(f"{self.archive_name}: local header of {entry.name} is truncated")

        fields = LOCAL_HEADER.unpack(raw)
        if fields[0] != LOCAL_HEADER_SIGNATURE:
            raise InvalidArchiveError(f"{self.archive_name}: bad local header signature for {entry.name}")

        name_len, extra_len = fields[-2], fields[-1]
        return entry.header_offset + LOCAL_HEADER.size + name_len + extra_len


__all__ = ["EntryResolver", "LOCAL_HEADER"]
