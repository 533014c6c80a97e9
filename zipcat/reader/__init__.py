from .records import CompressionMethod, EntryRecord, AesEncryption, TraditionalEncryption
from .directory import DirectoryReader, CentralDirectory
from .resolver import EntryResolver

__all__ = [
    "CompressionMethod",
    "EntryRecord",
    "AesEncryption",
    "TraditionalEncryption",
    "DirectoryReader",
    "CentralDirectory",
    "EntryResolver",
]
