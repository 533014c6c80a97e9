"""
zipcat Entry Records
Immutable per-entry metadata parsed from the central directory.
"""
import enum
import stat
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


class CompressionMethod(enum.IntEnum):
    STORED = 0
    DEFLATED = 8
    DEFLATE64 = 9
    BZIP2 = 12
    LZMA = 14
    ZSTD = 93
    XZ = 95
    AES = 99

    @classmethod
    def label(cls, value: int) -> str:
        try:
            return cls(value).name.lower()
        except ValueError:
            return f"method-{value}"


class GeneralFlags(enum.IntFlag):
    ENCRYPTED = 0x0001
    DATA_DESCRIPTOR = 0x0008
    STRONG_ENCRYPTION = 0x0040
    UTF8 = 0x0800


# Host system in the upper byte of "version made by"
HOST_UNIX = 3


@dataclass(frozen=True)
class AesEncryption:
    """WinZip AES parameters from the 0x9901 extra field."""
    vendor_version: int  # 1 = AE-1, 2 = AE-2
    strength: int        # 1, 2, 3 -> 128, 192, 256 bit
    method: int          # actual compression method

    @property
    def key_length(self) -> int:
        return 8 * (self.strength + 1)

    @property
    def salt_length(self) -> int:
        return 4 * (self.strength + 1)

    @property
    def checks_crc(self) -> bool:
        return self.vendor_version != 2


@dataclass(frozen=True)
class TraditionalEncryption:
    """PKWARE stream cipher; the header check byte comes from the CRC or DOS time."""
    check_byte: int


Encryption = Union[AesEncryption, TraditionalEncryption]


@dataclass(frozen=True)
class EntryRecord:
    name: str
    raw_name: bytes
    compressed_size: int
    uncompressed_size: int
    method: int
    crc32: int
    header_offset: int
    is_dir: bool
    flags: int = 0
    version_made_by: int = 0
    external_attr: int = 0
    modified: Optional[datetime] = None
    comment: bytes = b""
    encryption: Optional[Encryption] = field(default=None)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & GeneralFlags.ENCRYPTED)

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & GeneralFlags.DATA_DESCRIPTOR)

    @property
    def data_method(self) -> int:
        """Compression method of the payload, looking through AES wrapping."""
        if isinstance(self.encryption, AesEncryption):
            return self.encryption.method
        return self.method

    @property
    def unix_mode(self) -> Optional[int]:
        if self.version_made_by >> 8 != HOST_UNIX:
            return None
        mode = self.external_attr >> 16
        return mode or None

    @property
    def is_symlink(self) -> bool:
        mode = self.unix_mode
        return mode is not None and stat.S_ISLNK(mode)


__all__ = [
    "CompressionMethod",
    "GeneralFlags",
    "AesEncryption",
    "TraditionalEncryption",
    "EntryRecord",
]
