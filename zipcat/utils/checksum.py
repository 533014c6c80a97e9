"""
zipcat Checksum Utility
Running CRC-32 for entry integrity verification.
"""
import zlib
from typing import Union


def _build_crc_table():
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xEDB88320
            else:
                crc >>= 1
        table.append(crc)
    return table


# Raw (non-inverted) table; the traditional PKWARE cipher steps its keys with it
CRC_TABLE = _build_crc_table()


def crc32_update_byte(crc: int, byte: int) -> int:
    """One raw CRC-32 step, without the pre/post inversion zlib applies."""
    return (crc >> 8) ^ CRC_TABLE[(crc ^ byte) & 0xFF]


class CRC32:
    """Accumulates a CRC-32 over data fed in chunks."""

    def __init__(self):
        self.value = 0
        self.length = 0

    def update(self, data: Union[bytes, bytearray, memoryview]):
        self.value = zlib.crc32(data, self.value)
        self.length += len(data)

    def hexdigest(self) -> str:
        return f"{self.value:08x}"


def calculate_bytes_crc32(data: Union[bytes, str]) -> int:
    """
    Calculates the CRC-32 of a byte string or text string.
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    return zlib.crc32(data) & 0xFFFFFFFF


__all__ = ["CRC32", "CRC_TABLE", "crc32_update_byte", "calculate_bytes_crc32"]
