"""
zipcat Directory Reader
Locates the end-of-central-directory record (plain or ZIP64) and parses the
central directory into EntryRecords, in the order they are stored.
"""
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Optional, Tuple

from ..errors import InvalidArchiveError, UnsupportedArchiveError
from ..utils.checksum import calculate_bytes_crc32
from ..utils.logger import logger
from .records import (
    AesEncryption,
    CompressionMethod,
    EntryRecord,
    GeneralFlags,
    TraditionalEncryption,
)


EOCD = struct.Struct('<4sHHHHIIH')
EOCD_SIGNATURE = b'PK\x05\x06'
MAX_COMMENT = 0xFFFF

ZIP64_LOCATOR = struct.Struct('<4sIQI')
ZIP64_LOCATOR_SIGNATURE = b'PK\x06\x07'

ZIP64_EOCD = struct.Struct('<4sQHHIIQQQQ')
ZIP64_EOCD_SIGNATURE = b'PK\x06\x06'

CENTRAL_HEADER = struct.Struct('<4sHHHHHHIIIHHHHHII')
CENTRAL_HEADER_SIGNATURE = b'PK\x01\x02'

EXTRA_HEADER = struct.Struct('<HH')
EXTRA_ZIP64 = 0x0001
EXTRA_TIMESTAMP = 0x5455
EXTRA_UNICODE_PATH = 0x7075
EXTRA_AES = 0x9901
AES_EXTRA = struct.Struct('<H2sBH')

U16_MAX = 0xFFFF
U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class CentralDirectory:
    entries: Tuple[EntryRecord, ...]
    comment: bytes
    archive_offset: int
    is_zip64: bool


def dos_to_datetime(dos_date: int, dos_time: int) -> Optional[datetime]:
    """Convert MS-DOS date/time words; impossible values yield None."""
    try:
        return datetime(
            (dos_date >> 9) + 1980,
            (dos_date >> 5) & 0x0F,
            dos_date & 0x1F,
            dos_time >> 11,
            (dos_time >> 5) & 0x3F,
            (dos_time & 0x1F) * 2,
        )
    except ValueError:
        return None


def parse_extra_fields(extra: bytes) -> Dict[int, bytes]:
    """Split an extra block into {header_id: payload}; first occurrence wins."""
    fields = {}
    offset = 0
    while offset + EXTRA_HEADER.size <= len(extra):
        header_id, size = EXTRA_HEADER.unpack_from(extra, offset)
        offset += EXTRA_HEADER.size
        if offset + size > len(extra):
            raise InvalidArchiveError(f"Extra field 0x{header_id:04x} overruns its block")
        fields.setdefault(header_id, bytes(extra[offset:offset + size]))
        offset += size
    return fields


class DirectoryReader:
    def __init__(self, fp: BinaryIO, name_encoding: str = 'cp437', archive_name: str = '<archive>'):
        self.fp = fp
        self.name_encoding = name_encoding
        self.archive_name = archive_name

    def read(self) -> CentralDirectory:
        self.fp.seek(0, 2)
        file_size = self.fp.tell()

        eocd_pos, eocd, comment = self._find_eocd(file_size)
        _, disk, cd_disk, _, total, cd_size, cd_offset, _ = eocd

        zip64 = self._read_zip64(eocd_pos)
        if zip64 is not None:
            eocd64_pos, record, stated_offset = zip64
            _, _, _, _, disk, cd_disk, _, total, cd_size, cd_offset = record
            archive_offset = eocd64_pos - stated_offset
            cd_end = eocd64_pos
        else:
            if U16_MAX in (disk, cd_disk, total) or U32_MAX in (cd_size, cd_offset):
                raise InvalidArchiveError(
                    f"{self.archive_name}: ZIP64 values present but no ZIP64 end of central directory"
                )
            archive_offset = eocd_pos - cd_size - cd_offset
            cd_end = eocd_pos

        if disk != cd_disk:
            raise UnsupportedArchiveError(f"{self.archive_name}: multi-disk archives are not supported")
        if archive_offset < 0:
            raise InvalidArchiveError(f"{self.archive_name}: central directory offset points past its end")

        cd_start = cd_offset + archive_offset
        if cd_start + cd_size > cd_end:
            raise InvalidArchiveError(f"{self.archive_name}: central directory overruns the archive")

        self.fp.seek(cd_start)
        data = self.fp.read(cd_size)
        if len(data) != cd_size:
            raise InvalidArchiveError(f"{self.archive_name}: truncated central directory")

        entries = []
        offset = 0
        for index in range(total):
            record, offset = self._parse_central_header(data, offset, index, archive_offset)
            entries.append(record)

        if archive_offset:
            logger.debug(f"{self.archive_name}: {archive_offset} bytes of data before the archive")
        logger.debug(f"Parsed central directory of {self.archive_name}: {len(entries)} entries")

        return CentralDirectory(
            entries=tuple(entries),
            comment=comment,
            archive_offset=archive_offset,
            is_zip64=zip64 is not None,
        )

    # ── EOCD ───────────────────────────────────────────────────────────────

    def _find_eocd(self, file_size: int):
        search_len = min(file_size, EOCD.size + MAX_COMMENT)
        start = file_size - search_len
        self.fp.seek(start)
        tail = self.fp.read(search_len)

        pos = tail.rfind(EOCD_SIGNATURE)
        while pos >= 0:
            if pos + EOCD.size <= len(tail):
                fields = EOCD.unpack_from(tail, pos)
                comment_len = fields[-1]
                comment_start = pos + EOCD.size
                if comment_start + comment_len <= len(tail):
                    comment = tail[comment_start:comment_start + comment_len]
                    return start + pos, fields, comment
            pos = tail.rfind(EOCD_SIGNATURE, 0, pos)

        raise InvalidArchiveError(f"{self.archive_name}: end of central directory not found, not a ZIP archive")

    def _read_zip64(self, eocd_pos: int):
        locator_pos = eocd_pos - ZIP64_LOCATOR.size
        if locator_pos < 0:
            return None
        self.fp.seek(locator_pos)
        raw = self.fp.read(ZIP64_LOCATOR.size)
        if len(raw) < ZIP64_LOCATOR.size or not raw.startswith(ZIP64_LOCATOR_SIGNATURE):
            return None

        _, _, stated_offset, _ = ZIP64_LOCATOR.unpack(raw)

        # Prepended data shifts the record away from where the locator says it is
        for candidate in (stated_offset, locator_pos - ZIP64_EOCD.size):
            if candidate < 0:
                continue
            self.fp.seek(candidate)
            raw = self.fp.read(ZIP64_EOCD.size)
            if len(raw) == ZIP64_EOCD.size and raw.startswith(ZIP64_EOCD_SIGNATURE):
                return candidate, ZIP64_EOCD.unpack(raw), stated_offset

        raise InvalidArchiveError(f"{self.archive_name}: ZIP64 end of central directory record not found")

    # ── Central directory headers ──────────────────────────────────────────

    def _parse_central_header(self, data: bytes, offset: int, index: int, archive_offset: int):
        if offset + CENTRAL_HEADER.size > len(data):
            raise InvalidArchiveError(f"{self.archive_name}: central directory truncated at entry {index}")

        (signature, made_by, _, flags, method, mod_time, mod_date, crc,
         compressed_size, uncompressed_size, name_len, extra_len, comment_len,
         disk_start, _, external_attr, header_offset) = CENTRAL_HEADER.unpack_from(data, offset)

        if signature != CENTRAL_HEADER_SIGNATURE:
            raise InvalidArchiveError(f"{self.archive_name}: bad central directory signature at entry {index}")

        name_start = offset + CENTRAL_HEADER.size
        extra_start = name_start + name_len
        comment_start = extra_start + extra_len
        end = comment_start + comment_len
        if end > len(data):
            raise InvalidArchiveError(f"{self.archive_name}: central directory truncated at entry {index}")

        raw_name = data[name_start:extra_start]
        extras = parse_extra_fields(data[extra_start:comment_start])
        comment = data[comment_start:end]

        if U32_MAX in (uncompressed_size, compressed_size, header_offset) or disk_start == U16_MAX:
            uncompressed_size, compressed_size, header_offset = self._apply_zip64(
                extras.get(EXTRA_ZIP64), uncompressed_size, compressed_size, header_offset, index
            )

        name = self._decode_name(raw_name, flags, extras)

        modified = dos_to_datetime(mod_date, mod_time)
        timestamp = extras.get(EXTRA_TIMESTAMP)
        if timestamp and len(timestamp) >= 5 and timestamp[0] & 0x01:
            (mtime,) = struct.unpack_from('<I', timestamp, 1)
            modified = datetime.fromtimestamp(mtime, tz=timezone.utc)

        encryption = None
        aes = None
        if method == CompressionMethod.AES:
            aes = self._parse_aes(extras.get(EXTRA_AES), name)
        if flags & GeneralFlags.ENCRYPTED:
            if aes is not None:
                encryption = aes
            elif not flags & GeneralFlags.STRONG_ENCRYPTION:
                if flags & GeneralFlags.DATA_DESCRIPTOR:
                    check_byte = (mod_time >> 8) & 0xFF
                else:
                    check_byte = crc >> 24
                encryption = TraditionalEncryption(check_byte=check_byte)

        record = EntryRecord(
            name=name,
            raw_name=raw_name,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            method=method,
            crc32=crc,
            header_offset=header_offset + archive_offset,
            is_dir=name.endswith(('/', '\\')),
            flags=flags,
            version_made_by=made_by,
            external_attr=external_attr,
            modified=modified,
            comment=comment,
            encryption=encryption,
        )
        return record, end

    def _apply_zip64(self, extra, uncompressed_size, compressed_size, header_offset, index):
        if extra is None:
            raise InvalidArchiveError(f"{self.archive_name}: entry {index} needs a missing ZIP64 extra field")
        values = []
        pos = 0
        try:
            for current in (uncompressed_size, compressed_size, header_offset):
                if current == U32_MAX:
                    (value,) = struct.unpack_from('<Q', extra, pos)
                    pos += 8
                    values.append(value)
                else:
                    values.append(current)
        except struct.error:
            raise InvalidArchiveError(f"{self.archive_name}: ZIP64 extra field of entry {index} is too short")
        # A saturated disk number follows, but single-disk archives ignore it
        return tuple(values)

    def _decode_name(self, raw_name: bytes, flags: int, extras: Dict[int, bytes]) -> str:
        if flags & GeneralFlags.UTF8:
            try:
                name = raw_name.decode('utf-8')
            except UnicodeDecodeError:
                logger.warning(f"Entry name {raw_name!r} is flagged UTF-8 but is not valid UTF-8")
                name = raw_name.decode(self.name_encoding, errors='replace')
        else:
            name = raw_name.decode(self.name_encoding, errors='replace')

        unicode_path = extras.get(EXTRA_UNICODE_PATH)
        if unicode_path and len(unicode_path) >= 5 and unicode_path[0] == 1:
            (name_crc,) = struct.unpack_from('<I', unicode_path, 1)
            if name_crc == calculate_bytes_crc32(raw_name):
                try:
                    name = unicode_path[5:].decode('utf-8')
                except UnicodeDecodeError:
                    logger.warning(f"Ignoring undecodable Unicode path for {name}")
            else:
                logger.warning(f"Ignoring stale Unicode path for {name}")
        return name

    def _parse_aes(self, extra: Optional[bytes], name: str) -> AesEncryption:
        if extra is None or len(extra) < AES_EXTRA.size:
            raise InvalidArchiveError(f"{name}: AES method without a valid AES extra field")
        vendor_version, vendor_id, strength, method = AES_EXTRA.unpack_from(extra)
        if vendor_id != b'AE' or not 1 <= strength <= 3:
            raise InvalidArchiveError(f"{name}: invalid AES extra field")
        return AesEncryption(vendor_version=vendor_version, strength=strength, method=method)


__all__ = ["DirectoryReader", "CentralDirectory", "dos_to_datetime", "parse_extra_fields"]
