# tests/unit/test_directory_unit.py

import io
import struct
import unittest
import zlib
from datetime import datetime, timezone

from zip_builder import DOS_DATETIME, Entry, build_zip
from zipcat.errors import InvalidArchiveError, UnsupportedArchiveError
from zipcat.reader.directory import DirectoryReader, dos_to_datetime, parse_extra_fields
from zipcat.reader.records import AesEncryption, TraditionalEncryption


def read_directory(data, **kwargs):
    return DirectoryReader(io.BytesIO(data), archive_name='test.zip', **kwargs).read()


def patch_eocd(data, offset, fmt, value):
    """Overwrite a field of the trailing (comment-less) EOCD record."""
    buf = bytearray(data)
    struct.pack_into(fmt, buf, len(buf) - 22 + offset, value)
    return bytes(buf)


class TestDirectoryReaderUnit(unittest.TestCase):
    def test_entries_keep_central_directory_order(self):
        data = build_zip([Entry('b.txt', b'b'), Entry('a/'), Entry('a/c.txt', b'c')])
        directory = read_directory(data)
        self.assertEqual([e.name for e in directory.entries], ['b.txt', 'a/', 'a/c.txt'])
        self.assertFalse(directory.is_zip64)
        self.assertEqual(directory.archive_offset, 0)

    def test_record_fields(self):
        payload = b'hello world' * 10
        data = build_zip([Entry('x.txt', payload, method=8, external_attr=0o100644 << 16)])
        entry = read_directory(data).entries[0]

        self.assertEqual(entry.uncompressed_size, len(payload))
        self.assertLess(entry.compressed_size, len(payload))
        self.assertEqual(entry.method, 8)
        self.assertEqual(entry.crc32, zlib.crc32(payload))
        self.assertEqual(entry.header_offset, 0)
        self.assertEqual(entry.modified, DOS_DATETIME)
        self.assertEqual(entry.unix_mode, 0o100644)
        self.assertFalse(entry.is_dir)
        self.assertFalse(entry.is_encrypted)
        self.assertIsNone(entry.encryption)

    def test_directory_entries_are_flagged(self):
        data = build_zip([Entry('docs/'), Entry('win\\'), Entry('docs/readme')])
        flags = [e.is_dir for e in read_directory(data).entries]
        self.assertEqual(flags, [True, True, False])

    def test_empty_archive(self):
        directory = read_directory(build_zip([]))
        self.assertEqual(directory.entries, ())
        self.assertEqual(directory.comment, b'')

    def test_comment_with_embedded_signature(self):
        comment = b'note PK\x05\x06 inside'
        directory = read_directory(build_zip([Entry('a.txt', b'a')], comment=comment))
        self.assertEqual(directory.comment, comment)
        self.assertEqual(len(directory.entries), 1)

    def test_utf8_flag_and_cp437_names(self):
        data = build_zip([
            Entry('café.txt', b'1', utf8=True),
            Entry(b'caf\x82.txt', b'2'),
        ])
        entries = read_directory(data).entries
        self.assertEqual(entries[0].name, 'café.txt')
        self.assertEqual(entries[1].name, 'café.txt')
        self.assertEqual(entries[1].raw_name, b'caf\x82.txt')

    def test_unicode_path_extra(self):
        unicode_name = 'ünï.txt'.encode('utf-8')
        fresh = struct.pack('<HHBI', 0x7075, 5 + len(unicode_name), 1, zlib.crc32(b'old.txt')) + unicode_name
        stale = struct.pack('<HHBI', 0x7075, 5 + len(unicode_name), 1, 0) + unicode_name

        entry = read_directory(build_zip([Entry(b'old.txt', b'x', extra=fresh)])).entries[0]
        self.assertEqual(entry.name, 'ünï.txt')

        with self.assertLogs('zipcat', level='WARNING'):
            entry = read_directory(build_zip([Entry(b'old.txt', b'x', extra=stale)])).entries[0]
        self.assertEqual(entry.name, 'old.txt')

    def test_extended_timestamp_overrides_dos_time(self):
        extra = struct.pack('<HHBI', 0x5455, 5, 1, 1700000000)
        entry = read_directory(build_zip([Entry('t.txt', b't', extra=extra)])).entries[0]
        self.assertEqual(entry.modified, datetime.fromtimestamp(1700000000, tz=timezone.utc))

    def test_zip64_records(self):
        entries = [Entry('one.txt', b'1' * 50, method=8), Entry('two.txt', b'2' * 70)]
        plain = read_directory(build_zip(entries))
        wide = read_directory(build_zip(entries, zip64=True))

        self.assertTrue(wide.is_zip64)
        for a, b in zip(plain.entries, wide.entries):
            self.assertEqual(a.name, b.name)
            self.assertEqual(a.compressed_size, b.compressed_size)
            self.assertEqual(a.uncompressed_size, b.uncompressed_size)
            self.assertEqual(a.header_offset, b.header_offset)

    def test_prepended_data_shifts_offsets(self):
        prefix = b'#!/bin/sh\nexit 0\n' * 8
        for zip64 in (False, True):
            with self.subTest(zip64=zip64):
                directory = read_directory(build_zip([Entry('a.txt', b'a')], prefix=prefix, zip64=zip64))
                self.assertEqual(directory.archive_offset, len(prefix))
                self.assertEqual(directory.entries[0].header_offset, len(prefix))

    def test_not_a_zip(self):
        with self.assertRaises(InvalidArchiveError):
            read_directory(b'this is not a zip archive at all')

    def test_entry_count_larger_than_directory(self):
        data = build_zip([Entry('a.txt', b'a')])
        data = patch_eocd(data, 8, '<H', 2)
        data = patch_eocd(data, 10, '<H', 2)
        with self.assertRaisesRegex(InvalidArchiveError, 'truncated'):
            read_directory(data)

    def test_bad_central_header_signature(self):
        data = bytearray(build_zip([Entry('a.txt', b'a')]))
        (cd_offset,) = struct.unpack_from('<I', data, len(data) - 6)
        data[cd_offset:cd_offset + 4] = b'XXXX'
        with self.assertRaisesRegex(InvalidArchiveError, 'signature'):
            read_directory(bytes(data))

    def test_directory_offset_past_its_end(self):
        data = build_zip([Entry('a.txt', b'a')])
        (cd_offset,) = struct.unpack_from('<I', data, len(data) - 6)
        data = patch_eocd(data, 16, '<I', cd_offset + 1000)
        with self.assertRaisesRegex(InvalidArchiveError, 'points past'):
            read_directory(data)

    def test_configured_name_encoding(self):
        data = build_zip([Entry(b'caf\xe9.txt', b'1')])
        self.assertEqual(read_directory(data).entries[0].name, 'cafΘ.txt')
        self.assertEqual(read_directory(data, name_encoding='cp1252').entries[0].name, 'café.txt')

    def test_multi_disk_rejected(self):
        data = patch_eocd(build_zip([Entry('a.txt', b'a')]), 4, '<H', 1)
        with self.assertRaises(UnsupportedArchiveError):
            read_directory(data)

    def test_saturated_offset_without_zip64(self):
        data = patch_eocd(build_zip([Entry('a.txt', b'a')]), 16, '<I', 0xFFFFFFFF)
        with self.assertRaisesRegex(InvalidArchiveError, 'ZIP64'):
            read_directory(data)

    def test_aes_entry(self):
        data = build_zip([Entry('s.txt', b'secret', method=8, aes_password=b'pw', aes_version=1, aes_strength=1)])
        entry = read_directory(data).entries[0]
        self.assertEqual(entry.method, 99)
        self.assertEqual(entry.data_method, 8)
        self.assertTrue(entry.is_encrypted)
        self.assertEqual(entry.encryption, AesEncryption(vendor_version=1, strength=1, method=8))
        self.assertEqual(entry.encryption.key_length, 16)
        self.assertTrue(entry.encryption.checks_crc)

    def test_traditional_encryption_check_byte(self):
        payload = b'classic'
        data = build_zip([Entry('c.txt', payload, zipcrypto_password=b'pw')])
        entry = read_directory(data).entries[0]
        self.assertEqual(entry.encryption, TraditionalEncryption(check_byte=zlib.crc32(payload) >> 24))


class TestDirectoryHelpersUnit(unittest.TestCase):
    def test_dos_to_datetime(self):
        self.assertEqual(dos_to_datetime(((2001 - 1980) << 9) | (2 << 5) | 3, (4 << 11) | (5 << 5) | 3),
                         datetime(2001, 2, 3, 4, 5, 6))
        self.assertIsNone(dos_to_datetime(0, 0))

    def test_parse_extra_fields(self):
        extra = struct.pack('<HH', 0x0001, 2) + b'ab' + struct.pack('<HH', 0xCAFE, 1) + b'c'
        self.assertEqual(parse_extra_fields(extra), {0x0001: b'ab', 0xCAFE: b'c'})

        with self.assertRaises(InvalidArchiveError):
            parse_extra_fields(struct.pack('<HH', 0x0001, 10) + b'abc')


if __name__ == '__main__':
    unittest.main()
