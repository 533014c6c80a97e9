"""
zipcat Decompression Stream
Streaming decryption + decompression of a single entry with size and
CRC-32 verification once the data is exhausted.
"""
import bz2
import lzma
import struct
import zlib
from typing import BinaryIO, Iterator, Optional

import zstandard as zstd

from ..errors import (
    InvalidArchiveError,
    PasswordRequiredError,
    UnsupportedArchiveError,
    ChecksumError,
)
from ..reader.records import (
    AesEncryption,
    CompressionMethod,
    EntryRecord,
    GeneralFlags,
    TraditionalEncryption,
)
from ..utils.checksum import CRC32
from ..utils.encryption import AesDecryptor, TraditionalDecryptor, Password
from ..utils.logger import logger
from .window import BoundedWindow


# ── Decoders ───────────────────────────────────────────────────────────────

class StoredDecoder:
    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        return data

    def flush(self) -> bytes:
        return b''


class DeflateDecoder:
    def __init__(self):
        self._obj = zlib.decompressobj(-zlib.MAX_WBITS)

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        # input held back by an earlier max_length goes first
        data = self._obj.unconsumed_tail + data
        return self._obj.decompress(data, max(max_length, 0))

    def flush(self) -> bytes:
        return self._obj.flush()


class Bzip2Decoder:
    def __init__(self):
        self._obj = bz2.BZ2Decompressor()

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        if self._obj.eof:
            return b''
        return self._obj.decompress(data, max_length)

    def flush(self) -> bytes:
        return b''


class LzmaDecoder:
    """
    ZIP wraps raw LZMA1 data in a small header: major and minor version
    (one byte each), properties length (u16), then the properties.
    """
    HEADER = struct.Struct('<BBH')

    def __init__(self):
        self._header = b''
        self._obj = None

    @staticmethod
    def _filter(props: bytes) -> dict:
        if len(props) < 5:
            raise lzma.LZMAError("LZMA properties too short")
        d = props[0]
        if d >= 9 * 5 * 5:
            raise lzma.LZMAError("invalid LZMA properties byte")
        (dict_size,) = struct.unpack_from('<I', props, 1)
        return {
            'id': lzma.FILTER_LZMA1,
            'lc': d % 9,
            'lp': (d // 9) % 5,
            'pb': d // 45,
            'dict_size': dict_size,
        }

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        if self._obj is None:
            self._header += data
            if len(self._header) < self.HEADER.size:
                return b''
            _, _, props_size = self.HEADER.unpack_from(self._header)
            body_start = self.HEADER.size + props_size
            if len(self._header) < body_start:
                return b''
            props = self._header[self.HEADER.size:body_start]
            self._obj = lzma.LZMADecompressor(lzma.FORMAT_RAW, filters=[self._filter(props)])
            data = self._header[body_start:]
            self._header = b''
        if self._obj.eof:
            return b''
        return self._obj.decompress(data, max_length)

    def flush(self) -> bytes:
        if self._obj is None:
            raise lzma.LZMAError("truncated LZMA header")
        return b''


class XzDecoder:
    def __init__(self):
        self._obj = lzma.LZMADecompressor(lzma.FORMAT_XZ)

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        if self._obj.eof:
            return b''
        return self._obj.decompress(data, max_length)

    def flush(self) -> bytes:
        return b''


class ZstdDecoder:
    """Decodes every frame in the input; a method 93 entry may hold several."""

    def __init__(self):
        self._dctx = zstd.ZstdDecompressor()
        self._obj = self._dctx.decompressobj()

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        out = []
        while data:
            if self._obj.eof:
                self._obj = self._dctx.decompressobj()
            out.append(self._obj.decompress(data))
            data = self._obj.unused_data if self._obj.eof else b''
        return b''.join(out)

    def flush(self) -> bytes:
        return self._obj.flush()


DECODERS = {
    CompressionMethod.STORED: StoredDecoder,
    CompressionMethod.DEFLATED: DeflateDecoder,
    CompressionMethod.BZIP2: Bzip2Decoder,
    CompressionMethod.LZMA: LzmaDecoder,
    CompressionMethod.ZSTD: ZstdDecoder,
    CompressionMethod.XZ: XzDecoder,
}

DECODE_ERRORS = (zlib.error, lzma.LZMAError, zstd.ZstdError, OSError, EOFError)


def build_decoder(method: int, name: str):
    decoder_cls = DECODERS.get(method)
    if decoder_cls is None:
        raise UnsupportedArchiveError(
            f"{name}: unsupported compression method {CompressionMethod.label(method)}"
        )
    return decoder_cls()


# ── Entry reader ───────────────────────────────────────────────────────────

class EntryReader:
    """
    File-like reader over one entry's decompressed bytes.

    Owns a BoundedWindow into the archive; the window never reads past the
    entry's compressed size. When the compressed data runs out the produced
    length and CRC-32 are checked against the central directory.
    """
    INPUT_CHUNK = 65536

    def __init__(
        self,
        fp: BinaryIO,
        entry: EntryRecord,
        data_offset: int,
        password: Optional[Password] = None,
        verify_crc: bool = True,
        chunk_size: int = 1024,
    ):
        self.entry = entry
        self.name = entry.name
        self.chunk_size = chunk_size
        self.verify_crc = verify_crc

        self._window = BoundedWindow(fp, data_offset, entry.compressed_size, entry.name)
        self._trailer = 0
        self._decryptor = self._build_decryptor(password)
        self._payload_remaining = self._window.remaining - self._trailer
        if self._payload_remaining < 0:
            raise InvalidArchiveError(f"{self.name}: compressed size too small for its headers")

        self._decoder = build_decoder(entry.data_method, entry.name)
        self._crc = CRC32()
        self._buffer = bytearray()
        self._eof = False
        self.closed = False

        logger.debug(
            f"Opened {self.name}: {CompressionMethod.label(entry.data_method)}, "
            f"{entry.compressed_size} -> {entry.uncompressed_size} bytes"
        )

    def _build_decryptor(self, password):
        entry = self.entry
        if not entry.is_encrypted:
            return None
        if entry.flags & GeneralFlags.STRONG_ENCRYPTION or entry.encryption is None:
            raise UnsupportedArchiveError(f"{self.name}: strong encryption is not supported")
        if password is None:
            raise PasswordRequiredError(self.name)

        if isinstance(entry.encryption, AesEncryption):
            aes = entry.encryption
            salt = self._window.read_exact(aes.salt_length)
            verifier = self._window.read_exact(AesDecryptor.VERIFIER_LENGTH)
            self._trailer = AesDecryptor.AUTH_CODE_LENGTH
            return AesDecryptor(password, salt, verifier, aes.key_length, self.name)

        if isinstance(entry.encryption, TraditionalEncryption):
            header = self._window.read_exact(TraditionalDecryptor.HEADER_LENGTH)
            return TraditionalDecryptor(password, header, entry.encryption.check_byte, self.name)

        raise UnsupportedArchiveError(f"{self.name}: unknown encryption")

    @property
    def _checks_crc(self) -> bool:
        if not self.verify_crc:
            return False
        if isinstance(self.entry.encryption, AesEncryption):
            return self.entry.encryption.checks_crc
        return True

    def _accept(self, data: bytes):
        if not data:
            return
        if self._crc.length + len(data) > self.entry.uncompressed_size:
            raise InvalidArchiveError(f"{self.name}: data is larger than its declared size")
        self._crc.update(data)
        self._buffer += data

    def _fill(self):
        if self._payload_remaining == 0:
            self._finish()
            return

        raw = self._window.read(min(self.INPUT_CHUNK, self._payload_remaining))
        self._payload_remaining -= len(raw)
        if self._decryptor is not None:
            raw = self._decryptor.decrypt(raw)
        # one byte past the declared size is enough to reject the entry
        limit = self.entry.uncompressed_size - self._crc.length + 1
        try:
            self._accept(self._decoder.decompress(raw, limit))
        except DECODE_ERRORS as e:
            raise InvalidArchiveError(f"{self.name}: corrupt compressed data: {e}")

    def _finish(self):
        try:
            self._accept(self._decoder.flush())
        except DECODE_ERRORS as e:
            raise InvalidArchiveError(f"{self.name}: corrupt compressed data: {e}")
        self._eof = True

        if isinstance(self._decryptor, AesDecryptor):
            self._decryptor.verify(self._window.read_exact(self._trailer))

        if self._crc.length != self.entry.uncompressed_size:
            raise InvalidArchiveError(
                f"{self.name}: expected {self.entry.uncompressed_size} bytes, got {self._crc.length}"
            )
        if self._checks_crc and self._crc.value != self.entry.crc32:
            raise ChecksumError(
                f"{self.name}: CRC-32 mismatch (expected {self.entry.crc32:08x}, got {self._crc.hexdigest()})"
            )

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed entry")

        if size is None or size < 0:
            while not self._eof:
                self._fill()
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        while len(self._buffer) < size and not self._eof:
            self._fill()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def __iter__(self) -> Iterator[bytes]:
        while chunk := self.read(self.chunk_size):
            yield chunk

    def close(self):
        self.closed = True
        self._buffer.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


__all__ = ["EntryReader", "build_decoder", "DECODERS"]
