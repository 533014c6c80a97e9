"""
zipcat Encryption Utility
Decrypts WinZip AES (AE-1 / AE-2) and traditional PKWARE encrypted entries.
"""
from typing import Union

from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import ChecksumError, InvalidPasswordError
from .checksum import crc32_update_byte


Password = Union[str, bytes]


def _password_bytes(password: Password) -> bytes:
    if isinstance(password, str):
        return password.encode('utf-8')
    return bytes(password)


class AesDecryptor:
    """
    WinZip AES: PBKDF2-HMAC-SHA1 (1000 rounds) derives the AES key, the
    HMAC key and a 2-byte password verifier. The payload is AES in CTR mode
    with a little-endian block counter starting at 1, followed by the first
    10 bytes of HMAC-SHA1 over the ciphertext.
    """
    ITERATIONS = 1000
    VERIFIER_LENGTH = 2
    AUTH_CODE_LENGTH = 10
    BLOCK = 16

    def __init__(self, password: Password, salt: bytes, verifier: bytes, key_length: int, entry_name: str):
        self.entry_name = entry_name
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA1(),
            length=2 * key_length + self.VERIFIER_LENGTH,
            salt=salt,
            iterations=self.ITERATIONS,
        )
        derived = kdf.derive(_password_bytes(password))
        aes_key = derived[:key_length]
        mac_key = derived[key_length:2 * key_length]

        if not constant_time.bytes_eq(derived[2 * key_length:], verifier):
            raise InvalidPasswordError(entry_name)

        # CTR with a little-endian counter is not a cryptography mode, so the
        # keystream is built from ECB-encrypted counter blocks
        self._ecb = Cipher(algorithms.AES(aes_key), modes.ECB()).encryptor()
        self._mac = hmac.HMAC(mac_key, hashes.SHA1())
        self._counter = 1
        self._keystream = b''

    def _take_keystream(self, length: int) -> bytes:
        missing = length - len(self._keystream)
        if missing > 0:
            blocks = (missing + self.BLOCK - 1) // self.BLOCK
            counters = b''.join(
                (self._counter + i).to_bytes(self.BLOCK, 'little') for i in range(blocks)
            )
            self._counter += blocks
            self._keystream += self._ecb.update(counters)
        stream, self._keystream = self._keystream[:length], self._keystream[length:]
        return stream

    def decrypt(self, data: bytes) -> bytes:
        if not data:
            return b''
        self._mac.update(data)
        stream = self._take_keystream(len(data))
        plain = int.from_bytes(data, 'big') ^ int.from_bytes(stream, 'big')
        return plain.to_bytes(len(data), 'big')

    def verify(self, auth_code: bytes):
        expected = self._mac.finalize()[:self.AUTH_CODE_LENGTH]
        if not constant_time.bytes_eq(expected, auth_code):
            raise ChecksumError(f"{self.entry_name}: AES authentication code mismatch")


class TraditionalDecryptor:
    """PKWARE stream cipher. The last byte of the 12-byte header checks the password."""
    HEADER_LENGTH = 12

    def __init__(self, password: Password, header: bytes, check_byte: int, entry_name: str):
        self.entry_name = entry_name
        self._keys = [0x12345678, 0x23456789, 0x34567890]
        for byte in _password_bytes(password):
            self._update_keys(byte)

        plain_header = self.decrypt(header)
        if plain_header[-1] != check_byte:
            raise InvalidPasswordError(entry_name)

    def _update_keys(self, byte: int):
        k0, k1, k2 = self._keys
        k0 = crc32_update_byte(k0, byte)
        k1 = (k1 + (k0 & 0xFF)) & 0xFFFFFFFF
        k1 = (k1 * 134775813 + 1) & 0xFFFFFFFF
        k2 = crc32_update_byte(k2, k1 >> 24)
        self._keys = [k0, k1, k2]

    def decrypt(self, data: bytes) -> bytes:
        out = bytearray(len(data))
        for i, byte in enumerate(data):
            temp = (self._keys[2] | 2) & 0xFFFF
            plain = byte ^ (((temp * (temp ^ 1)) >> 8) & 0xFF)
            self._update_keys(plain)
            out[i] = plain
        return bytes(out)


__all__ = ["AesDecryptor", "TraditionalDecryptor"]
