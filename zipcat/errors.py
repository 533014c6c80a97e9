"""
zipcat Errors
Every failure the archive engine can raise derives from ZipError.
"""


class ZipError(Exception):
    pass


class InvalidArchiveError(ZipError, ValueError):
    """Malformed or truncated archive structures."""


class ChecksumError(InvalidArchiveError):
    """CRC-32 or AES authentication code did not match the entry data."""


class UnsupportedArchiveError(ZipError):
    """Valid ZIP feature this reader does not implement."""


class EntryNotFoundError(ZipError):
    def __init__(self, entry_name: str, archive_name: str):
        self.entry_name = entry_name
        self.archive_name = archive_name
        super().__init__(f"{entry_name} not found in {archive_name}.")


class DirectoryEntryError(ZipError):
    def __init__(self, entry_name: str):
        self.entry_name = entry_name
        super().__init__(f"{entry_name} is a directory.")


class PasswordRequiredError(ZipError):
    def __init__(self, entry_name: str):
        self.entry_name = entry_name
        super().__init__(f"{entry_name} is encrypted, a password is required.")


class InvalidPasswordError(ZipError):
    def __init__(self, entry_name: str):
        self.entry_name = entry_name
        super().__init__(f"Invalid password for {entry_name}.")


class UnsafePathError(ZipError):
    def __init__(self, entry_name: str, reason: str):
        self.entry_name = entry_name
        self.reason = reason
        super().__init__(f"Refusing to extract {entry_name}: {reason}")


__all__ = [
    "ZipError",
    "InvalidArchiveError",
    "ChecksumError",
    "UnsupportedArchiveError",
    "EntryNotFoundError",
    "DirectoryEntryError",
    "PasswordRequiredError",
    "InvalidPasswordError",
    "UnsafePathError",
]
