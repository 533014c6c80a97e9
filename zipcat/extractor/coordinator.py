"""
zipcat Extraction Coordinator
Drives the directory reader, entry resolver and decompression stream to
list, stream, verify and extract archive entries.
"""
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Union

from ..config import ZipcatConfig, config as default_config
from ..errors import DirectoryEntryError, ZipError
from ..reader.directory import DirectoryReader
from ..reader.records import EntryRecord
from ..reader.resolver import EntryResolver
from ..stream.decompress import EntryReader
from ..utils.encryption import Password
from ..utils.logger import logger
from .paths import resolve_inside


EntryRef = Union[str, EntryRecord]


class ZipArchive:
    """
    A parsed ZIP archive.

    The central directory is read in the constructor, so every lookup sees
    the complete, ordered entry list. Paths are opened (and closed) by the
    archive; file objects passed in stay owned by the caller.
    """

    def __init__(
        self,
        source: Union[str, os.PathLike, BinaryIO],
        password: Optional[Password] = None,
        config: Optional[ZipcatConfig] = None,
    ):
        self.config = config or default_config
        self.password = password

        if isinstance(source, (str, os.PathLike)):
            self.path = Path(source)
            self.name = str(source)
            self.fp = open(self.path, 'rb')
            self._owns_fp = True
        else:
            self.path = None
            self.name = str(getattr(source, 'name', '<stream>'))
            self.fp = source
            self._owns_fp = False

        try:
            directory = DirectoryReader(self.fp, self.config.name_encoding, self.name).read()
        except Exception:
            self.close()
            raise

        self.entries = directory.entries
        self.comment = directory.comment
        self.archive_offset = directory.archive_offset
        self.is_zip64 = directory.is_zip64
        self._resolver = EntryResolver(self.entries, self.name)
        self.closed = False

    # ── Lookup ─────────────────────────────────────────────────────────────

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[EntryRecord]:
        return iter(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self._resolver

    def get(self, name: str) -> EntryRecord:
        return self._resolver.by_name(name)

    def by_index(self, index: int) -> EntryRecord:
        return self._resolver.by_index(index)

    def _entry(self, ref: EntryRef) -> EntryRecord:
        return ref if isinstance(ref, EntryRecord) else self.get(ref)

    # ── Streaming ──────────────────────────────────────────────────────────

    def open_entry(self, ref: EntryRef, password: Optional[Password] = None) -> EntryReader:
        """Open a file entry for streaming. Directory entries have no content to read."""
        entry = self._entry(ref)
        if entry.is_dir:
            raise DirectoryEntryError(entry.name)

        data_offset = self._resolver.data_offset(self.fp, entry)
        return EntryReader(
            self.fp,
            entry,
            data_offset,
            password=password if password is not None else self.password,
            verify_crc=self.config.verify_crc,
            chunk_size=self.config.chunk_size,
        )

    def read(self, ref: EntryRef, password: Optional[Password] = None) -> bytes:
        with self.open_entry(ref, password) as reader:
            return reader.read()

    def copy_entry(
        self,
        ref: EntryRef,
        out: BinaryIO,
        chunk_size: Optional[int] = None,
        password: Optional[Password] = None,
    ) -> int:
        """Stream an entry into a binary file object in fixed-size chunks."""
        chunk_size = chunk_size or self.config.chunk_size
        written = 0
        with self.open_entry(ref, password) as reader:
            while chunk := reader.read(chunk_size):
                out.write(chunk)
                written += len(chunk)
        return written

    def verify(self, password: Optional[Password] = None) -> Dict:
        """
        Decompress every file entry and check sizes and CRCs.

        Returns:
            summary dict with checked / failed counts and per-entry failures
        """
        checked = 0
        failures = []
        for entry in self.entries:
            if entry.is_dir:
                continue
            checked += 1
            try:
                with self.open_entry(entry, password) as reader:
                    while reader.read(EntryReader.INPUT_CHUNK):
                        pass
                logger.debug(f"OK {entry.name}")
            except ZipError as e:
                logger.debug(f"FAILED {entry.name}: {e}")
                failures.append({'name': entry.name, 'error': str(e)})

        return {
            'checked': checked,
            'failed': len(failures),
            'failures': failures,
        }

    # ── Extraction ─────────────────────────────────────────────────────────

    def extract(self, ref: EntryRef, dest_dir: Union[str, os.PathLike], password: Optional[Password] = None) -> Path:
        entry = self._entry(ref)
        target = resolve_inside(Path(dest_dir), entry.name)

        if entry.is_dir:
            target.mkdir(parents=True, exist_ok=True)
            return target

        if target.exists() and not self.config.overwrite:
            raise FileExistsError(f"{target} already exists")

        target.parent.mkdir(parents=True, exist_ok=True)
        if entry.is_symlink:
            logger.warning(f"{entry.name} is a symbolic link, writing its target as a regular file")

        tmp_fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix='.tmp')
        try:
            with os.fdopen(tmp_fd, 'wb') as out_f:
                self.copy_entry(entry, out_f, password=password)
            os.replace(tmp_path, target)
            tmp_path = None
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

        self._apply_metadata(entry, target)
        logger.debug(f"Extracted {entry.name} -> {target}")
        return target

    def extract_all(self, dest_dir: Union[str, os.PathLike], password: Optional[Password] = None) -> List[Path]:
        return [self.extract(entry, dest_dir, password) for entry in self.entries]

    def _apply_metadata(self, entry: EntryRecord, target: Path):
        mode = entry.unix_mode
        if self.config.preserve_permissions and mode and not entry.is_symlink and mode & 0o777:
            os.chmod(target, mode & 0o777)
        if entry.modified is not None:
            timestamp = entry.modified.timestamp()
            os.utime(target, (timestamp, timestamp))

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def close(self):
        if self._owns_fp and not self.fp.closed:
            self.fp.close()
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


__all__ = ["ZipArchive"]
