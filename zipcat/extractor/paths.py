"""
zipcat Path Safety
Turns entry names into relative paths that cannot leave the output directory.
"""
import re
from pathlib import Path, PurePosixPath

from ..errors import UnsafePathError


DRIVE_PATTERN = re.compile(r'^[A-Za-z]:')


def enclosed_name(name: str) -> PurePosixPath:
    """
    Normalise an entry name to a relative path.

    Rejects NUL bytes, absolute paths, drive letters and any ".." that would
    climb above the archive root. "." and empty components are dropped.
    """
    if '\x00' in name:
        raise UnsafePathError(name, "name contains a NUL byte")

    normalised = name.replace('\\', '/')
    if normalised.startswith('/') or DRIVE_PATTERN.match(normalised):
        raise UnsafePathError(name, "absolute path")

    parts = []
    for part in normalised.split('/'):
        if part in ('', '.'):
            continue
        if part == '..':
            if not parts:
                raise UnsafePathError(name, "path escapes the output directory")
            parts.pop()
            continue
        parts.append(part)

    if not parts:
        raise UnsafePathError(name, "empty path")
    return PurePosixPath(*parts)


def resolve_inside(dest_dir: Path, name: str) -> Path:
    """Join a sanitised entry name onto dest_dir and confirm it stays inside."""
    root = Path(dest_dir).resolve()
    target = (root / enclosed_name(name)).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        raise UnsafePathError(name, "path escapes the output directory")
    return target


__all__ = ["enclosed_name", "resolve_inside"]
