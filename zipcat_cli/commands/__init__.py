"""
zipcat CLI Commands
Contains the executable modules for listing, printing, extracting and testing.
"""

from . import listing
from . import cat
from . import extract
from . import verify

__all__ = ["listing", "cat", "extract", "verify"]
