from .window import BoundedWindow
from .decompress import EntryReader, build_decoder

__all__ = ["BoundedWindow", "EntryReader", "build_decoder"]
