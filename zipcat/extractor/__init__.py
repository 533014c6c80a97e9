from .coordinator import ZipArchive
from .paths import enclosed_name, resolve_inside

__all__ = ["ZipArchive", "enclosed_name", "resolve_inside"]
