"""Streaming-safe Markdown and math sanitation."""

from .notation import normalize_bare_math
from .regions import Region, RegionKind, scan_regions
from .repair import close_open_structures, scan_open_state
from .sanitizer import sanitize

__all__ = [
    "Region",
    "RegionKind",
    "close_open_structures",
    "normalize_bare_math",
    "sanitize",
    "scan_open_state",
    "scan_regions",
]
