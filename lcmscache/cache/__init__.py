"""Per-scan buffers and the ordered scan store.

- ScanBuffer: parallel m/z, intensity and charge arrays for one scan,
  compacted and shrunk in place
- CacheStore: scans in arrival order with a running point count
"""

from .scan_buffer import (
    ScanBuffer,
    compact_in_place,
)

from .store import CacheStore

__all__ = [
    'ScanBuffer',
    'compact_in_place',
    'CacheStore',
]
