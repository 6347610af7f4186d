"""Exceptions raised when a caller breaks the cache contract.

Data-quality problems (bad points, empty scans) are never raised; they are
corrected or reported through return values. These exceptions signal
programming errors only.
"""


class LCMSCacheError(Exception):
    """Base class for cache contract violations."""


class DuplicateScanError(LCMSCacheError):
    """A scan number was ingested twice into the same cache."""

    def __init__(self, scan_number: int):
        self.scan_number = scan_number
        super().__init__(f"Scan {scan_number} is already cached")


class CacheInvariantError(LCMSCacheError):
    """Internal bookkeeping no longer matches the cached scans."""
