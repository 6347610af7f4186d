"""Ordered collection of cached scans with a running point count.

The store is the single owner of every ScanBuffer in a cache. Scans are kept
in arrival order (not necessarily scan-number order); the running total is
updated on every insert and after every trim so that the trim trigger never
has to walk the scans.
"""

from typing import Dict, Iterator, List, Optional

from ..exceptions import DuplicateScanError, CacheInvariantError
from .scan_buffer import ScanBuffer


class CacheStore:
    """Scans plus the bookkeeping used by the global trim.

    Attributes
    ----------
    scans : List[ScanBuffer]
        Cached scans in arrival order
    total_point_count : int
        Sum of ion_count over all scans
    total_point_count_after_last_trim : int
        Value of total_point_count right after the most recent trim
    """

    def __init__(self):
        self.scans: List[ScanBuffer] = []
        self.total_point_count = 0
        self.total_point_count_after_last_trim = 0
        self._scan_numbers: Dict[int, int] = {}

    def add(self, scan: ScanBuffer) -> None:
        """Append a scan and add its points to the running total.

        Raises
        ------
        DuplicateScanError
            If a scan with the same scan number is already cached
        """
        if scan.scan_number in self._scan_numbers:
            raise DuplicateScanError(scan.scan_number)

        self._scan_numbers[scan.scan_number] = len(self.scans)
        self.scans.append(scan)
        self.total_point_count += scan.ion_count

    def reset(self) -> None:
        self.scans.clear()
        self._scan_numbers.clear()
        self.total_point_count = 0
        self.total_point_count_after_last_trim = 0

    def get_by_index(self, index: int) -> Optional[ScanBuffer]:
        """Scan at the given arrival position, or None if out of range."""
        if 0 <= index < len(self.scans):
            return self.scans[index]
        return None

    def get_by_scan_number(self, scan_number: int) -> Optional[ScanBuffer]:
        index = self._scan_numbers.get(scan_number)
        if index is None:
            return None
        return self.scans[index]

    def contains(self, scan_number: int) -> bool:
        return scan_number in self._scan_numbers

    def recount(self) -> int:
        """Sum of ion_count over all scans, computed from scratch."""
        return sum(scan.ion_count for scan in self.scans)

    def verify(self) -> None:
        """Check the running total against a fresh count.

        Raises
        ------
        CacheInvariantError
            If the running total has drifted
        """
        actual = self.recount()
        if actual != self.total_point_count:
            raise CacheInvariantError(
                f"Running point count {self.total_point_count:,} does not match "
                f"cached points {actual:,}"
            )

    def normalize_ms_levels(self) -> int:
        """Assign MS level 1 to every scan whose level is still unassigned (0).

        Returns
        -------
        int
            Number of scans updated
        """
        updated = 0
        for scan in self.scans:
            if scan.ms_level <= 0:
                scan.update_ms_level(1)
                updated += 1
        return updated

    def __len__(self) -> int:
        return len(self.scans)

    def __iter__(self) -> Iterator[ScanBuffer]:
        return iter(self.scans)
