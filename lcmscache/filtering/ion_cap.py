"""Absolute per-scan ion cap.

A single spectrum may hold far more points than any overview plot needs
(e.g. profile data from high-resolution instruments). When a scan exceeds
the cap, only its most intense points are retained, plus any point inside
an optional always-keep m/z window.

The cap runs per scan at ingestion, before (and independently of) the
global trim.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..cache.scan_buffer import ScanBuffer
from ..constants import MAX_ALLOWABLE_ION_COUNT, WARN_FIRST_N
from .selection import top_n_mask

logger = logging.getLogger(__name__)


def ion_cap_keep_mask(
    mz: np.ndarray,
    intensity: np.ndarray,
    max_ion_count: int,
    always_keep_mz_range: Optional[Tuple[float, float]] = None,
) -> np.ndarray:
    """Flag the points retained under the ion cap.

    Parameters
    ----------
    mz : np.ndarray
        m/z values of the scan
    intensity : np.ndarray
        Intensity values of the scan
    max_ion_count : int
        Number of points kept by intensity rank
    always_keep_mz_range : (float, float), optional
        Inclusive m/z window kept regardless of rank

    Returns
    -------
    keep : np.ndarray (bool)
        Top max_ion_count points by intensity (ties: lower index), OR-ed with
        the always-keep window. A window point that also ranks in the top
        max_ion_count is counted once.
    """
    keep = top_n_mask(intensity, max_ion_count)

    if always_keep_mz_range is not None:
        start, end = always_keep_mz_range
        keep |= (mz >= start) & (mz <= end)

    return keep


class IonCapSelector:
    """Limits each scan to the most intense max_ion_count points.

    Attributes
    ----------
    max_ion_count : int
        Absolute per-scan cap
    always_keep_mz_range : (float, float) or None
        m/z window retained regardless of rank
    capped_scan_count : int
        Number of scans that exceeded the cap
    max_ion_count_reported : int
        Largest pre-cap ion count logged so far

    Examples
    --------
    >>> selector = IonCapSelector(max_ion_count=2)
    >>> scan = ScanBuffer(1, 1, 0.5, np.array([1.0, 2.0, 3.0]), np.array([9.0, 1.0, 5.0]))
    >>> selector.apply(scan)
    True
    >>> scan.ions_mz
    array([1., 3.])
    """

    def __init__(
        self,
        max_ion_count: int = MAX_ALLOWABLE_ION_COUNT,
        always_keep_mz_range: Optional[Tuple[float, float]] = None,
    ):
        if max_ion_count < 1:
            raise ValueError(f"max_ion_count must be positive, got {max_ion_count}")

        self.max_ion_count = int(max_ion_count)
        self.always_keep_mz_range = always_keep_mz_range
        self.capped_scan_count = 0
        self.max_ion_count_reported = 0

    def apply(self, scan: ScanBuffer) -> bool:
        """Cap the scan in place if it holds more than max_ion_count points.

        Returns
        -------
        bool
            True if points were discarded; False leaves the scan untouched
        """
        if scan.ion_count <= self.max_ion_count:
            return False

        self.capped_scan_count += 1

        if self.capped_scan_count <= WARN_FIRST_N or scan.ion_count > self.max_ion_count_reported:
            logger.info(
                f"Scan {scan.scan_number} has {scan.ion_count:,} ions; will only retain "
                f"{self.max_ion_count:,} (capped {self.capped_scan_count:,} spectra)"
            )
            self.max_ion_count_reported = max(self.max_ion_count_reported, scan.ion_count)

        keep = ion_cap_keep_mask(
            scan.ions_mz, scan.ions_intensity,
            self.max_ion_count, self.always_keep_mz_range
        )
        scan.compact(keep)
        return True
