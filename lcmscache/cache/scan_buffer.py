"""Per-scan storage for the spectral point cache.

A ScanBuffer owns three parallel arrays (m/z, intensity, charge) for one scan.
Only the first ``ion_count`` entries are valid; the backing arrays may be
longer (over-allocation after in-place compaction) until ``shrink_arrays`` is
called.

Design principles:
1. Each buffer owns its arrays (no aliasing into another scan's storage)
2. Arrays only shrink: consolidation, capping and trimming compact in place
3. Identity (scan number, elution time) is fixed at construction
"""

from typing import Optional

import numpy as np
from numba import njit

from ..constants import (
    MZ_DTYPE,
    INTENSITY_DTYPE,
    CHARGE_DTYPE,
    SHRINK_MIN_CAPACITY,
)


@njit(cache=True)
def compact_in_place(
    mz: np.ndarray,
    intensity: np.ndarray,
    charge: np.ndarray,
    keep: np.ndarray,
    ion_count: int,
) -> int:
    """Move kept points to the front of the arrays, preserving their order.

    Parameters
    ----------
    mz : np.ndarray (float64)
        m/z values, modified in place
    intensity : np.ndarray (float32)
        Intensity values, modified in place
    charge : np.ndarray (uint8)
        Charge states, modified in place
    keep : np.ndarray (bool)
        Keep flag for each of the first ion_count points
    ion_count : int
        Number of valid points before compaction

    Returns
    -------
    new_count : int
        Number of valid points after compaction
    """
    new_count = 0
    for i in range(ion_count):
        if keep[i]:
            if new_count != i:
                mz[new_count] = mz[i]
                intensity[new_count] = intensity[i]
                charge[new_count] = charge[i]
            new_count += 1
    return new_count


class ScanBuffer:
    """Cached peak data for one scan.

    Attributes
    ----------
    mz : np.ndarray (float64)
        Backing m/z array, ascending over [0, ion_count)
    intensity : np.ndarray (float32)
        Backing intensity array
    charge : np.ndarray (uint8)
        Backing charge array (0 = unknown charge)
    ion_count : int
        Number of valid entries in the backing arrays

    Examples
    --------
    >>> scan = ScanBuffer(12, 1, 3.5, np.array([100.0, 200.0]), np.array([5.0, 9.0]))
    >>> scan.ion_count
    2
    >>> scan
    ScanBuffer(Scan 12, MS1, 2 ions)
    """

    def __init__(
        self,
        scan_number: int,
        ms_level: int,
        elution_time_minutes: float,
        mz: np.ndarray,
        intensity: np.ndarray,
        charge: Optional[np.ndarray] = None,
        ion_count: Optional[int] = None,
    ):
        """Copy the first ion_count points into buffers owned by this scan.

        Parameters
        ----------
        scan_number : int
            Scan number (unique within a cache)
        ms_level : int
            MS level; 0 means not yet assigned
        elution_time_minutes : float
            Elution (retention) time of the scan
        mz, intensity : np.ndarray
            Parallel point arrays, m/z ascending
        charge : np.ndarray, optional
            Charge per point; all zero (unknown) if omitted
        ion_count : int, optional
            Number of valid points; defaults to len(mz)
        """
        if ion_count is None:
            ion_count = len(mz)

        n_charge = len(charge) if charge is not None else ion_count
        if ion_count > len(mz) or ion_count > len(intensity) or ion_count > n_charge:
            raise ValueError(
                f"ion_count {ion_count} exceeds array length "
                f"(mz: {len(mz)}, intensity: {len(intensity)}, charge: {n_charge})"
            )

        self._scan_number = int(scan_number)
        self._ms_level = int(ms_level)
        self._elution_time_minutes = float(elution_time_minutes)

        self.ion_count = int(ion_count)
        self.mz = np.array(mz[:ion_count], dtype=MZ_DTYPE)
        self.intensity = np.array(intensity[:ion_count], dtype=INTENSITY_DTYPE)

        if charge is None:
            self.charge = np.zeros(ion_count, dtype=CHARGE_DTYPE)
        else:
            self.charge = np.array(charge[:ion_count], dtype=CHARGE_DTYPE)

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def scan_number(self) -> int:
        return self._scan_number

    @property
    def ms_level(self) -> int:
        return self._ms_level

    @property
    def elution_time_minutes(self) -> float:
        return self._elution_time_minutes

    def update_ms_level(self, ms_level: int) -> None:
        self._ms_level = int(ms_level)

    # -------------------------------------------------------------------------
    # Valid-region views
    # -------------------------------------------------------------------------

    @property
    def ions_mz(self) -> np.ndarray:
        return self.mz[:self.ion_count]

    @property
    def ions_intensity(self) -> np.ndarray:
        return self.intensity[:self.ion_count]

    @property
    def ions_charge(self) -> np.ndarray:
        return self.charge[:self.ion_count]

    @property
    def capacity(self) -> int:
        """Physical length of the backing arrays."""
        return len(self.mz)

    # -------------------------------------------------------------------------
    # In-place mutation
    # -------------------------------------------------------------------------

    def compact(self, keep: np.ndarray) -> int:
        """Keep only the flagged points, in their original m/z order.

        Parameters
        ----------
        keep : np.ndarray (bool)
            One flag per valid point (length ion_count)

        Returns
        -------
        int
            New ion_count
        """
        if len(keep) != self.ion_count:
            raise ValueError(
                f"Keep mask has {len(keep)} entries; scan {self.scan_number} "
                f"has {self.ion_count} ions"
            )

        self.ion_count = compact_in_place(
            self.mz, self.intensity, self.charge,
            np.asarray(keep, dtype=np.bool_), self.ion_count
        )
        return self.ion_count

    def shrink_arrays(self) -> None:
        """Reallocate the backing arrays to exactly ion_count entries."""
        if self.ion_count < self.capacity:
            self.mz = self.mz[:self.ion_count].copy()
            self.intensity = self.intensity[:self.ion_count].copy()
            self.charge = self.charge[:self.ion_count].copy()

    def shrink_if_sparse(self) -> bool:
        """Shrink when fewer than half of the backing slots are in use.

        Returns
        -------
        bool
            True if the arrays were reallocated
        """
        if self.capacity > SHRINK_MIN_CAPACITY and self.ion_count < self.capacity / 2.0:
            self.shrink_arrays()
            return True
        return False

    def snapshot(self) -> 'ScanBuffer':
        """Independent copy of this scan's valid points and metadata."""
        return ScanBuffer(
            self.scan_number,
            self.ms_level,
            self.elution_time_minutes,
            self.mz,
            self.intensity,
            self.charge,
            ion_count=self.ion_count,
        )

    def __repr__(self) -> str:
        if self.ms_level > 0:
            return f"ScanBuffer(Scan {self.scan_number}, MS{self.ms_level}, {self.ion_count} ions)"
        return f"ScanBuffer(Scan {self.scan_number}, {self.ion_count} ions)"
