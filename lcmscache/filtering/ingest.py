"""Validation of raw scan data before it enters the cache.

Decoders deliver peak lists in several shapes (parallel arrays, lists of
(m/z, intensity[, charge]) tuples, 2-column paired arrays) and with the odd
artifact: unsorted m/z, zero or negative intensities, NaN values, intensities
that do not fit in float32. The validator turns all of them into one
filtered, m/z-ascending triple of arrays.

Per-point problems are corrected or dropped, never raised:
- Non-finite m/z or intensity: point dropped
- Intensity <= 0 or below the minimum intensity: point dropped
- Intensity above float32 max: clamped
- Mismatched array lengths: trailing unpaired values dropped
- Charge < 0 or non-finite: 0 (unknown); charge > 255: 255

Examples
--------
>>> validator = IngestValidator(min_intensity=0.0)
>>> points = validator.validate_arrays(
...     np.array([300.0, 100.0, 200.0]), np.array([5.0, 0.0, 7.0])
... )
>>> points.mz
array([200., 300.])
"""

import logging
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numba import njit

from ..constants import (
    MZ_DTYPE,
    INTENSITY_DTYPE,
    CHARGE_DTYPE,
    MAX_INTENSITY,
    MAX_CHARGE,
    ZERO_INTENSITY_EPSILON,
    WARN_FIRST_N,
    SORT_WARN_INTERVAL,
)

logger = logging.getLogger(__name__)


class ValidatedPoints(NamedTuple):
    """Filtered, m/z-ascending points of one scan."""
    mz: np.ndarray         # float64
    intensity: np.ndarray  # float32
    charge: np.ndarray     # uint8

    @property
    def ion_count(self) -> int:
        return len(self.mz)


# =============================================================================
# Numba kernels
# =============================================================================

@njit(cache=True)
def resolve_descending_pairs(
    mz: np.ndarray,
    intensity: np.ndarray,
    charge: np.ndarray,
    zero_epsilon: float,
) -> int:
    """Check m/z order, swapping out-of-order pairs of zero-intensity points.

    A descending pair whose intensities are both ~0 is swapped in place,
    provided the swap keeps the prefix ascending. Any other descending pair
    means the scan needs a full sort.

    Parameters
    ----------
    mz : np.ndarray (float64)
        m/z values, modified in place
    intensity : np.ndarray (float64)
        Intensity values, modified in place
    charge : np.ndarray (uint8)
        Charge states, modified in place
    zero_epsilon : float
        Absolute intensity below which a point counts as zero

    Returns
    -------
    index : int
        Index of the first pair requiring a sort, or -1 if the data is ascending
    """
    for i in range(1, len(mz)):
        if mz[i] < mz[i - 1]:
            both_zero = (
                abs(intensity[i]) < zero_epsilon
                and abs(intensity[i - 1]) < zero_epsilon
            )
            if both_zero and (i < 2 or mz[i] >= mz[i - 2]):
                mz[i], mz[i - 1] = mz[i - 1], mz[i]
                intensity[i], intensity[i - 1] = intensity[i - 1], intensity[i]
                charge[i], charge[i - 1] = charge[i - 1], charge[i]
            else:
                return i
    return -1


@njit(cache=True)
def filter_by_intensity(
    mz: np.ndarray,
    intensity: np.ndarray,
    charge: np.ndarray,
    min_intensity: float,
    max_intensity: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Keep points with intensity > 0 and >= min_intensity, clamping overflow.

    Parameters
    ----------
    mz : np.ndarray (float64)
        m/z values
    intensity : np.ndarray (float64)
        Raw intensity values
    charge : np.ndarray (uint8)
        Charge states
    min_intensity : float
        Minimum intensity to keep
    max_intensity : float
        Values above this are stored as max_intensity

    Returns
    -------
    mz_out : np.ndarray (float64)
    intensity_out : np.ndarray (float32)
    charge_out : np.ndarray (uint8)
    """
    n = len(mz)
    mz_out = np.empty(n, dtype=np.float64)
    intensity_out = np.empty(n, dtype=np.float32)
    charge_out = np.empty(n, dtype=np.uint8)

    count = 0
    for i in range(n):
        value = intensity[i]
        if value > 0 and value >= min_intensity:
            if value > max_intensity:
                value = max_intensity
            mz_out[count] = mz[i]
            intensity_out[count] = value
            charge_out[count] = charge[i]
            count += 1

    return mz_out[:count], intensity_out[:count], charge_out[:count]


# =============================================================================
# Input coercion
# =============================================================================

def coerce_charge(charge: Optional[Sequence], n_points: int) -> np.ndarray:
    """Convert a charge sequence to uint8, mapping invalid values to 0.

    Parameters
    ----------
    charge : sequence or None
        Charge per point; None means all unknown
    n_points : int
        Number of points to return

    Returns
    -------
    np.ndarray (uint8)
    """
    if charge is None:
        return np.zeros(n_points, dtype=CHARGE_DTYPE)

    values = np.asarray(charge, dtype=np.float64)[:n_points]
    values = np.where(np.isfinite(values), values, 0.0)
    return np.clip(values, 0, MAX_CHARGE).astype(CHARGE_DTYPE)


class IngestValidator:
    """Turns raw decoder output into filtered, m/z-ascending arrays.

    Counts how often a full sort was needed and logs the first few
    occurrences (then every 100th), since sorting indicates a decoder that
    does not deliver ascending m/z.

    Attributes
    ----------
    min_intensity : float
        Points below this intensity are dropped
    sort_count : int
        Number of scans that required a full m/z sort
    """

    def __init__(self, min_intensity: float = 0.0):
        self.min_intensity = float(min_intensity)
        self.sort_count = 0

    def validate_arrays(
        self,
        mz: Sequence[float],
        intensity: Sequence[float],
        charge: Optional[Sequence[int]] = None,
        scan_number: int = -1,
    ) -> Optional[ValidatedPoints]:
        """Validate parallel m/z, intensity and optional charge arrays.

        Parameters
        ----------
        mz : array-like
            m/z values
        intensity : array-like
            Intensity values
        charge : array-like, optional
            Charge states (0 = unknown)
        scan_number : int
            Used in log messages only

        Returns
        -------
        ValidatedPoints or None
            None when no point survives filtering
        """
        mz = np.array(mz, dtype=MZ_DTYPE).ravel()
        intensity = np.array(intensity, dtype=np.float64).ravel()

        n_points = min(len(mz), len(intensity))
        if charge is not None:
            n_points = min(n_points, len(charge))

        lengths = {len(mz), len(intensity)} | ({len(charge)} if charge is not None else set())
        if len(lengths) > 1:
            logger.warning(
                f"Scan {scan_number}: mismatched array lengths {sorted(lengths)}; "
                f"keeping the first {n_points:,} points"
            )

        mz = mz[:n_points]
        intensity = intensity[:n_points]
        charge = coerce_charge(charge, n_points)

        finite = np.isfinite(mz) & np.isfinite(intensity)
        if not finite.all():
            logger.debug(f"Scan {scan_number}: dropping {int((~finite).sum())} non-finite points")
            mz = mz[finite]
            intensity = intensity[finite]
            charge = charge[finite]

        if len(mz) == 0:
            return None

        if resolve_descending_pairs(mz, intensity, charge, ZERO_INTENSITY_EPSILON) >= 0:
            self._log_sort(scan_number)
            order = np.argsort(mz, kind="stable")
            mz = mz[order]
            intensity = intensity[order]
            charge = charge[order]

        mz_out, intensity_out, charge_out = filter_by_intensity(
            mz, intensity, charge, self.min_intensity, MAX_INTENSITY
        )

        if len(mz_out) == 0:
            return None

        return ValidatedPoints(mz_out, intensity_out.astype(INTENSITY_DTYPE, copy=False), charge_out)

    def validate_ions(
        self,
        ions: Sequence[Sequence[float]],
        scan_number: int = -1,
    ) -> Optional[ValidatedPoints]:
        """Validate a list of (m/z, intensity) or (m/z, intensity, charge) tuples.

        Tuples with fewer than two values are dropped.
        """
        mz = []
        intensity = []
        charge = []
        n_malformed = 0

        for ion in ions:
            if len(ion) < 2:
                n_malformed += 1
                continue
            mz.append(ion[0])
            intensity.append(ion[1])
            charge.append(ion[2] if len(ion) > 2 else 0)

        if n_malformed:
            logger.warning(f"Scan {scan_number}: dropped {n_malformed} malformed ion tuples")

        return self.validate_arrays(mz, intensity, charge, scan_number=scan_number)

    def validate_paired(
        self,
        pairs: np.ndarray,
        scan_number: int = -1,
    ) -> Optional[ValidatedPoints]:
        """Validate a paired m/z-intensity array.

        Accepts shape (n, 2) with columns (m/z, intensity), or shape (2, n)
        with rows (m/z, intensity) when n != 2.
        """
        pairs = np.asarray(pairs, dtype=np.float64)

        if pairs.ndim != 2 or 2 not in pairs.shape:
            raise ValueError(
                f"Paired array must have shape (n, 2) or (2, n), got {pairs.shape}"
            )

        if pairs.shape[1] == 2:
            return self.validate_arrays(pairs[:, 0], pairs[:, 1], scan_number=scan_number)
        return self.validate_arrays(pairs[0], pairs[1], scan_number=scan_number)

    def _log_sort(self, scan_number: int) -> None:
        self.sort_count += 1
        if self.sort_count <= WARN_FIRST_N:
            logger.info(
                f"Sorting m/z data for scan {scan_number} (this typically shouldn't be "
                f"required, though can occur for high-res Orbitrap data)"
            )
        elif self.sort_count % SORT_WARN_INTERVAL == 0:
            logger.info(f"Sorting m/z data (count = {self.sort_count:,})")
