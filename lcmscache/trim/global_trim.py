"""Global cross-scan trimming to a target point budget.

Keeps the total number of cached points within a bounded multiple of the
plot budget T while the data streams in, and can trim to T exactly before
the cache is read.

Algorithm
---------
1. Scans holding <= min_points_per_spectrum points are exempt and keep all points
2. Intensities of all other scans are pooled; the global top-T points are
   selected (a single intensity cut across the whole cache, so scans with
   higher intensity keep proportionally more points)
3. Per non-exempt scan:
   - fewer than min_points_per_spectrum survivors: keep the scan's own
     top-min_points_per_spectrum points instead
   - otherwise: compact to the survivors, in m/z order
   - backing arrays less than half used are reallocated
4. The running total and the post-trim watermark are updated

Because of the per-scan floor the total after a trim can exceed T by up to
min_points_per_spectrum * scan_count.

Auto-trim trigger (hysteresis)
------------------------------
A trim is triggered after an insert only if the total exceeds 5 * T and has
grown by more than 10% since the last trim, so a full cache is not
re-ranked after every new scan.

Ties at the global cut go to the earliest arrival (lower pooled index).
"""

import logging
from dataclasses import dataclass

import numpy as np

from ..cache.store import CacheStore
from ..constants import TRIM_TRIGGER_MULTIPLE, TRIM_HYSTERESIS_FACTOR
from ..filtering.selection import top_n_mask

logger = logging.getLogger(__name__)


def trim_required(
    total_point_count: int,
    total_point_count_after_last_trim: int,
    target_point_count: int,
) -> bool:
    """Check the auto-trim trigger.

    Parameters
    ----------
    total_point_count : int
        Points currently cached
    total_point_count_after_last_trim : int
        Points cached right after the previous trim (0 if none)
    target_point_count : int
        Plot budget T

    Returns
    -------
    bool
        True if total > 5 * T and total > 1.1 * total after the last trim

    Examples
    --------
    >>> trim_required(5001, 0, 1000)
    True
    >>> trim_required(5001, 4900, 1000)  # grew by only 2%
    False
    """
    if total_point_count <= target_point_count * TRIM_TRIGGER_MULTIPLE:
        return False
    return total_point_count > total_point_count_after_last_trim * TRIM_HYSTERESIS_FACTOR


@dataclass
class TrimResult:
    """Outcome of one global trim pass."""
    points_before: int
    points_after: int
    scans_trimmed: int       # Scans that lost points
    scans_floored: int       # Scans kept at their own top-N floor
    scans_shrunk: int        # Scans whose backing arrays were reallocated


class GlobalTrimEngine:
    """Rebalances a CacheStore down to a target point budget.

    Attributes
    ----------
    target_point_count : int
        Plot budget T
    min_points_per_spectrum : int
        Floor of points kept per scan
    trim_count : int
        Number of trims performed

    Examples
    --------
    >>> engine = GlobalTrimEngine(target_point_count=1000, min_points_per_spectrum=2)
    >>> engine.maybe_trim(store)   # after each insert
    >>> result = engine.trim(store)  # unconditional, before reading
    """

    def __init__(self, target_point_count: int, min_points_per_spectrum: int = 0):
        if target_point_count < 1:
            raise ValueError(f"target_point_count must be positive, got {target_point_count}")

        self.target_point_count = int(target_point_count)
        self.min_points_per_spectrum = max(0, int(min_points_per_spectrum))
        self.trim_count = 0

    def maybe_trim(self, store: CacheStore) -> bool:
        """Trim if the auto-trim trigger fires.

        Returns
        -------
        bool
            True if a trim was performed
        """
        if not trim_required(
            store.total_point_count,
            store.total_point_count_after_last_trim,
            self.target_point_count,
        ):
            return False

        self.trim(store)
        return True

    def trim(self, store: CacheStore) -> TrimResult:
        """Trim every eligible scan to the global top-T points (unconditional)."""
        floor = self.min_points_per_spectrum
        points_before = store.total_point_count

        eligible = [scan.ions_intensity for scan in store.scans if scan.ion_count > floor]
        if eligible:
            global_keep = top_n_mask(np.concatenate(eligible), self.target_point_count)
        else:
            global_keep = np.zeros(0, dtype=np.bool_)

        offset = 0
        total = 0
        scans_trimmed = 0
        scans_floored = 0
        scans_shrunk = 0

        for scan in store.scans:
            if scan.ion_count <= floor:
                # Exempt; not part of the pooled ranking
                total += scan.ion_count
                continue

            ion_count = scan.ion_count
            keep = global_keep[offset:offset + ion_count]
            offset += ion_count

            n_kept = int(np.count_nonzero(keep))
            if n_kept < floor:
                keep = top_n_mask(scan.ions_intensity, floor)
                n_kept = floor
                scans_floored += 1

            if n_kept < ion_count:
                scan.compact(keep)
                scans_trimmed += 1

            if scan.shrink_if_sparse():
                scans_shrunk += 1

            total += scan.ion_count

        store.total_point_count = total
        store.total_point_count_after_last_trim = total
        self.trim_count += 1

        logger.debug(
            f"Trimmed cache from {points_before:,} to {total:,} points "
            f"({scans_trimmed:,} scans trimmed, {scans_floored:,} at floor, "
            f"{scans_shrunk:,} reallocated)"
        )

        return TrimResult(
            points_before=points_before,
            points_after=total,
            scans_trimmed=scans_trimmed,
            scans_floored=scans_floored,
            scans_shrunk=scans_shrunk,
        )
