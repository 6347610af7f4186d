"""Centroid consolidation of closely spaced points.

Profile-mode (and some centroided) spectra contain points closer together
than is useful for an overview plot. This module merges every cluster of
points closer than the m/z resolution into its most intense member.

Algorithm
---------
1. Fast path: if no two adjacent points are closer than the resolution,
   the scan is returned unchanged (the common case for centroided data)
2. Rank points by descending intensity (stable, so equal intensities keep
   ascending index order)
3. Walk the ranking: each unprocessed point removes every unprocessed
   neighbor within the resolution on both sides, then is marked final
4. Compact to the final points, in original m/z order

The retained point keeps its own m/z and intensity; nothing is averaged.
Because a removed point never removes others, any two retained points are
at least one resolution width apart.
"""

from typing import Tuple

import numpy as np
from numba import njit

# Point states used during consolidation
_UNPROCESSED = 0
_FINAL = 1
_REMOVED = 2


@njit(cache=True)
def centroid_required(mz: np.ndarray, ion_count: int, mz_resolution: float) -> bool:
    """Check whether any adjacent points are closer than mz_resolution.

    Parameters
    ----------
    mz : np.ndarray (float64)
        Ascending m/z values
    ion_count : int
        Number of valid points
    mz_resolution : float
        Consolidation width in m/z units

    Returns
    -------
    bool
        True if consolidation would change the data
    """
    for i in range(ion_count - 1):
        if mz[i + 1] - mz[i] < mz_resolution:
            return True
    return False


@njit(cache=True)
def centroid_keep_mask(
    mz: np.ndarray,
    intensity: np.ndarray,
    ion_count: int,
    mz_resolution: float,
) -> np.ndarray:
    """Flag the points that survive consolidation.

    Parameters
    ----------
    mz : np.ndarray (float64)
        Ascending m/z values
    intensity : np.ndarray (float32)
        Intensity values (positive)
    ion_count : int
        Number of valid points
    mz_resolution : float
        Consolidation width in m/z units

    Returns
    -------
    keep : np.ndarray (bool)
        True for the most intense point of each cluster

    Notes
    -----
    Equal intensities are ranked by ascending index, so when two equally
    intense points compete the one with the lower index (lower m/z) wins.
    """
    keep = np.zeros(ion_count, dtype=np.bool_)
    if ion_count == 0:
        return keep

    # Stable sort on negated intensity: descending intensity, ascending index
    negated = np.empty(ion_count, dtype=np.float64)
    for i in range(ion_count):
        negated[i] = -intensity[i]
    order = np.argsort(negated, kind='mergesort')

    state = np.zeros(ion_count, dtype=np.int8)

    for rank in range(ion_count):
        index = order[rank]
        if state[index] != _UNPROCESSED:
            continue

        # Neighbors at lower m/z
        adjacent = index - 1
        while adjacent >= 0 and mz[index] - mz[adjacent] < mz_resolution:
            if state[adjacent] == _UNPROCESSED:
                state[adjacent] = _REMOVED
            adjacent -= 1

        # Neighbors at higher m/z
        adjacent = index + 1
        while adjacent < ion_count and mz[adjacent] - mz[index] < mz_resolution:
            if state[adjacent] == _UNPROCESSED:
                state[adjacent] = _REMOVED
            adjacent += 1

        state[index] = _FINAL

    for i in range(ion_count):
        keep[i] = state[i] == _FINAL

    return keep


def consolidate_centroids(
    mz: np.ndarray,
    intensity: np.ndarray,
    charge: np.ndarray,
    mz_resolution: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Merge points closer than mz_resolution into their most intense member.

    Parameters
    ----------
    mz : np.ndarray (float64)
        Ascending m/z values
    intensity : np.ndarray (float32)
        Intensity values
    charge : np.ndarray (uint8)
        Charge states
    mz_resolution : float
        Consolidation width in m/z units; <= 0 disables consolidation

    Returns
    -------
    mz, intensity, charge : np.ndarray
        The input arrays unchanged if no consolidation was needed, otherwise
        new arrays holding only the retained points

    Examples
    --------
    >>> mz = np.array([100.0, 100.0005, 100.0006])
    >>> intensity = np.array([10.0, 50.0, 20.0], dtype=np.float32)
    >>> charge = np.zeros(3, dtype=np.uint8)
    >>> consolidate_centroids(mz, intensity, charge, 0.001)[0]
    array([100.0005])
    """
    ion_count = len(mz)

    if mz_resolution <= 0 or not centroid_required(mz, ion_count, mz_resolution):
        return mz, intensity, charge

    keep = centroid_keep_mask(mz, intensity, ion_count, mz_resolution)
    return mz[keep], intensity[keep], charge[keep]
