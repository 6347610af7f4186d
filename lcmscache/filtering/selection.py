"""Top-N selection by intensity without a full sort.

Both the per-scan ion cap and the global trim need "which points rank in the
top N by intensity". A partition (introselect) finds the N-th largest value
in linear time; everything strictly above it is kept, and the remaining
slots go to points equal to it, lowest index first.

Tie-break rule
--------------
Points with equal intensity at the cut are kept in ascending index order, so
the result is deterministic and never depends on partition internals.
"""

import numpy as np


def top_n_threshold(values: np.ndarray, n: int) -> float:
    """Return the n-th largest value (the selection cut).

    Parameters
    ----------
    values : np.ndarray
        Values to rank
    n : int
        Rank of the cut (1 = maximum); must satisfy 1 <= n <= len(values)

    Returns
    -------
    float
        The n-th largest value
    """
    if n < 1 or n > len(values):
        raise ValueError(f"n must be in [1, {len(values)}], got {n}")

    kth = len(values) - n
    return np.partition(values, kth)[kth]


def top_n_mask(values: np.ndarray, n: int) -> np.ndarray:
    """Flag the n largest values; ties at the cut go to the lowest indices.

    Parameters
    ----------
    values : np.ndarray
        Values to rank (intensities)
    n : int
        Number of values to keep

    Returns
    -------
    mask : np.ndarray (bool)
        Exactly min(n, len(values)) entries are True

    Examples
    --------
    >>> top_n_mask(np.array([5.0, 1.0, 5.0, 3.0, 5.0]), 2)
    array([ True, False,  True, False, False])
    """
    n_values = len(values)

    if n >= n_values:
        return np.ones(n_values, dtype=np.bool_)
    if n <= 0:
        return np.zeros(n_values, dtype=np.bool_)

    threshold = top_n_threshold(values, n)

    mask = values > threshold
    remaining = n - int(np.count_nonzero(mask))

    if remaining > 0:
        ties = np.flatnonzero(values == threshold)[:remaining]
        mask[ties] = True

    return mask
