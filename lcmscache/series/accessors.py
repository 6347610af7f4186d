"""Read-only views over the cached scans.

These functions feed the plotting and QC-scoring layers:

- ``series_flat``: every retained (scan number, m/z, intensity) point, with
  axis ranges and a suggested color-scale floor (median intensity)
- ``series_by_charge``: the same points bucketed by charge state
  (bucket 0 = unknown charge), e.g. for deisotoped data
- ``average_intensity``: mean intensity over the retained points

All views accept an MS-level filter (0 = all levels) and never modify the
scans. Trimming before reading is the caller's job (see SpectralPointCache).
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np

from ..cache.scan_buffer import ScanBuffer
from ..constants import MZ_DTYPE, INTENSITY_DTYPE


@dataclass
class PointSeries:
    """Parallel arrays of plotted points."""
    scan_number: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    mz: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=MZ_DTYPE))
    intensity: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=INTENSITY_DTYPE))

    def __len__(self) -> int:
        return len(self.mz)

    def to_dataframe(self):
        """Points as a pandas DataFrame (columns: scan_number, mz, intensity)."""
        import pandas as pd

        return pd.DataFrame({
            'scan_number': self.scan_number,
            'mz': self.mz,
            'intensity': self.intensity,
        })


@dataclass
class SeriesRanges:
    """Axis ranges of a series (0 when the series is empty)."""
    min_mz: float = 0.0
    max_mz: float = 0.0
    min_scan: int = 0
    max_scan: int = 0
    max_elution_time: float = 0.0


@dataclass
class FlatSeries:
    """All points of the selected scans, unsegregated."""
    points: PointSeries
    ranges: SeriesRanges

    # Suggested color scale: median intensity as floor, maximum as ceiling
    color_scale_min_intensity: float = 0.0
    color_scale_max_intensity: float = 0.0

    @property
    def point_count(self) -> int:
        return len(self.points)

    def to_dataframe(self):
        return self.points.to_dataframe()


@dataclass
class ChargeSeries:
    """Points of the selected scans, one bucket per charge state."""
    points_by_charge: List[PointSeries]
    ranges: SeriesRanges

    @property
    def max_charge(self) -> int:
        return len(self.points_by_charge) - 1

    @property
    def point_count(self) -> int:
        return sum(len(series) for series in self.points_by_charge)

    def to_dataframe(self):
        """All buckets in one DataFrame with an extra 'charge' column."""
        import pandas as pd

        frames = []
        for charge, series in enumerate(self.points_by_charge):
            frame = series.to_dataframe()
            frame['charge'] = charge
            frames.append(frame)
        return pd.concat(frames, ignore_index=True)


# =============================================================================
# Helpers
# =============================================================================

def select_scans(scans: Iterable[ScanBuffer], ms_level_filter: int = 0) -> List[ScanBuffer]:
    """Scans matching the MS-level filter (0 = all levels)."""
    if ms_level_filter == 0:
        return list(scans)
    return [scan for scan in scans if scan.ms_level == ms_level_filter]


def _scan_ranges(scans: List[ScanBuffer]) -> SeriesRanges:
    if not scans:
        return SeriesRanges()

    scan_numbers = [scan.scan_number for scan in scans]
    return SeriesRanges(
        min_scan=min(scan_numbers),
        max_scan=max(scan_numbers),
        max_elution_time=max(scan.elution_time_minutes for scan in scans),
    )


def _collect_points(scans: List[ScanBuffer]) -> PointSeries:
    if not scans:
        return PointSeries()

    return PointSeries(
        scan_number=np.concatenate([
            np.full(scan.ion_count, scan.scan_number, dtype=np.int64) for scan in scans
        ]),
        mz=np.concatenate([scan.ions_mz for scan in scans]),
        intensity=np.concatenate([scan.ions_intensity for scan in scans]),
    )


# =============================================================================
# Views
# =============================================================================

def series_flat(scans: Iterable[ScanBuffer], ms_level_filter: int = 0) -> FlatSeries:
    """All retained points of the matching scans.

    Parameters
    ----------
    scans : iterable of ScanBuffer
        Cached scans
    ms_level_filter : int
        MS level to include; 0 includes all levels

    Returns
    -------
    FlatSeries
        Points in scan arrival order (m/z ascending within a scan), the m/z,
        scan-number and elution-time ranges, and the median / maximum
        intensity as suggested color-scale bounds
    """
    selected = select_scans(scans, ms_level_filter)
    points = _collect_points(selected)
    ranges = _scan_ranges(selected)

    if len(points) == 0:
        return FlatSeries(points=points, ranges=ranges)

    ranges.min_mz = float(points.mz.min())
    ranges.max_mz = float(points.mz.max())

    return FlatSeries(
        points=points,
        ranges=ranges,
        color_scale_min_intensity=float(np.median(points.intensity)),
        color_scale_max_intensity=float(points.intensity.max()),
    )


def series_by_charge(
    scans: Iterable[ScanBuffer],
    ms_level_filter: int = 0,
    max_mono_mass: Optional[float] = None,
) -> ChargeSeries:
    """Retained points of the matching scans, bucketed by charge.

    Parameters
    ----------
    scans : iterable of ScanBuffer
        Cached scans
    ms_level_filter : int
        MS level to include; 0 includes all levels
    max_mono_mass : float, optional
        Points with m/z (monoisotopic mass for deisotoped data) above this
        are left out

    Returns
    -------
    ChargeSeries
        Buckets 0..max observed charge (at least 0 and 1); bucket 0 holds
        points of unknown charge. The m/z range covers the bucketed points.
    """
    selected = select_scans(scans, ms_level_filter)

    max_charge = 1
    for scan in selected:
        if scan.ion_count > 0:
            max_charge = max(max_charge, int(scan.ions_charge.max()))

    points = _collect_points(selected)
    charge = (
        np.concatenate([scan.ions_charge for scan in selected])
        if selected else np.zeros(0, dtype=np.uint8)
    )

    if max_mono_mass is not None:
        in_range = points.mz <= max_mono_mass
        points = PointSeries(
            points.scan_number[in_range], points.mz[in_range], points.intensity[in_range]
        )
        charge = charge[in_range]

    buckets = []
    for z in range(max_charge + 1):
        mask = charge == z
        buckets.append(PointSeries(points.scan_number[mask], points.mz[mask], points.intensity[mask]))

    ranges = _scan_ranges(selected)
    if len(points) > 0:
        ranges.min_mz = float(points.mz.min())
        ranges.max_mz = float(points.mz.max())

    return ChargeSeries(points_by_charge=buckets, ranges=ranges)


def average_intensity(scans: Iterable[ScanBuffer], ms_level_filter: int = 0) -> float:
    """Mean intensity over all retained points of the matching scans.

    Every point carries equal weight. Returns 0.0 if no point matches.
    """
    total = 0.0
    count = 0
    for scan in select_scans(scans, ms_level_filter):
        total += float(np.sum(scan.ions_intensity, dtype=np.float64))
        count += scan.ion_count

    if count == 0:
        return 0.0
    return total / count
