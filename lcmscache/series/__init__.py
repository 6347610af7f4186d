"""Read-only series views for plotting and QC scoring."""

from .accessors import (
    PointSeries,
    SeriesRanges,
    FlatSeries,
    ChargeSeries,
    select_scans,
    series_flat,
    series_by_charge,
    average_intensity,
)

__all__ = [
    'PointSeries',
    'SeriesRanges',
    'FlatSeries',
    'ChargeSeries',
    'select_scans',
    'series_flat',
    'series_by_charge',
    'average_intensity',
]
