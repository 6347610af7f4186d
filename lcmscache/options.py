"""Options for the spectral point cache.

Plot budget, per-spectrum floor, centroiding resolution and intensity cutoff.
Out-of-range values are clamped on construction rather than rejected, so that
settings read from loosely validated sources still yield a usable cache.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .constants import (
    DEFAULT_MAX_POINTS_TO_PLOT,
    DEFAULT_MIN_POINTS_PER_SPECTRUM,
    DEFAULT_OVERVIEW_PLOT_DIVISOR,
    DEFAULT_MZ_RESOLUTION,
    DEFAULT_MIN_INTENSITY,
    DEFAULT_MAX_MONO_MASS_FOR_DEISOTOPED_PLOT,
    MIN_MAX_POINTS_TO_PLOT,
    MIN_MAX_MONO_MASS,
)


class DataType(Enum):
    """Kind of peak data delivered by the decoder."""
    PROFILE = "profile"          # Raw profile points, closely spaced
    CENTROID = "centroid"        # Instrument-centroided peaks
    DEISOTOPED = "deisotoped"    # Monoisotopic masses with charge states


@dataclass
class CacheOptions:
    """Parameters for ingestion filtering and global trimming."""

    # Target total number of points retained across all scans (T)
    max_points_to_plot: int = DEFAULT_MAX_POINTS_TO_PLOT

    # Floor of points kept for every spectrum during a global trim
    min_points_per_spectrum: int = DEFAULT_MIN_POINTS_PER_SPECTRUM

    # Points closer than this (m/z units) are consolidated; 0 disables
    mz_resolution: float = DEFAULT_MZ_RESOLUTION

    # Points below this intensity are discarded at ingestion
    min_intensity: float = DEFAULT_MIN_INTENSITY

    # Overview cache keeps max_points_to_plot / divisor points; <= 1 disables it
    overview_plot_divisor: int = DEFAULT_OVERVIEW_PLOT_DIVISOR

    # Deisotoped data: masses above this are left out of the by-charge series
    plotting_deisotoped_data: bool = False
    max_mono_mass_for_deisotoped_plot: float = DEFAULT_MAX_MONO_MASS_FOR_DEISOTOPED_PLOT

    # (start, end) m/z window always retained when a scan is capped
    always_keep_mz_range: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        self.max_points_to_plot = max(MIN_MAX_POINTS_TO_PLOT, int(self.max_points_to_plot))
        self.min_points_per_spectrum = max(0, int(self.min_points_per_spectrum))
        self.mz_resolution = max(0.0, float(self.mz_resolution))
        self.min_intensity = max(0.0, float(self.min_intensity))
        self.overview_plot_divisor = int(self.overview_plot_divisor)
        self.max_mono_mass_for_deisotoped_plot = max(
            MIN_MAX_MONO_MASS, float(self.max_mono_mass_for_deisotoped_plot)
        )

        if self.always_keep_mz_range is not None:
            start, end = self.always_keep_mz_range
            if start > end:
                raise ValueError(
                    f"Invalid always-keep m/z range: start {start} > end {end}"
                )
            self.always_keep_mz_range = (float(start), float(end))

    @classmethod
    def for_data_type(cls, data_type: DataType, **overrides) -> 'CacheOptions':
        """Create options suited to the kind of peak data being cached.

        Args:
            data_type: DataType enum
            **overrides: Field values replacing the preset defaults

        Returns:
            CacheOptions with data-type specific defaults
        """
        if data_type == DataType.PROFILE:
            preset = dict(mz_resolution=DEFAULT_MZ_RESOLUTION)
        elif data_type == DataType.CENTROID:
            preset = dict(mz_resolution=0.0)  # Already centroided
        elif data_type == DataType.DEISOTOPED:
            preset = dict(
                mz_resolution=0.0,
                plotting_deisotoped_data=True,
            )
        else:
            raise ValueError(f"Unknown data type: {data_type}")

        preset.update(overrides)
        return cls(**preset)

    def clone(self) -> 'CacheOptions':
        return replace(self)

    def for_overview(self) -> 'CacheOptions':
        """Options for the secondary overview cache.

        Same settings, with the plot budget divided by overview_plot_divisor.

        Raises:
            ValueError: If overview_plot_divisor <= 1 (overview disabled)
        """
        if self.overview_plot_divisor <= 1:
            raise ValueError(
                f"Overview cache disabled (divisor = {self.overview_plot_divisor})"
            )

        return replace(
            self,
            max_points_to_plot=int(round(self.max_points_to_plot / self.overview_plot_divisor)),
        )
