"""Bounded-memory cache of spectral points for LC-MS overview plots.

SpectralPointCache is the public entry point. Decoders push one scan at a
time; the cache filters, centroids and caps each scan, and trims the whole
cache whenever it grows well past the plot budget. Plotting and QC code then
read bounded, representative series back out.

Pipeline per scan::

    IngestValidator -> consolidate_centroids -> IonCapSelector -> CacheStore
                                                                    |
                        GlobalTrimEngine (auto-trim with hysteresis) +

Examples
--------
>>> cache = SpectralPointCache(CacheOptions(max_points_to_plot=100_000))
>>> for scan in decoder:
...     cache.ingest(scan.number, scan.ms_level, scan.rt_minutes, scan.mz, scan.intensity)
>>> ms1 = cache.series_flat(ms_level_filter=1)
>>> score = cache.average_intensity(ms_level_filter=1)
>>>
>>> # Smaller "high abundance" overview built from the primary cache
>>> overview = build_overview_cache(cache)
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Sequence

import numpy as np

from .cache.scan_buffer import ScanBuffer
from .cache.store import CacheStore
from .constants import MAX_ALLOWABLE_ION_COUNT
from .exceptions import DuplicateScanError
from .filtering.centroid import consolidate_centroids
from .filtering.ingest import IngestValidator, ValidatedPoints
from .filtering.ion_cap import IonCapSelector
from .options import CacheOptions
from .series.accessors import (
    FlatSeries,
    ChargeSeries,
    series_flat,
    series_by_charge,
    average_intensity,
)
from .trim.global_trim import GlobalTrimEngine, TrimResult

logger = logging.getLogger(__name__)


@dataclass
class CacheStatistics:
    """Counters describing what happened to the ingested data."""
    scans_cached: int
    points_cached: int
    scans_rejected: int          # Scans with no usable point
    scans_sorted: int            # Scans that needed a full m/z sort
    scans_capped: int            # Scans above the absolute ion cap
    max_ion_count_capped: int    # Largest ion count seen in a capped scan
    trims_performed: int


class SpectralPointCache:
    """Bounded-memory store of per-scan peak lists.

    Not thread-safe: one owner ingests, trims and reads.

    Attributes
    ----------
    options : CacheOptions
        Plot budget, per-spectrum floor, m/z resolution and intensity cutoff
    """

    def __init__(self, options: Optional[CacheOptions] = None):
        self.options = options if options is not None else CacheOptions()
        self._store = CacheStore()
        self._init_pipeline()

    def _init_pipeline(self) -> None:
        self._validator = IngestValidator(min_intensity=self.options.min_intensity)
        self._ion_cap = IonCapSelector(
            max_ion_count=MAX_ALLOWABLE_ION_COUNT,
            always_keep_mz_range=self.options.always_keep_mz_range,
        )
        self._trim_engine = GlobalTrimEngine(
            target_point_count=self.options.max_points_to_plot,
            min_points_per_spectrum=self.options.min_points_per_spectrum,
        )
        self._scans_rejected = 0

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def ingest(
        self,
        scan_number: int,
        ms_level: int,
        elution_time_minutes: float,
        mz: Sequence[float],
        intensity: Sequence[float],
        charge: Optional[Sequence[int]] = None,
    ) -> bool:
        """Add a scan given as parallel m/z, intensity and optional charge arrays.

        Parameters
        ----------
        scan_number : int
            Scan number, unique within this cache
        ms_level : int
            MS level (1 = precursor scans, 2+ = fragmentation); 0 if unknown
        elution_time_minutes : float
            Elution time of the scan
        mz, intensity : array-like
            Peak list
        charge : array-like, optional
            Charge per point (0 = unknown)

        Returns
        -------
        bool
            False if no point survived filtering (the cache is unchanged)

        Raises
        ------
        DuplicateScanError
            If scan_number is already cached
        """
        points = self._validator.validate_arrays(mz, intensity, charge, scan_number=scan_number)
        return self._add_validated(scan_number, ms_level, elution_time_minutes, points)

    def ingest_ions(
        self,
        scan_number: int,
        ms_level: int,
        elution_time_minutes: float,
        ions: Sequence[Sequence[float]],
    ) -> bool:
        """Add a scan given as (m/z, intensity[, charge]) tuples."""
        points = self._validator.validate_ions(ions, scan_number=scan_number)
        return self._add_validated(scan_number, ms_level, elution_time_minutes, points)

    def ingest_paired(
        self,
        scan_number: int,
        ms_level: int,
        elution_time_minutes: float,
        pairs: np.ndarray,
    ) -> bool:
        """Add a scan given as a paired (n, 2) m/z-intensity array."""
        points = self._validator.validate_paired(pairs, scan_number=scan_number)
        return self._add_validated(scan_number, ms_level, elution_time_minutes, points)

    def ingest_unfiltered(self, scan: Optional[ScanBuffer]) -> bool:
        """Add a copy of a scan taken from another cache, skipping all filters.

        The scan was already validated, centroided and capped by the cache
        it came from; only the auto-trim of this cache applies.

        Returns
        -------
        bool
            False if scan is None or holds no points
        """
        if scan is None or scan.ion_count <= 0:
            return False

        self._store.add(scan.snapshot())
        self._trim_engine.maybe_trim(self._store)
        return True

    def _add_validated(
        self,
        scan_number: int,
        ms_level: int,
        elution_time_minutes: float,
        points: Optional[ValidatedPoints],
    ) -> bool:
        if points is None:
            self._scans_rejected += 1
            return False

        if self._store.contains(scan_number):
            raise DuplicateScanError(scan_number)

        mz, intensity, charge = consolidate_centroids(
            points.mz, points.intensity, points.charge, self.options.mz_resolution
        )

        scan = ScanBuffer(scan_number, ms_level, elution_time_minutes, mz, intensity, charge)
        self._ion_cap.apply(scan)

        self._store.add(scan)
        self._trim_engine.maybe_trim(self._store)
        return True

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Discard all cached scans and counters."""
        self._store.reset()
        self._init_pipeline()

    @property
    def scan_count(self) -> int:
        return len(self._store)

    @property
    def total_point_count(self) -> int:
        return self._store.total_point_count

    @property
    def total_point_count_after_last_trim(self) -> int:
        return self._store.total_point_count_after_last_trim

    def get_scan_by_index(self, index: int) -> Optional[ScanBuffer]:
        """Cached scan at the given arrival position, or None if out of range."""
        return self._store.get_by_index(index)

    def get_scan_by_number(self, scan_number: int) -> Optional[ScanBuffer]:
        return self._store.get_by_scan_number(scan_number)

    def iter_scans(self) -> Iterator[ScanBuffer]:
        return iter(self._store)

    def verify(self) -> None:
        """Raise CacheInvariantError if the running point count has drifted."""
        self._store.verify()

    @property
    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            scans_cached=len(self._store),
            points_cached=self._store.total_point_count,
            scans_rejected=self._scans_rejected,
            scans_sorted=self._validator.sort_count,
            scans_capped=self._ion_cap.capped_scan_count,
            max_ion_count_capped=self._ion_cap.max_ion_count_reported,
            trims_performed=self._trim_engine.trim_count,
        )

    def __len__(self) -> int:
        return len(self._store)

    # -------------------------------------------------------------------------
    # Trimming
    # -------------------------------------------------------------------------

    def force_trim(self) -> TrimResult:
        """Trim to the plot budget now, ignoring the auto-trim trigger."""
        return self._trim_engine.trim(self._store)

    def _trim_before_read(self, skip_trim: bool = False) -> None:
        # The total may still exceed the budget afterwards because of the
        # per-spectrum floor
        if not skip_trim and self._store.total_point_count > self.options.max_points_to_plot:
            self.force_trim()

    def _prepare_read(self, ms_level_filter: int, skip_trim: bool) -> None:
        if ms_level_filter > 0:
            self._store.normalize_ms_levels()
        self._trim_before_read(skip_trim)

    # -------------------------------------------------------------------------
    # Series
    # -------------------------------------------------------------------------

    def average_intensity(self, ms_level_filter: int = 0) -> float:
        """Mean intensity over the cached points, after trimming to the budget.

        Parameters
        ----------
        ms_level_filter : int
            MS level to include; 0 includes all levels

        Returns
        -------
        float
            Mean intensity, or 0.0 if no point matches
        """
        self._prepare_read(ms_level_filter, skip_trim=False)
        return average_intensity(self._store, ms_level_filter)

    def series_flat(self, ms_level_filter: int = 0, skip_trim: bool = False) -> FlatSeries:
        """All cached points (after trimming to the budget unless skip_trim)."""
        self._prepare_read(ms_level_filter, skip_trim)
        return series_flat(self._store, ms_level_filter)

    def series_by_charge(
        self,
        ms_level_filter: int = 0,
        max_mono_mass: Optional[float] = None,
        skip_trim: bool = False,
    ) -> ChargeSeries:
        """Cached points bucketed by charge (after trimming unless skip_trim)."""
        self._prepare_read(ms_level_filter, skip_trim)
        return series_by_charge(self._store, ms_level_filter, max_mono_mass)

    def series(self, ms_level_filter: int = 0, skip_trim: bool = False):
        """Series suited to the cached data type.

        Deisotoped data is bucketed by charge and limited to
        options.max_mono_mass_for_deisotoped_plot; all other data is flat.
        """
        if self.options.plotting_deisotoped_data:
            return self.series_by_charge(
                ms_level_filter,
                max_mono_mass=self.options.max_mono_mass_for_deisotoped_plot,
                skip_trim=skip_trim,
            )
        return self.series_flat(ms_level_filter, skip_trim)


def build_overview_cache(
    primary: SpectralPointCache,
    divisor: Optional[int] = None,
) -> Optional[SpectralPointCache]:
    """Build a smaller cache holding the most abundant points of primary.

    The overview cache uses the primary's options with the plot budget
    divided by ``divisor`` and receives a copy of every primary scan via
    ingest_unfiltered, so its own auto-trim reduces it to the smaller budget.

    Parameters
    ----------
    primary : SpectralPointCache
        Source cache (unchanged)
    divisor : int, optional
        Budget divisor; defaults to primary.options.overview_plot_divisor

    Returns
    -------
    SpectralPointCache or None
        None when divisor <= 1 (overview disabled)
    """
    if divisor is None:
        divisor = primary.options.overview_plot_divisor

    if divisor <= 1:
        return None

    options = replace(primary.options, overview_plot_divisor=divisor).for_overview()
    overview = SpectralPointCache(options)

    for index in range(primary.scan_count):
        overview.ingest_unfiltered(primary.get_scan_by_index(index))

    logger.info(
        f"Built overview cache: {overview.scan_count:,} scans, "
        f"{overview.total_point_count:,} points (budget {options.max_points_to_plot:,})"
    )
    return overview
