"""End-to-end tests for SpectralPointCache.

Tests:
- Ingestion in every input shape, rejection of empty scans
- Duplicate scan numbers
- Auto-trim while streaming and forced trim before reads
- MS-level normalization before filtered reads
- Overview cache built from a primary cache
- Statistics and reset
"""

import numpy as np
import pytest

from lcmscache import (
    CacheOptions,
    DataType,
    DuplicateScanError,
    SpectralPointCache,
    build_overview_cache,
)
from lcmscache.series import FlatSeries, ChargeSeries


@pytest.fixture
def streamed_cache(small_options, make_peaks):
    """Cache with budget 1,000 after streaming 10 scans of 600 points."""
    cache = SpectralPointCache(small_options)
    for scan_number in range(1, 11):
        mz, intensity = make_peaks(600)
        cache.ingest(scan_number, 1, scan_number * 0.1, mz, intensity)
    return cache


class TestIngestion:
    """Test adding scans."""

    def test_ingest_arrays(self):
        cache = SpectralPointCache()

        assert cache.ingest(1, 1, 0.5, [100.0, 200.0], [5.0, 7.0])
        assert cache.scan_count == 1
        assert cache.total_point_count == 2

    def test_all_zero_scan_rejected(self):
        cache = SpectralPointCache()

        assert not cache.ingest(1, 1, 0.5, [100.0, 200.0], [0.0, 0.0])
        assert cache.scan_count == 0
        assert cache.statistics.scans_rejected == 1

    def test_empty_scan_rejected(self):
        cache = SpectralPointCache()

        assert not cache.ingest(1, 1, 0.5, [], [])
        assert len(cache) == 0

    def test_ingest_ions(self):
        cache = SpectralPointCache(CacheOptions(mz_resolution=0.0))

        assert cache.ingest_ions(3, 2, 1.0, [(300.0, 4.0, 2), (100.0, 9.0, 1)])

        scan = cache.get_scan_by_number(3)
        np.testing.assert_array_equal(scan.ions_mz, [100.0, 300.0])
        np.testing.assert_array_equal(scan.ions_charge, [1, 2])
        assert cache.statistics.scans_sorted == 1

    def test_ingest_paired(self):
        cache = SpectralPointCache()

        assert cache.ingest_paired(1, 1, 0.5, np.array([[100.0, 1.0], [200.0, 2.0]]))
        assert cache.total_point_count == 2

    def test_centroid_consolidation(self, spectrum_scenario):
        cache = SpectralPointCache(CacheOptions(mz_resolution=spectrum_scenario['mz_resolution']))

        cache.ingest(1, 1, 0.5, spectrum_scenario['mz'], spectrum_scenario['intensity'])

        scan = cache.get_scan_by_index(0)
        assert scan.ion_count == 1
        assert scan.ions_mz[0] == pytest.approx(100.0005)
        assert scan.ions_intensity[0] == pytest.approx(50.0)

    def test_min_intensity(self):
        cache = SpectralPointCache(CacheOptions(min_intensity=10.0))

        cache.ingest(1, 1, 0.5, [100.0, 200.0], [5.0, 20.0])

        assert cache.total_point_count == 1

    def test_duplicate_scan_number(self):
        cache = SpectralPointCache()
        cache.ingest(1, 1, 0.5, [100.0], [5.0])

        with pytest.raises(DuplicateScanError):
            cache.ingest(1, 1, 0.6, [200.0], [6.0])

        assert cache.scan_count == 1

    def test_duplicate_does_not_touch_statistics(self, rng):
        cache = SpectralPointCache(CacheOptions(mz_resolution=0.0, max_points_to_plot=1_000_000))
        mz = 100.0 + np.arange(60_000) * 0.01
        intensity = rng.permutation(60_000).astype(np.float64) + 1.0
        cache.ingest(1, 1, 0.5, mz, intensity)

        with pytest.raises(DuplicateScanError):
            cache.ingest(1, 1, 0.5, mz, intensity)

        assert cache.statistics.scans_capped == 1
        assert cache.scan_count == 1
        assert cache.total_point_count == 50_000

    def test_ion_cap_at_ingestion(self, rng):
        cache = SpectralPointCache(CacheOptions(mz_resolution=0.0, max_points_to_plot=1_000_000))
        mz = 100.0 + np.arange(60_000) * 0.01
        intensity = rng.permutation(60_000).astype(np.float64) + 1.0

        cache.ingest(1, 1, 0.5, mz, intensity)

        assert cache.total_point_count == 50_000
        assert cache.statistics.scans_capped == 1
        assert cache.statistics.max_ion_count_capped == 60_000

    def test_lookups(self, streamed_cache):
        assert streamed_cache.get_scan_by_index(0).scan_number == 1
        assert streamed_cache.get_scan_by_index(100) is None
        assert streamed_cache.get_scan_by_number(99) is None
        assert [scan.scan_number for scan in streamed_cache.iter_scans()] == list(range(1, 11))


class TestTrimming:
    """Test bounded memory while streaming and before reads."""

    def test_auto_trim_while_streaming(self, streamed_cache):
        # Scan 9 pushes the total to 5,400 > 5 * T; scan 10 adds 600 more
        assert streamed_cache.statistics.trims_performed == 1
        assert streamed_cache.total_point_count_after_last_trim == 1000
        assert streamed_cache.total_point_count == 1600
        streamed_cache.verify()

    def test_read_trims_to_budget(self, streamed_cache):
        series = streamed_cache.series_flat()

        assert isinstance(series, FlatSeries)
        assert series.point_count <= 1000
        assert streamed_cache.total_point_count == series.point_count
        streamed_cache.verify()

    def test_skip_trim(self, streamed_cache):
        series = streamed_cache.series_flat(skip_trim=True)

        assert series.point_count == 1600
        assert streamed_cache.total_point_count == 1600

    def test_floor_respected_after_read(self, streamed_cache):
        streamed_cache.series_flat()

        for scan in streamed_cache.iter_scans():
            assert scan.ion_count >= 2

    def test_force_trim(self, streamed_cache):
        result = streamed_cache.force_trim()

        assert result.points_before == 1600
        assert result.points_after <= 1000

    def test_memory_stays_bounded(self, small_options, make_peaks):
        cache = SpectralPointCache(small_options)

        for scan_number in range(200):
            mz, intensity = make_peaks(400)
            cache.ingest(scan_number, 1, scan_number * 0.05, mz, intensity)
            # Upper bound: trigger threshold plus one scan, plus the floor
            assert cache.total_point_count <= 5 * 1000 + 400 + 2 * cache.scan_count

        cache.verify()


class TestReads:
    """Test series and statistics read through the cache."""

    def test_unassigned_ms_level_treated_as_ms1(self):
        cache = SpectralPointCache(CacheOptions(mz_resolution=0.0))
        cache.ingest(1, 0, 0.1, [100.0], [5.0])
        cache.ingest(2, 2, 0.2, [200.0], [7.0])

        series = cache.series_flat(ms_level_filter=1)

        assert series.point_count == 1
        assert cache.get_scan_by_number(1).ms_level == 1

    def test_unfiltered_read_keeps_level_zero(self):
        cache = SpectralPointCache()
        cache.ingest(1, 0, 0.1, [100.0], [5.0])

        assert cache.series_flat().point_count == 1
        assert cache.get_scan_by_number(1).ms_level == 0

    def test_average_intensity(self):
        cache = SpectralPointCache(CacheOptions(mz_resolution=0.0))
        cache.ingest(1, 1, 0.1, [100.0, 200.0], [10.0, 20.0])
        cache.ingest(2, 1, 0.2, [100.0], [60.0])

        assert cache.average_intensity() == pytest.approx(30.0)

    def test_average_intensity_empty(self):
        assert SpectralPointCache().average_intensity() == 0.0
        assert SpectralPointCache().average_intensity(ms_level_filter=2) == 0.0

    def test_deisotoped_series(self):
        cache = SpectralPointCache(CacheOptions.for_data_type(DataType.DEISOTOPED))
        cache.ingest(1, 1, 0.1, [1500.0, 8000.0, 15000.0], [5.0, 6.0, 7.0], [1, 2, 3])

        series = cache.series()

        assert isinstance(series, ChargeSeries)
        # 15,000 Da is above the default 12,000 Da limit
        assert series.point_count == 2
        assert series.max_charge == 3
        assert len(series.points_by_charge[3]) == 0

    def test_flat_series_for_profile_data(self, streamed_cache):
        assert isinstance(streamed_cache.series(), FlatSeries)


class TestOverviewCache:
    """Test the secondary high-abundance cache."""

    def test_overview_budget(self, streamed_cache):
        streamed_cache.series_flat()
        primary_points = streamed_cache.total_point_count

        overview = build_overview_cache(streamed_cache)
        series = overview.series_flat()

        assert overview.options.max_points_to_plot == 100
        assert overview.scan_count == 10
        assert series.point_count <= 100 + 2 * overview.scan_count
        assert streamed_cache.total_point_count == primary_points

    def test_overview_is_independent(self, streamed_cache):
        overview = build_overview_cache(streamed_cache)
        overview.force_trim()

        streamed_cache.verify()
        assert streamed_cache.total_point_count == 1600

    def test_overview_disabled(self, streamed_cache):
        assert build_overview_cache(streamed_cache, divisor=1) is None

    def test_unfiltered_copy_is_identical(self, streamed_cache):
        target = SpectralPointCache(CacheOptions(max_points_to_plot=1_000_000))
        source = streamed_cache.get_scan_by_index(3)

        assert target.ingest_unfiltered(source)

        copy = target.get_scan_by_index(0)
        assert copy is not source
        assert copy.scan_number == source.scan_number
        assert copy.ms_level == source.ms_level
        assert copy.elution_time_minutes == source.elution_time_minutes
        np.testing.assert_array_equal(copy.ions_mz, source.ions_mz)
        np.testing.assert_array_equal(copy.ions_intensity, source.ions_intensity)
        np.testing.assert_array_equal(copy.ions_charge, source.ions_charge)

    def test_unfiltered_rejects_empty(self):
        assert not SpectralPointCache().ingest_unfiltered(None)


class TestReset:

    def test_reset_clears_everything(self, streamed_cache):
        streamed_cache.reset()

        stats = streamed_cache.statistics
        assert streamed_cache.scan_count == 0
        assert streamed_cache.total_point_count == 0
        assert streamed_cache.total_point_count_after_last_trim == 0
        assert stats.trims_performed == 0
        assert stats.scans_rejected == 0

    def test_reuse_after_reset(self, streamed_cache):
        streamed_cache.reset()

        assert streamed_cache.ingest(1, 1, 0.1, [100.0], [5.0])
