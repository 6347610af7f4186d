"""Tests for per-scan storage.

Tests:
- Construction copies input and applies storage dtypes
- In-place compaction preserves m/z order
- Array shrinking releases capacity
- Snapshots are independent copies
"""

import numpy as np
import pytest

from lcmscache.cache import ScanBuffer, compact_in_place


class TestScanBufferConstruction:
    """Test construction and identity."""

    def test_dtypes_and_count(self, make_scan):
        scan = make_scan(7, [100.0, 200.0, 300.0], [1.0, 2.0, 3.0])

        assert scan.ion_count == 3
        assert scan.mz.dtype == np.float64
        assert scan.intensity.dtype == np.float32
        assert scan.charge.dtype == np.uint8
        assert np.all(scan.charge == 0)

    def test_input_is_copied(self):
        mz = np.array([100.0, 200.0])
        intensity = np.array([5.0, 6.0], dtype=np.float32)

        scan = ScanBuffer(1, 1, 0.5, mz, intensity)
        mz[0] = 999.0

        assert scan.mz[0] == 100.0

    def test_explicit_ion_count(self):
        scan = ScanBuffer(1, 1, 0.5, np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]), ion_count=2)

        assert scan.ion_count == 2
        assert len(scan.ions_mz) == 2

    def test_ion_count_exceeding_arrays_raises(self):
        with pytest.raises(ValueError):
            ScanBuffer(1, 1, 0.5, np.array([1.0]), np.array([1.0]), ion_count=5)

    def test_short_charge_array_raises(self):
        mz = np.arange(5, dtype=np.float64) + 100.0
        intensity = np.ones(5, dtype=np.float32)

        with pytest.raises(ValueError):
            ScanBuffer(1, 1, 0.5, mz, intensity, charge=np.array([1, 2], dtype=np.uint8))

    def test_long_charge_array_truncated(self):
        scan = ScanBuffer(1, 1, 0.5, np.array([1.0, 2.0]), np.array([1.0, 2.0]),
                          charge=np.array([1, 2, 3], dtype=np.uint8))

        np.testing.assert_array_equal(scan.ions_charge, [1, 2])
        assert len(scan.charge) == 2

    def test_identity_properties(self, make_scan):
        scan = make_scan(42, [100.0], [1.0], ms_level=2, elution_time=12.5)

        assert scan.scan_number == 42
        assert scan.ms_level == 2
        assert scan.elution_time_minutes == pytest.approx(12.5)

    def test_update_ms_level(self, make_scan):
        scan = make_scan(1, [100.0], [1.0], ms_level=0)
        scan.update_ms_level(1)

        assert scan.ms_level == 1

    def test_repr(self, make_scan):
        assert repr(make_scan(3, [1.0], [1.0], ms_level=2)) == "ScanBuffer(Scan 3, MS2, 1 ions)"
        assert repr(make_scan(3, [1.0], [1.0], ms_level=0)) == "ScanBuffer(Scan 3, 1 ions)"


class TestCompaction:
    """Test in-place compaction."""

    def test_compact_kernel(self):
        mz = np.array([1.0, 2.0, 3.0, 4.0])
        intensity = np.array([10.0, 20.0, 30.0, 40.0], dtype=np.float32)
        charge = np.array([1, 2, 3, 4], dtype=np.uint8)
        keep = np.array([False, True, False, True])

        new_count = compact_in_place(mz, intensity, charge, keep, 4)

        assert new_count == 2
        np.testing.assert_array_equal(mz[:2], [2.0, 4.0])
        np.testing.assert_array_equal(intensity[:2], [20.0, 40.0])
        np.testing.assert_array_equal(charge[:2], [2, 4])

    def test_compact_keeps_capacity(self, make_scan):
        scan = make_scan(1, [1.0, 2.0, 3.0, 4.0], [4.0, 3.0, 2.0, 1.0], charge=[1, 1, 2, 2])

        scan.compact(np.array([True, False, True, False]))

        assert scan.ion_count == 2
        assert scan.capacity == 4
        np.testing.assert_array_equal(scan.ions_mz, [1.0, 3.0])
        np.testing.assert_array_equal(scan.ions_charge, [1, 2])

    def test_compact_mask_length_checked(self, make_scan):
        scan = make_scan(1, [1.0, 2.0], [1.0, 2.0])

        with pytest.raises(ValueError):
            scan.compact(np.array([True]))

    def test_mz_order_preserved(self, make_scan, rng):
        mz = np.sort(rng.uniform(100, 2000, 500))
        scan = make_scan(1, mz, rng.uniform(1, 1000, 500))

        scan.compact(rng.random(500) > 0.5)

        assert np.all(np.diff(scan.ions_mz) >= 0)


class TestShrinking:
    """Test backing array reallocation."""

    def test_shrink_arrays(self, make_scan):
        scan = make_scan(1, np.arange(10.0), np.ones(10))
        scan.compact(np.arange(10) < 3)

        scan.shrink_arrays()

        assert scan.capacity == 3
        assert len(scan.intensity) == 3
        assert len(scan.charge) == 3

    def test_shrink_if_sparse(self, make_scan):
        scan = make_scan(1, np.arange(10.0), np.ones(10))
        scan.compact(np.arange(10) < 4)

        assert scan.shrink_if_sparse()
        assert scan.capacity == 4

    def test_no_shrink_when_half_full(self, make_scan):
        scan = make_scan(1, np.arange(10.0), np.ones(10))
        scan.compact(np.arange(10) < 5)

        assert not scan.shrink_if_sparse()
        assert scan.capacity == 10

    def test_no_shrink_for_tiny_buffers(self, make_scan):
        scan = make_scan(1, np.arange(4.0), np.ones(4))
        scan.compact(np.arange(4) < 1)

        assert not scan.shrink_if_sparse()
        assert scan.capacity == 4


class TestSnapshot:
    """Test snapshot copies."""

    def test_snapshot_is_independent(self, make_scan):
        scan = make_scan(5, [1.0, 2.0, 3.0], [3.0, 2.0, 1.0], charge=[1, 2, 3], ms_level=2)
        scan.compact(np.array([True, False, True]))

        copy = scan.snapshot()
        scan.mz[0] = -1.0

        assert copy.scan_number == 5
        assert copy.ms_level == 2
        assert copy.ion_count == 2
        assert copy.capacity == 2
        np.testing.assert_array_equal(copy.ions_mz, [1.0, 3.0])
        np.testing.assert_array_equal(copy.ions_charge, [1, 3])
