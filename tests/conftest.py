"""Pytest configuration for lcmscache tests.

This module provides common fixtures and configuration for all tests:
synthetic peak lists, prebuilt scans and small-budget cache options.
"""

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Seeded random generator for reproducible synthetic spectra."""
    return np.random.default_rng(42)


@pytest.fixture
def make_peaks(rng):
    """Factory for synthetic centroided peak lists.

    Peaks are spaced at least 1 m/z apart (well above the default 0.4
    resolution) with distinct intensities.
    """
    def _make(n_points, mz_start=100.0):
        mz = mz_start + np.arange(n_points, dtype=np.float64) * 1.5
        intensity = rng.permutation(n_points).astype(np.float64) * 10.0 + 100.0
        return mz, intensity
    return _make


@pytest.fixture
def make_scan():
    """Factory for ScanBuffer objects."""
    from lcmscache.cache import ScanBuffer

    def _make(scan_number, mz, intensity, charge=None, ms_level=1, elution_time=None):
        if elution_time is None:
            elution_time = scan_number * 0.1
        return ScanBuffer(
            scan_number, ms_level, elution_time,
            np.asarray(mz, dtype=np.float64),
            np.asarray(intensity, dtype=np.float32),
            None if charge is None else np.asarray(charge, dtype=np.uint8),
        )
    return _make


@pytest.fixture
def small_options():
    """Options with a small plot budget and centroiding disabled."""
    from lcmscache.options import CacheOptions
    return CacheOptions(
        max_points_to_plot=1000,
        min_points_per_spectrum=2,
        mz_resolution=0.0,
    )


@pytest.fixture
def spectrum_scenario():
    """Three closely spaced points that consolidate to one (w = 0.001)."""
    return {
        'mz': np.array([100.000, 100.0005, 100.0006]),
        'intensity': np.array([10.0, 50.0, 20.0]),
        'mz_resolution': 0.001,
    }


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
