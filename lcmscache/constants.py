"""Constants and default settings for the spectral point cache.

Limits and defaults shared by the ingestion filters, the global trim engine
and the series accessors. Values match the acquisition QC defaults used for
LC-MS overview plots.

Key Features
------------
- Absolute per-scan ion cap (top-N by intensity above this)
- Trim trigger multiple and hysteresis factor for the global trim
- Storage dtypes for the per-scan arrays (float64 m/z, float32 intensity, uint8 charge)
- Default plot budget, per-spectrum floor and m/z resolution
"""

import numpy as np

# =============================================================================
# Storage dtypes
# =============================================================================

MZ_DTYPE = np.float64
INTENSITY_DTYPE = np.float32
CHARGE_DTYPE = np.uint8

# Largest intensity representable in INTENSITY_DTYPE; larger values are clamped
MAX_INTENSITY = float(np.finfo(INTENSITY_DTYPE).max)

# Largest charge state representable in CHARGE_DTYPE
MAX_CHARGE = int(np.iinfo(CHARGE_DTYPE).max)

# Two intensities below this are treated as zero when deciding whether an
# out-of-order pair can simply be swapped
ZERO_INTENSITY_EPSILON = 1e-12

# =============================================================================
# Per-scan and global limits
# =============================================================================

# Absolute maximum number of ions tracked for a single mass spectrum
MAX_ALLOWABLE_ION_COUNT = 50_000

# Global trim runs once the cache holds more than this multiple of the plot budget
TRIM_TRIGGER_MULTIPLE = 5

# ... and only if the cache grew by at least 10% since the previous trim
TRIM_HYSTERESIS_FACTOR = 1.1

# Backing arrays are reallocated when fewer than half the slots are in use,
# but never for buffers this small or smaller
SHRINK_MIN_CAPACITY = 5

# =============================================================================
# Option defaults
# =============================================================================

DEFAULT_MAX_POINTS_TO_PLOT = 200_000
DEFAULT_MIN_POINTS_PER_SPECTRUM = 2
DEFAULT_OVERVIEW_PLOT_DIVISOR = 10
DEFAULT_MZ_RESOLUTION = 0.4  # m/z units
DEFAULT_MIN_INTENSITY = 0.0

DEFAULT_MAX_MONO_MASS_FOR_DEISOTOPED_PLOT = 12_000.0  # Da

# Lower bounds enforced on option values
MIN_MAX_POINTS_TO_PLOT = 10
MIN_MAX_MONO_MASS = 100.0

# =============================================================================
# Logging throttles
# =============================================================================

# Number of sorted / capped scans reported individually before throttling
WARN_FIRST_N = 10

# After WARN_FIRST_N, report every N-th sorted scan
SORT_WARN_INTERVAL = 100
