"""lcmscache - Bounded-memory spectral point cache for LC-MS QC plots.

Accepts a stream of per-scan peak lists from instrument file decoders and
keeps a representative, bounded subset of points for 2D overview plots
(m/z vs. scan) and summary statistics, without ever holding the full
dataset in memory.

Three algorithms do the work, all Numba/NumPy based:
- Centroid consolidation of points closer than the m/z resolution
- Per-scan top-N retention above an absolute ion cap (50,000)
- Global cross-scan trimming to a plot budget with a per-spectrum floor
"""

__version__ = "0.1.0"

from lcmscache import cache
from lcmscache import filtering
from lcmscache import trim
from lcmscache import series

from lcmscache.options import CacheOptions, DataType
from lcmscache.exceptions import LCMSCacheError, DuplicateScanError, CacheInvariantError
from lcmscache.point_cache import (
    SpectralPointCache,
    CacheStatistics,
    build_overview_cache,
)

__all__ = [
    "cache",
    "filtering",
    "trim",
    "series",
    "CacheOptions",
    "DataType",
    "LCMSCacheError",
    "DuplicateScanError",
    "CacheInvariantError",
    "SpectralPointCache",
    "CacheStatistics",
    "build_overview_cache",
]
