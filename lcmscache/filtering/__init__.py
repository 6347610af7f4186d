"""Per-scan filters applied at ingestion.

This module provides:
- Input validation (intensity cutoff, overflow clamping, m/z ordering)
- Centroid consolidation at a fixed m/z resolution
- Top-N selection by intensity with a deterministic tie-break
- The absolute per-scan ion cap
"""

from .ingest import (
    IngestValidator,
    ValidatedPoints,
    resolve_descending_pairs,
    filter_by_intensity,
    coerce_charge,
)

from .centroid import (
    centroid_required,
    centroid_keep_mask,
    consolidate_centroids,
)

from .selection import (
    top_n_threshold,
    top_n_mask,
)

from .ion_cap import (
    IonCapSelector,
    ion_cap_keep_mask,
)

__all__ = [
    # Ingestion
    'IngestValidator',
    'ValidatedPoints',
    'resolve_descending_pairs',
    'filter_by_intensity',
    'coerce_charge',

    # Centroiding
    'centroid_required',
    'centroid_keep_mask',
    'consolidate_centroids',

    # Selection
    'top_n_threshold',
    'top_n_mask',

    # Ion cap
    'IonCapSelector',
    'ion_cap_keep_mask',
]
