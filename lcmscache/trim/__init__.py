"""Global trimming of the cache to a plot budget."""

from .global_trim import (
    GlobalTrimEngine,
    TrimResult,
    trim_required,
)

__all__ = [
    'GlobalTrimEngine',
    'TrimResult',
    'trim_required',
]
