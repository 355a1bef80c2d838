"""
eiabackfill - Backfill long EIA energy time series.

Splits a requested time range into sub-queries that respect the EIA API v2
per-request observation limit, fetches them and merges the pages into a single
time-ordered table.
"""

from eiabackfill.application.use_cases.backfill import backfill, fetch_and_normalize
from eiabackfill.domain.exceptions import (
    BackfillError,
    ClampWarning,
    FetchError,
    InvalidRangeError,
    ValidationError,
)
from eiabackfill.domain.models.backfill import Frequency, Segment
from eiabackfill.domain.services.segmentation import segment

__version__ = "0.1.0"

__all__ = [
    "backfill",
    "fetch_and_normalize",
    "segment",
    "Frequency",
    "Segment",
    "BackfillError",
    "ClampWarning",
    "FetchError",
    "InvalidRangeError",
    "ValidationError",
]
