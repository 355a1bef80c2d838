"""Use cases."""

from eiabackfill.application.use_cases.backfill import (
    BackfillRequest,
    BackfillResponse,
    BackfillUseCase,
    backfill,
    backfill_segments,
    fetch_and_normalize,
    merge_pages,
    normalize_page,
)

__all__ = [
    "BackfillRequest",
    "BackfillResponse",
    "BackfillUseCase",
    "backfill",
    "backfill_segments",
    "fetch_and_normalize",
    "merge_pages",
    "normalize_page",
]
