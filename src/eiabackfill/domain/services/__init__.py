"""Domain services."""

from eiabackfill.domain.services.segmentation import (
    build_time_range,
    format_bound,
    normalize_offset,
    parse_frequency,
    segment,
    segment_range,
)

__all__ = [
    "build_time_range",
    "format_bound",
    "normalize_offset",
    "parse_frequency",
    "segment",
    "segment_range",
]
