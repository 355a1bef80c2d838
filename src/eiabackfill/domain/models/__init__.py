"""Domain models for eiabackfill."""

from eiabackfill.domain.models.backfill import (
    MAX_OFFSET,
    CalendarRange,
    Frequency,
    HourlyRange,
    PageQuery,
    Segment,
    TimeRange,
)
from eiabackfill.domain.models.base import ValueObject

__all__ = [
    "MAX_OFFSET",
    "ValueObject",
    "Frequency",
    "HourlyRange",
    "CalendarRange",
    "TimeRange",
    "Segment",
    "PageQuery",
]
