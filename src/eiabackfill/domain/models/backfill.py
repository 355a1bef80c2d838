"""Backfill domain models: frequencies, time ranges, segments and page queries."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Annotated, Literal

from dateutil.relativedelta import relativedelta
from pydantic import Field

from eiabackfill.domain.models.base import ValueObject

# Hard limit on observations returned by a single EIA API v2 request.
MAX_OFFSET = 5000


class Frequency(str, Enum):
    """Sampling frequency of a series."""

    HOURLY = "hourly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def months_per_unit(self) -> int:
        """Calendar months in one unit of this frequency (0 for hourly)."""
        return _MONTHS_PER_UNIT[self]

    @property
    def is_hourly(self) -> bool:
        return self is Frequency.HOURLY


_MONTHS_PER_UNIT = {
    Frequency.HOURLY: 0,
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


class HourlyRange(ValueObject):
    """Time range with timestamp bounds, stepped in hours."""

    kind: Literal["hourly"] = "hourly"
    start: datetime = Field(..., description="First hour of the range (inclusive)")
    end: datetime = Field(..., description="Last hour of the range (inclusive)")

    @property
    def frequency(self) -> Frequency:
        return Frequency.HOURLY

    def shift(self, point: datetime, units: int) -> datetime:
        return point + timedelta(hours=units)


class CalendarRange(ValueObject):
    """Time range with date bounds, stepped in months, quarters or years."""

    kind: Literal["calendar"] = "calendar"
    start: date = Field(..., description="First period of the range (inclusive)")
    end: date = Field(..., description="Last period of the range (inclusive)")
    frequency: Frequency = Field(..., description="Monthly, quarterly or yearly")

    def shift(self, point: date, units: int) -> date:
        return point + relativedelta(months=units * self.frequency.months_per_unit)


TimeRange = Annotated[HourlyRange | CalendarRange, Field(discriminator="kind")]


class Segment(ValueObject):
    """One contiguous sub-range of a backfill, fetched with a single request."""

    index: int = Field(..., ge=0, description="Position of the segment in the backfill")
    start: datetime | date = Field(..., description="First point covered (inclusive)")
    end: datetime | date = Field(..., description="Last point covered (inclusive)")


class PageQuery(ValueObject):
    """Parameters of a single page request against the EIA API."""

    api_key: str | None = Field(default=None, description="EIA API key")
    api_path: str = Field(..., description="API route below the v2 endpoint")
    facets: dict[str, str | list[str]] = Field(
        default_factory=dict, description="Filter dimensions forwarded verbatim"
    )
    data: str = Field(..., description="Metric column to retrieve")
    frequency: Frequency = Field(..., description="Series frequency")
    start: str = Field(..., description="Start token, e.g. 2018-06-19T00 or 2018-01-01")
    end: str = Field(..., description="End token, e.g. 2018-06-19T05 or 2018-12-01")
