"""Time-range segmentation for backfilling observation-capped APIs.

A requested range is walked in steps of ``offset`` frequency units (hours for
hourly series, months/quarters/years otherwise). Each step becomes one segment,
and consecutive segments never share a time point, so every observation is
requested exactly once.
"""

from __future__ import annotations

import numbers
import warnings
from datetime import UTC, date, datetime
from typing import Any

import structlog

from eiabackfill.domain.exceptions import ClampWarning, InvalidRangeError
from eiabackfill.domain.models.backfill import (
    MAX_OFFSET,
    CalendarRange,
    Frequency,
    HourlyRange,
    Segment,
)

logger = structlog.get_logger(__name__)


def parse_frequency(frequency: Any) -> Frequency:
    """Coerce a frequency argument to :class:`Frequency`.

    Raises:
        InvalidRangeError: If the frequency is missing or not recognized
    """
    if frequency is None:
        raise InvalidRangeError("The frequency argument is missing", kind="missing_argument")
    if isinstance(frequency, Frequency):
        return frequency
    if isinstance(frequency, str):
        try:
            return Frequency(frequency.strip().lower())
        except ValueError:
            pass
    raise InvalidRangeError(
        "The frequency argument is not valid, expected one of: "
        + ", ".join(f.value for f in Frequency),
        kind="invalid_frequency",
        frequency=frequency,
    )


def normalize_offset(offset: Any) -> int:
    """Validate the per-request observation count and clamp it to the API limit.

    Integral floats (``2000.0``) are accepted. Values above :data:`MAX_OFFSET`
    are reduced to it with a :class:`ClampWarning`.

    Raises:
        InvalidRangeError: If the offset is non-numeric, non-integral or not positive
    """
    if isinstance(offset, bool) or not isinstance(offset, numbers.Real):
        raise InvalidRangeError(
            "The offset argument is not valid, must be numeric",
            kind="invalid_offset",
            offset=offset,
        )
    if not isinstance(offset, numbers.Integral):
        if not float(offset).is_integer():
            raise InvalidRangeError(
                "The offset argument is not valid, must be a whole number",
                kind="invalid_offset",
                offset=offset,
            )
    value = int(offset)
    if value <= 0:
        raise InvalidRangeError(
            "The offset argument is not valid, must be positive",
            kind="invalid_offset",
            offset=offset,
        )
    if value > MAX_OFFSET:
        logger.warning(
            "Offset exceeds the API per-request limit, clamping",
            requested=value,
            limit=MAX_OFFSET,
        )
        warnings.warn(
            f"The offset argument surpasses the API number of observations per call limit, "
            f"setting it to {MAX_OFFSET}",
            ClampWarning,
            stacklevel=2,
        )
        value = MAX_OFFSET
    return value


def build_time_range(start: Any, end: Any, frequency: Frequency) -> HourlyRange | CalendarRange:
    """Build the range variant matching the temporal kind of ``start``/``end``.

    Hourly series need timestamp bounds; the other frequencies need plain
    dates. Timezone-aware timestamps are converted to UTC.

    Raises:
        InvalidRangeError: On unsupported bound types, mismatched kinds or start > end
    """
    for name, value in (("start", start), ("end", end)):
        if not isinstance(value, date):
            raise InvalidRangeError(
                f"The {name} argument is not valid, expected a datetime or date object",
                kind="invalid_bound",
                **{name: value},
            )

    start_is_timestamp = isinstance(start, datetime)
    if start_is_timestamp != isinstance(end, datetime):
        raise InvalidRangeError(
            "The type of the start argument is different from the end argument type",
            kind="bound_type_mismatch",
            start_type=type(start).__name__,
            end_type=type(end).__name__,
        )

    if start_is_timestamp != frequency.is_hourly:
        expected = "datetime" if frequency.is_hourly else "date"
        raise InvalidRangeError(
            f"Mismatch between the frequency argument and the type of the start argument, "
            f"{frequency.value} series require {expected} bounds",
            kind="frequency_mismatch",
            frequency=frequency.value,
            start_type=type(start).__name__,
        )

    if start_is_timestamp:
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise InvalidRangeError(
                "The start and end arguments must both be timezone-aware or both naive",
                kind="bound_type_mismatch",
                start=start,
                end=end,
            )
        if start.tzinfo is not None:
            start = start.astimezone(UTC)
            end = end.astimezone(UTC)

    if start > end:
        raise InvalidRangeError(
            "The start argument must not be after the end argument",
            kind="invalid_range",
            start=start,
            end=end,
        )

    if frequency.is_hourly:
        return HourlyRange(start=start, end=end)
    return CalendarRange(start=start, end=end, frequency=frequency)


def segment_range(time_range: HourlyRange | CalendarRange, offset: int) -> list[Segment]:
    """Split an already validated range into segments of ``offset`` units."""
    start, end = time_range.start, time_range.end

    boundaries: list[Any] = []
    step = 0
    while True:
        point = time_range.shift(start, step * offset)
        if point > end:
            break
        boundaries.append(point)
        step += 1
    # A trailing partial step still has to reach ``end``; no zero-width segment.
    if boundaries[-1] < end:
        boundaries.append(end)

    if len(boundaries) == 1:
        return [Segment(index=0, start=start, end=start)]

    last = len(boundaries) - 2
    segments = []
    for i in range(last + 1):
        if i == last:
            seg_end = boundaries[i + 1]
        else:
            # One unit before the next boundary, measured from ``start`` so
            # month-end days do not drift.
            seg_end = time_range.shift(start, (i + 1) * offset - 1)
        segments.append(Segment(index=i, start=boundaries[i], end=seg_end))
    return segments


def segment(start: Any, end: Any, frequency: Any, offset: Any) -> list[Segment]:
    """Split ``[start, end]`` into contiguous, non-overlapping segments.

    Args:
        start: First point (``datetime`` for hourly, ``date`` otherwise)
        end: Last point, same type as ``start``
        frequency: One of hourly, monthly, quarterly, yearly
        offset: Observations per segment, clamped to 5000

    Returns:
        Segments in index order; the first starts at ``start`` and the last ends at ``end``

    Raises:
        InvalidRangeError: If any argument is invalid

    Example:
        ```python
        segment(datetime(2018, 6, 19, 0), datetime(2018, 6, 19, 5), "hourly", 2)
        # -> [00:00-01:00], [02:00-03:00], [04:00-05:00]
        ```
    """
    freq = parse_frequency(frequency)
    step = normalize_offset(offset)
    time_range = build_time_range(start, end, freq)
    segments = segment_range(time_range, step)
    logger.debug(
        "Segmented time range",
        frequency=freq.value,
        offset=step,
        start=str(time_range.start),
        end=str(time_range.end),
        segments=len(segments),
    )
    return segments


def format_bound(point: date, frequency: Frequency) -> str:
    """Render a segment bound as the EIA API expects it.

    Hourly bounds render as ``YYYY-MM-DDTHH`` (``2018-06-19T03``), the others as
    ``YYYY-MM-DD``.
    """
    if frequency.is_hourly:
        if not isinstance(point, datetime):
            raise InvalidRangeError(
                "Hourly bounds must be datetime objects",
                kind="invalid_bound",
                point=point,
            )
        if point.tzinfo is not None:
            point = point.astimezone(UTC)
        return f"{point:%Y-%m-%d}T{point.hour:02d}"
    return f"{point:%Y-%m-%d}"
