"""Backfill use case: fetch every segment of a range and merge the pages."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Mapping, Sequence
from datetime import date, datetime
from typing import Any

import pandas as pd
import structlog
from pydantic import BaseModel, ConfigDict, Field

from eiabackfill.domain.exceptions import FetchError, InvalidRangeError
from eiabackfill.domain.models.backfill import Frequency, PageQuery, Segment
from eiabackfill.domain.ports.data_providers import EnergyDataProvider, FetchPage, Row
from eiabackfill.domain.services.segmentation import format_bound, parse_frequency, segment

logger = structlog.get_logger(__name__)

TIME_COLUMN = "time"
PERIOD_COLUMN = "period"


def _validate_query_arguments(
    *,
    data: Any,
    facets: Any,
    api_key: Any,
    api_path: Any,
    max_concurrency: Any,
) -> None:
    if data is None:
        raise InvalidRangeError("The data argument is missing", kind="missing_argument")
    if not isinstance(data, str) or not data:
        raise InvalidRangeError("The data argument is not valid", kind="invalid_data", data=data)
    if facets is not None and not isinstance(facets, Mapping):
        raise InvalidRangeError(
            "The facets argument must be a mapping of facet name to value",
            kind="invalid_facets",
            facets=facets,
        )
    if api_key is not None and not isinstance(api_key, str):
        raise InvalidRangeError("The api_key argument is not valid", kind="invalid_api_key")
    if not isinstance(api_path, str) or not api_path:
        raise InvalidRangeError(
            "The api_path argument is not valid", kind="invalid_api_path", api_path=api_path
        )
    if isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int):
        raise InvalidRangeError(
            "The max_concurrency argument must be an integer",
            kind="invalid_concurrency",
            max_concurrency=max_concurrency,
        )
    if max_concurrency < 1:
        raise InvalidRangeError(
            "The max_concurrency argument must be at least 1",
            kind="invalid_concurrency",
            max_concurrency=max_concurrency,
        )


def _parse_period(period: pd.Series, frequency: Frequency) -> pd.Series:
    labels = period.astype(str)
    if frequency is Frequency.HOURLY:
        return pd.to_datetime(labels, format="%Y-%m-%dT%H", utc=True)
    if frequency is Frequency.MONTHLY:
        return pd.to_datetime(labels, format="%Y-%m")
    if frequency is Frequency.QUARTERLY:
        # EIA labels quarters as e.g. 2018-Q1; use the first day of the quarter
        return pd.to_datetime(labels.map(lambda label: pd.Period(label, freq="Q").start_time))
    return pd.to_datetime(labels, format="%Y")


def _empty_page(frequency: Frequency | None = None) -> pd.DataFrame:
    dtype = "datetime64[ns, UTC]" if frequency is Frequency.HOURLY else "datetime64[ns]"
    return pd.DataFrame({TIME_COLUMN: pd.Series(dtype=dtype)})


def normalize_page(rows: Sequence[Row], frequency: Frequency, data: str | None = None) -> pd.DataFrame:
    """Turn raw API rows into a frame with a leading ``time`` column.

    The ``period`` label is parsed into timestamps (UTC for hourly series) and
    dropped, hyphens in column names become underscores, and the rows are
    sorted by time. When ``data`` names a column it is converted to numbers.

    Raises:
        KeyError: If the rows carry no ``period`` column
        ValueError: If a period label does not match the frequency
    """
    frame = pd.DataFrame(list(rows))
    if frame.empty:
        return _empty_page(frequency)
    if PERIOD_COLUMN not in frame.columns:
        raise KeyError(f"Page rows have no '{PERIOD_COLUMN}' column")

    frame[TIME_COLUMN] = _parse_period(frame[PERIOD_COLUMN], frequency)
    frame = frame.drop(columns=PERIOD_COLUMN)
    if data is not None and data in frame.columns:
        frame[data] = pd.to_numeric(frame[data], errors="coerce")
    frame.columns = [str(column).replace("-", "_") for column in frame.columns]

    ordered = [TIME_COLUMN] + [column for column in frame.columns if column != TIME_COLUMN]
    return frame[ordered].sort_values(TIME_COLUMN, kind="stable").reset_index(drop=True)


async def fetch_and_normalize(
    segment: Segment,
    fetch_page: FetchPage,
    *,
    frequency: Frequency | str,
    data: str,
    api_path: str,
    api_key: str | None = None,
    facets: Mapping[str, str | list[str]] | None = None,
) -> pd.DataFrame:
    """Fetch one segment and normalize the returned page.

    Raises:
        FetchError: If the fetch fails or returns a page that cannot be
            normalized; the original exception is chained
    """
    freq = parse_frequency(frequency)
    query = PageQuery(
        api_key=api_key,
        api_path=api_path,
        facets=dict(facets or {}),
        data=data,
        frequency=freq,
        start=format_bound(segment.start, freq),
        end=format_bound(segment.end, freq),
    )
    log = logger.bind(segment_index=segment.index, start=query.start, end=query.end)
    log.debug("Fetching segment")

    try:
        rows = await fetch_page(query)
    except Exception as e:
        log.warning("Segment fetch failed", error=str(e), error_type=type(e).__name__)
        raise FetchError(
            f"Failed to fetch segment {segment.index}",
            segment_index=segment.index,
            start=query.start,
            end=query.end,
        ) from e

    try:
        page = normalize_page(rows, freq, data)
    except (KeyError, ValueError) as e:
        log.warning("Segment page is malformed", error=str(e))
        raise FetchError(
            f"Malformed page for segment {segment.index}",
            kind="malformed_page",
            segment_index=segment.index,
            start=query.start,
            end=query.end,
        ) from e

    log.debug("Fetched segment", rows=len(page))
    return page


PageTask = Callable[[Segment], Coroutine[Any, Any, pd.DataFrame]]


async def _fetch_concurrently(
    segments: Sequence[Segment], fetch_one: PageTask, max_concurrency: int
) -> list[pd.DataFrame]:
    semaphore = asyncio.Semaphore(max_concurrency)
    slots: list[pd.DataFrame | None] = [None] * len(segments)

    async def run(position: int, seg: Segment) -> None:
        async with semaphore:
            slots[position] = await fetch_one(seg)

    tasks = [asyncio.create_task(run(i, seg)) for i, seg in enumerate(segments)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    pages = [page for page in slots if page is not None]
    if len(pages) != len(segments):
        raise RuntimeError("Concurrent backfill finished with unfilled segment slots")
    return pages


def merge_pages(
    pages: Sequence[pd.DataFrame], frequency: Frequency | None = None
) -> pd.DataFrame:
    """Concatenate pages in order and sort the result by time.

    ``frequency`` only decides the ``time`` dtype when every page is empty.
    """
    non_empty = [page for page in pages if not page.empty]
    if not non_empty:
        return _empty_page(frequency)
    merged = pd.concat(non_empty, ignore_index=True)
    return merged.sort_values(TIME_COLUMN, kind="stable").reset_index(drop=True)


async def backfill_segments(
    segments: Sequence[Segment],
    fetch_page: FetchPage,
    *,
    frequency: Frequency | str,
    data: str,
    api_path: str,
    api_key: str | None = None,
    facets: Mapping[str, str | list[str]] | None = None,
    max_concurrency: int = 1,
) -> pd.DataFrame:
    """Fetch already computed segments and merge them into one frame.

    Segments are fetched in index order, one at a time unless
    ``max_concurrency`` is above 1. The first failure aborts the run.
    """
    freq = parse_frequency(frequency)

    async def fetch_one(seg: Segment) -> pd.DataFrame:
        return await fetch_and_normalize(
            seg,
            fetch_page,
            frequency=freq,
            data=data,
            api_path=api_path,
            api_key=api_key,
            facets=facets,
        )

    if max_concurrency > 1 and len(segments) > 1:
        pages = await _fetch_concurrently(segments, fetch_one, max_concurrency)
    else:
        pages = [await fetch_one(seg) for seg in segments]

    result = merge_pages(pages, freq)
    logger.info(
        "Backfill complete",
        frequency=freq.value,
        api_path=api_path,
        segments=len(segments),
        rows=len(result),
    )
    return result


async def backfill(
    start: datetime | date,
    end: datetime | date,
    offset: int,
    frequency: Frequency | str,
    fetch_page: FetchPage,
    *,
    data: str,
    api_path: str,
    api_key: str | None = None,
    facets: Mapping[str, str | list[str]] | None = None,
    max_concurrency: int = 1,
) -> pd.DataFrame:
    """Pull a long series by splitting it into sequential sub-queries.

    Args:
        start: First point; ``datetime`` for hourly series, ``date`` otherwise
        end: Last point, same type as ``start``
        offset: Observations per sub-query; values above 5000 are clamped
        frequency: hourly, monthly, quarterly or yearly
        fetch_page: Async single-request fetch capability
        data: Metric to retrieve (EIA ``data`` parameter)
        api_path: Route below the v2 endpoint, e.g. ``electricity/rto/region-sub-ba-data/data/``
        api_key: EIA API key forwarded to ``fetch_page``
        facets: Optional filters, e.g. ``{"parent": "NYIS", "subba": "ZONA"}``
        max_concurrency: Segments fetched at once (1 = strictly sequential)

    Returns:
        Frame with a leading ``time`` column followed by metric columns, sorted by time

    Raises:
        InvalidRangeError: If any argument is invalid; raised before any fetch
        FetchError: If any segment fails; no partial result is returned
    """
    _validate_query_arguments(
        data=data,
        facets=facets,
        api_key=api_key,
        api_path=api_path,
        max_concurrency=max_concurrency,
    )
    segments = segment(start, end, frequency, offset)
    return await backfill_segments(
        segments,
        fetch_page,
        frequency=frequency,
        data=data,
        api_path=api_path,
        api_key=api_key,
        facets=facets,
        max_concurrency=max_concurrency,
    )


class BackfillRequest(BaseModel):
    """Request to backfill a series."""

    start: datetime | date = Field(..., description="First point of the series")
    end: datetime | date = Field(..., description="Last point of the series")
    frequency: Frequency = Field(..., description="Series frequency")
    api_path: str = Field(..., description="API route below the v2 endpoint")
    data: str = Field(default="value", description="Metric to retrieve")
    facets: dict[str, str | list[str]] = Field(default_factory=dict, description="Filters")
    offset: int = Field(default=5000, description="Observations per sub-query")
    api_key: str | None = Field(default=None, description="Overrides the provider's key")
    max_concurrency: int | None = Field(default=None, description="Overrides the default")


class BackfillResponse(BaseModel):
    """Result of a backfill run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    frame: pd.DataFrame = Field(..., description="Merged, time-sorted series")
    segments: list[Segment] = Field(..., description="Segments that were fetched")


class BackfillUseCase:
    """Backfill a series through an :class:`EnergyDataProvider`."""

    def __init__(self, data_provider: EnergyDataProvider, max_concurrency: int = 1) -> None:
        self._provider = data_provider
        self._max_concurrency = max_concurrency

    async def execute(self, request: BackfillRequest) -> BackfillResponse:
        max_concurrency = (
            self._max_concurrency if request.max_concurrency is None else request.max_concurrency
        )
        _validate_query_arguments(
            data=request.data,
            facets=request.facets,
            api_key=request.api_key,
            api_path=request.api_path,
            max_concurrency=max_concurrency,
        )
        segments = segment(request.start, request.end, request.frequency, request.offset)
        logger.info(
            "Starting backfill",
            provider=self._provider.get_provider_name(),
            api_path=request.api_path,
            frequency=request.frequency.value,
            segments=len(segments),
        )
        frame = await backfill_segments(
            segments,
            self._provider.fetch_page,
            frequency=request.frequency,
            data=request.data,
            api_path=request.api_path,
            api_key=request.api_key,
            facets=request.facets,
            max_concurrency=max_concurrency,
        )
        return BackfillResponse(frame=frame, segments=segments)
