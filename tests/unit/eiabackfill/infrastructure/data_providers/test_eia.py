"""Unit tests for the EIA data provider."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

import httpx
import pytest

from eiabackfill.application.use_cases.backfill import backfill
from eiabackfill.domain.models.backfill import Frequency, PageQuery
from eiabackfill.infrastructure.data_providers.eia import (
    EiaApiError,
    EiaDataProvider,
    build_query_params,
)

BASE_URL = "https://api.eia.gov/v2"


def _query(**overrides: object) -> PageQuery:
    fields: dict[str, object] = {
        "api_path": "electricity/rto/region-sub-ba-data/data/",
        "facets": {"parent": "NYIS", "subba": ["ZONA", "ZONB"]},
        "data": "value",
        "frequency": Frequency.HOURLY,
        "start": "2018-06-19T00",
        "end": "2018-06-19T01",
    }
    fields.update(overrides)
    return PageQuery(**fields)  # type: ignore[arg-type]


def _provider_with(
    handler: Callable[[httpx.Request], httpx.Response], api_key: str | None = "test-key"
) -> EiaDataProvider:
    provider = EiaDataProvider(api_key=api_key, base_url=BASE_URL)
    provider._client = httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(handler)
    )
    return provider


class _PagedHourlyApi:
    """Serves one row per hour in ``[start, end]`` honouring ``offset`` and ``length``."""

    def __init__(self, short_after: int | None = None) -> None:
        self.offsets: list[int] = []
        self._short_after = short_after

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        start = datetime.strptime(params["start"], "%Y-%m-%dT%H")
        end = datetime.strptime(params["end"], "%Y-%m-%dT%H")
        offset, length = int(params["offset"]), int(params["length"])
        self.offsets.append(offset)

        total = int((end - start) / timedelta(hours=1)) + 1
        served = total if self._short_after is None else min(total, self._short_after)
        data = [
            {"period": f"{start + timedelta(hours=i):%Y-%m-%dT%H}", "value": str(i)}
            for i in range(offset, min(offset + length, served))
        ]
        return httpx.Response(200, json={"response": {"total": total, "data": data}})


@pytest.mark.unit
class TestBuildQueryParams:
    def test_facets_expand_to_one_param_per_value(self) -> None:
        params = build_query_params(_query(), "test-key")

        assert ("api_key", "test-key") in params
        assert ("frequency", "hourly") in params
        assert ("data[0]", "value") in params
        assert ("facets[parent][]", "NYIS") in params
        assert ("facets[subba][]", "ZONA") in params
        assert ("facets[subba][]", "ZONB") in params
        assert ("start", "2018-06-19T00") in params
        assert ("end", "2018-06-19T01") in params
        assert ("length", 5000) in params
        assert ("offset", 0) in params

    def test_page_offset_is_forwarded(self) -> None:
        params = build_query_params(_query(), "test-key", page_offset=10000)

        assert ("offset", 10000) in params
        assert ("offset", 0) not in params


@pytest.mark.unit
class TestEiaDataProvider:
    def test_get_provider_name(self) -> None:
        assert EiaDataProvider(api_key=None).get_provider_name() == "eia"

    @pytest.mark.asyncio
    async def test_fetch_page_returns_response_data(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            payload = {
                "response": {
                    "total": "2",
                    "data": [
                        {"period": "2018-06-19T00", "subba": "ZONA", "value": "1200"},
                        {"period": "2018-06-19T01", "subba": "ZONA", "value": "1150"},
                    ],
                }
            }
            return httpx.Response(200, json=payload)

        provider = _provider_with(handler)
        rows = await provider.fetch_page(_query())
        await provider.close()

        assert [row["period"] for row in rows] == ["2018-06-19T00", "2018-06-19T01"]
        (request,) = seen
        assert request.url.path == "/v2/electricity/rto/region-sub-ba-data/data"
        assert request.url.params["api_key"] == "test-key"
        assert request.url.params.get_list("facets[subba][]") == ["ZONA", "ZONB"]
        assert request.url.params["sort[0][column]"] == "period"

    @pytest.mark.asyncio
    async def test_query_api_key_overrides_provider_key(self) -> None:
        keys: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            keys.append(request.url.params["api_key"])
            return httpx.Response(200, json={"response": {"data": []}})

        provider = _provider_with(handler)
        await provider.fetch_page(_query(api_key="query-key"))

        assert keys == ["query-key"]

    @pytest.mark.asyncio
    async def test_fetch_page_follows_row_offset_until_total(self) -> None:
        api = _PagedHourlyApi()
        provider = _provider_with(api)
        start = datetime(2018, 6, 19, 0)
        end = start + timedelta(hours=12000)

        rows = await provider.fetch_page(
            _query(start=f"{start:%Y-%m-%dT%H}", end=f"{end:%Y-%m-%dT%H}", facets={})
        )

        assert api.offsets == [0, 5000, 10000]
        assert len(rows) == 12001
        assert rows[-1]["period"] == f"{end:%Y-%m-%dT%H}"

    @pytest.mark.asyncio
    async def test_fetch_page_raises_when_rows_stop_before_total(self) -> None:
        provider = _provider_with(_PagedHourlyApi(short_after=5000))
        start = datetime(2018, 6, 19, 0)
        end = start + timedelta(hours=5000)

        with pytest.raises(EiaApiError, match="5000 of 5001"):
            await provider.fetch_page(
                _query(start=f"{start:%Y-%m-%dT%H}", end=f"{end:%Y-%m-%dT%H}", facets={})
            )

    @pytest.mark.asyncio
    async def test_backfill_keeps_end_point_of_oversized_last_segment(self) -> None:
        provider = _provider_with(_PagedHourlyApi())
        start = datetime(2018, 6, 19, 0)
        end = start + timedelta(hours=10000)

        df = await backfill(
            start,
            end,
            5000,
            "hourly",
            provider.fetch_page,
            data="value",
            api_path="electricity/rto/region-sub-ba-data/data/",
        )
        await provider.close()

        assert len(df) == 10001
        assert df["time"].is_unique
        assert df["time"].iloc[-1].strftime("%Y-%m-%dT%H") == f"{end:%Y-%m-%dT%H}"

    @pytest.mark.asyncio
    async def test_error_payload_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "Invalid facet", "code": 400})

        provider = _provider_with(handler)
        with pytest.raises(EiaApiError, match="Invalid facet"):
            await provider.fetch_page(_query())

    @pytest.mark.asyncio
    async def test_missing_data_list_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"response": {"total": 0}})

        provider = _provider_with(handler)
        with pytest.raises(EiaApiError):
            await provider.fetch_page(_query())

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        provider = _provider_with(handler)
        with pytest.raises(httpx.HTTPStatusError):
            await provider.fetch_page(_query())

    @pytest.mark.asyncio
    async def test_fetch_page_requires_api_key(self) -> None:
        provider = EiaDataProvider(api_key=None)
        with pytest.raises(RuntimeError):
            await provider.fetch_page(_query())

    @pytest.mark.asyncio
    async def test_is_available_without_key(self) -> None:
        assert await EiaDataProvider(api_key=None).is_available() is False

    @pytest.mark.asyncio
    async def test_is_available_checks_api_root(self) -> None:
        provider = EiaDataProvider(api_key="test-key", base_url="https://example.com")

        class DummyClient:
            async def get(
                self, path: str, params: dict, timeout: float | None = None
            ) -> httpx.Response:
                assert path == "/"
                assert params == {"api_key": "test-key"}
                req = httpx.Request("GET", "https://example.com/")
                return httpx.Response(200, json={"response": {"id": ""}}, request=req)

        async def _dummy_get_client() -> DummyClient:  # type: ignore[override]
            return DummyClient()

        provider._get_client = _dummy_get_client  # type: ignore[method-assign]

        assert await provider.is_available() is True
