"""EIA (U.S. Energy Information Administration) open-data API v2 provider implementation."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from eiabackfill.domain.models.backfill import MAX_OFFSET, PageQuery
from eiabackfill.domain.ports.data_providers import EnergyDataProvider, Row

logger = structlog.get_logger(__name__)


class EiaApiError(RuntimeError):
    """Raised when the EIA API answers with an error payload or an unexpected body."""


def build_query_params(
    query: PageQuery, api_key: str, page_offset: int = 0
) -> list[tuple[str, str | int]]:
    """Encode a page query using the EIA v2 bracketed parameter syntax.

    ``page_offset`` is the API's own row offset within the matched result set,
    not the backfill step size.
    """
    params: list[tuple[str, str | int]] = [
        ("api_key", api_key),
        ("frequency", query.frequency.value),
        ("data[0]", query.data),
    ]
    for name, value in query.facets.items():
        values = value if isinstance(value, list) else [value]
        params.extend((f"facets[{name}][]", item) for item in values)
    params.extend(
        [
            ("start", query.start),
            ("end", query.end),
            ("sort[0][column]", "period"),
            ("sort[0][direction]", "asc"),
            ("offset", page_offset),
            ("length", MAX_OFFSET),
        ]
    )
    return params


class EiaDataProvider(EnergyDataProvider):
    """EIA implementation of EnergyDataProvider."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.eia.gov/v2",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    def get_provider_name(self) -> str:
        return "eia"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    async def is_available(self) -> bool:
        if not self._api_key:
            logger.debug("EIA API key not set", has_api_key=False)
            return False
        try:
            client = await self._get_client()
            # Route metadata at the API root is the cheapest authenticated call
            resp = await client.get("/", params={"api_key": self._api_key}, timeout=5.0)
            if resp.status_code == 200:
                logger.debug("EIA availability check passed", status_code=resp.status_code)
                return True
            else:
                logger.warning(
                    "EIA availability check failed",
                    status_code=resp.status_code,
                    response_text=resp.text[:200] if resp.text else None,
                )
                return False
        except httpx.HTTPError as e:
            logger.warning(
                "EIA availability check failed with exception",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def fetch_page(self, query: PageQuery) -> list[Row]:
        """Fetch every row matching ``query``.

        The API caps each response at 5000 rows, so the request is repeated
        with an increasing row offset until ``response.total`` rows arrived or
        a short page comes back.

        Raises:
            EiaApiError: If a response is not a data page, or rows stop
                before ``total`` is reached
        """
        api_key = query.api_key or self._api_key
        if not api_key:
            raise RuntimeError("EIA API key not configured (set EIABACKFILL_EIA_API_KEY)")

        client = await self._get_client()
        path = "/" + query.api_path.strip("/")
        rows: list[Row] = []
        while True:
            page, total = await self._request_rows(client, path, query, api_key, len(rows))
            rows.extend(page)
            if total is None or len(rows) >= total or len(page) < MAX_OFFSET:
                break
            logger.debug(
                "Fetching next EIA result page",
                path=path,
                start=query.start,
                end=query.end,
                received=len(rows),
                total=total,
            )

        if total is not None and len(rows) < total:
            raise EiaApiError(
                f"EIA API returned {len(rows)} of {total} matched rows for {path} "
                f"({query.start} to {query.end})"
            )
        return rows

    async def _request_rows(
        self,
        client: httpx.AsyncClient,
        path: str,
        query: PageQuery,
        api_key: str,
        page_offset: int,
    ) -> tuple[list[Row], int | None]:
        resp = await client.get(path, params=build_query_params(query, api_key, page_offset))
        resp.raise_for_status()
        payload: dict[str, Any] = resp.json()

        if "error" in payload:
            raise EiaApiError(f"EIA API error for {path}: {payload['error']}")
        response = payload.get("response")
        if not isinstance(response, dict) or not isinstance(response.get("data"), list):
            raise EiaApiError(f"Unexpected EIA API response for {path}: no response.data list")

        for warning in response.get("warnings", []) or []:
            logger.warning(
                "EIA API warning",
                path=path,
                warning=warning.get("warning") if isinstance(warning, dict) else warning,
                description=warning.get("description") if isinstance(warning, dict) else None,
            )

        total = response.get("total")
        try:
            total_rows = int(total) if total is not None else None
        except (TypeError, ValueError):
            total_rows = None
        return response["data"], total_rows

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
