"""Data provider ports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from eiabackfill.domain.models.backfill import PageQuery

Row = dict[str, Any]

# Single-request fetch capability consumed by the backfill core.
FetchPage = Callable[[PageQuery], Awaitable[list[Row]]]


class EnergyDataProvider(ABC):
    """Source of tabular energy time-series pages."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Short identifier of the provider (e.g. 'eia')."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the provider can currently serve requests."""

    @abstractmethod
    async def fetch_page(self, query: PageQuery) -> list[Row]:
        """Fetch one page of rows for the given query.

        Args:
            query: Route, filters, metric and period bounds of the request

        Returns:
            Rows with a ``period`` label plus metric columns
        """

    async def close(self) -> None:  # noqa: B027
        """Release any resources held by the provider."""
