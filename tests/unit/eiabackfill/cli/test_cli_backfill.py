"""Unit tests for the backfill CLI command."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

import pandas as pd
import pytest
import typer
from dependency_injector import providers
from typer.testing import CliRunner

from eiabackfill.cli import app
from eiabackfill.cli.backfill import parse_bound, parse_facets
from eiabackfill.domain.models.backfill import Frequency, PageQuery
from eiabackfill.domain.ports.data_providers import EnergyDataProvider
from eiabackfill.infrastructure.containers.container import (
    Container,
    reset_container,
    set_container,
)

runner = CliRunner()


class _FakeProvider(EnergyDataProvider):
    def __init__(self, fail: bool = False) -> None:
        self.queries: list[PageQuery] = []
        self.closed = False
        self._fail = fail

    def get_provider_name(self) -> str:
        return "fake"

    async def is_available(self) -> bool:
        return True

    async def fetch_page(self, query: PageQuery) -> list[dict[str, Any]]:
        self.queries.append(query)
        if self._fail:
            raise RuntimeError("EIA down")
        start = datetime.strptime(query.start, "%Y-%m-%dT%H")
        end = datetime.strptime(query.end, "%Y-%m-%dT%H")
        hours = int((end - start) / timedelta(hours=1))
        return [
            {"period": (start + timedelta(hours=h)).strftime("%Y-%m-%dT%H"), "value": h}
            for h in range(hours + 1)
        ]

    async def close(self) -> None:
        self.closed = True


def _install(provider: _FakeProvider) -> None:
    container = Container()
    container.eia_data_provider.override(providers.Object(provider))
    set_container(container)


@pytest.fixture(autouse=True)
def _fresh_container() -> Iterator[None]:
    reset_container()
    yield
    reset_container()


BASE_ARGS = [
    "backfill",
    "--start",
    "2018-06-19T00",
    "--end",
    "2018-06-19T05",
    "--frequency",
    "hourly",
    "--api-path",
    "electricity/rto/region-sub-ba-data/data/",
    "--offset",
    "2",
    "--facet",
    "parent=NYIS",
    "--facet",
    "subba=ZONA",
]


@pytest.mark.unit
class TestBackfillCommand:
    def test_writes_csv(self, tmp_path: Path) -> None:
        provider = _FakeProvider()
        _install(provider)
        out = tmp_path / "series.csv"

        result = runner.invoke(app, [*BASE_ARGS, "--output", str(out)])

        assert result.exit_code == 0, result.output
        assert len(provider.queries) == 3
        assert provider.queries[0].facets == {"parent": "NYIS", "subba": "ZONA"}
        assert provider.closed is True
        frame = pd.read_csv(out)
        assert list(frame.columns) == ["time", "value"]
        assert len(frame) == 6

    def test_fetch_failure_exits_with_error(self) -> None:
        provider = _FakeProvider(fail=True)
        _install(provider)

        result = runner.invoke(app, BASE_ARGS)

        assert result.exit_code == 1
        assert len(provider.queries) == 1
        assert provider.closed is True

    def test_bad_bound_is_a_usage_error(self) -> None:
        _install(_FakeProvider())

        args = list(BASE_ARGS)
        args[2] = "2018-06-19"
        result = runner.invoke(app, args)

        assert result.exit_code == 2


@pytest.mark.unit
class TestParsers:
    def test_parse_hourly_bound_is_utc(self) -> None:
        assert parse_bound("2018-06-19T03", Frequency.HOURLY) == datetime(
            2018, 6, 19, 3, tzinfo=UTC
        )

    def test_parse_date_bound(self) -> None:
        assert parse_bound("2018-01-01", Frequency.MONTHLY) == date(2018, 1, 1)

    def test_parse_facets_collects_repeated_names(self) -> None:
        assert parse_facets(["parent=NYIS", "subba=ZONA", "subba=ZONB"]) == {
            "parent": "NYIS",
            "subba": ["ZONA", "ZONB"],
        }

    def test_parse_facets_rejects_missing_value(self) -> None:
        with pytest.raises(typer.BadParameter):
            parse_facets(["parent"])
