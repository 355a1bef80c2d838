"""Backfill CLI command."""

from datetime import UTC, date, datetime
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from eiabackfill.application.use_cases.backfill import BackfillRequest
from eiabackfill.cli.error_handler import handle_cli_error
from eiabackfill.cli.utils import async_command
from eiabackfill.domain.models.backfill import Frequency
from eiabackfill.infrastructure.config import get_settings
from eiabackfill.infrastructure.containers.container import get_container

console = Console()

HOURLY_FORMAT = "%Y-%m-%dT%H"


def parse_bound(value: str, frequency: Frequency) -> datetime | date:
    """Parse a CLI time bound: ``YYYY-MM-DDTHH`` (UTC) for hourly, ``YYYY-MM-DD`` otherwise."""
    try:
        if frequency is Frequency.HOURLY:
            return datetime.strptime(value, HOURLY_FORMAT).replace(tzinfo=UTC)
        return date.fromisoformat(value)
    except ValueError as e:
        expected = "YYYY-MM-DDTHH" if frequency is Frequency.HOURLY else "YYYY-MM-DD"
        raise typer.BadParameter(f"{value!r} is not a valid {expected} bound") from e


def parse_facets(values: list[str] | None) -> dict[str, str | list[str]]:
    """Parse repeated ``name=value`` options; repeated names collect into a list."""
    facets: dict[str, str | list[str]] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip() or not value.strip():
            raise typer.BadParameter(f"Facet {item!r} must look like name=value")
        name, value = name.strip(), value.strip()
        existing = facets.get(name)
        if existing is None:
            facets[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            facets[name] = [existing, value]
    return facets


def _display_summary(frame: pd.DataFrame, segments: int, rows: int = 5) -> None:
    console.print(f"Segments fetched: {segments}")
    console.print(f"Rows: {len(frame)}")
    if frame.empty:
        console.print("[yellow]No observations returned for the requested range[/yellow]")
        return
    console.print(f"Range: {frame['time'].iloc[0]} -> {frame['time'].iloc[-1]}")

    preview = frame.head(rows) if len(frame) <= rows * 2 else pd.concat(
        [frame.head(rows), frame.tail(rows)]
    )
    table = Table(show_header=True, header_style="bold cyan")
    for column in preview.columns:
        table.add_column(str(column))
    for _, record in preview.iterrows():
        table.add_row(*(str(value) for value in record.tolist()))
    console.print(table)


@async_command
async def backfill_command(
    start: str = typer.Option(..., help="Start bound (YYYY-MM-DDTHH hourly, else YYYY-MM-DD)"),
    end: str = typer.Option(..., help="End bound, same format as --start"),
    frequency: Frequency = typer.Option(Frequency.HOURLY, help="Series frequency"),
    api_path: str = typer.Option(
        ..., help="API route, e.g. electricity/rto/region-sub-ba-data/data/"
    ),
    data: str = typer.Option("value", help="Metric to retrieve"),
    facet: list[str] | None = typer.Option(
        None, "--facet", "-f", help="Filter as name=value (repeatable)"
    ),
    offset: int | None = typer.Option(None, help="Observations per request (max 5000)"),
    api_key: str | None = typer.Option(None, help="EIA API key (default: from settings)"),
    max_concurrency: int | None = typer.Option(None, help="Segments fetched at once"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the series to CSV"),
) -> None:
    """Backfill a series by splitting the range into sub-queries."""
    settings = get_settings()
    request = BackfillRequest(
        start=parse_bound(start, frequency),
        end=parse_bound(end, frequency),
        frequency=frequency,
        api_path=api_path,
        data=data,
        facets=parse_facets(facet),
        offset=offset if offset is not None else settings.default_offset,
        api_key=api_key,
        max_concurrency=max_concurrency,
    )

    container = get_container()
    provider = container.eia_data_provider()
    use_case = container.backfill_use_case()
    try:
        with console.status("[bold blue]Fetching segments..."):
            response = await use_case.execute(request)
    except Exception as e:
        handle_cli_error(e, context={"api_path": api_path, "frequency": frequency.value})
    finally:
        await provider.close()

    console.print("✓ Backfill complete", style="bold green")
    _display_summary(response.frame, len(response.segments))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        response.frame.to_csv(output, index=False)
        console.print(f"Saved to {output}")
