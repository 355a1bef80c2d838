"""Command line interface."""

import typer

from eiabackfill.cli.backfill import backfill_command
from eiabackfill.infrastructure.config import get_settings
from eiabackfill.infrastructure.logging import configure_logging

app = typer.Typer(help="Backfill long EIA energy time series", no_args_is_help=True)


@app.callback()
def main(
    log_level: str | None = typer.Option(None, help="Logging level (default: from settings)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """eiabackfill command line interface."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, json_output=json_logs or settings.log_json)


app.command("backfill")(backfill_command)

__all__ = ["app"]
