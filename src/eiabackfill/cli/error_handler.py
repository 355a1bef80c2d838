"""Error rendering for CLI commands."""

from __future__ import annotations

from typing import Any, NoReturn

import httpx
import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from eiabackfill.domain.exceptions import BackfillError, FetchError, InvalidRangeError

logger = structlog.get_logger(__name__)
error_console = Console(stderr=True)


def _describe(error: BaseException) -> str:
    if isinstance(error, InvalidRangeError):
        return f"Invalid arguments: {error}"
    if isinstance(error, FetchError):
        cause = error.__cause__
        if isinstance(cause, httpx.HTTPStatusError):
            return f"{error}: HTTP {cause.response.status_code} from {cause.request.url.path}"
        if cause is not None:
            return f"{error}: {cause}"
    return str(error) or type(error).__name__


def handle_cli_error(error: BaseException, context: dict[str, Any] | None = None) -> NoReturn:
    """Print a readable error and exit with status 1.

    Args:
        error: The exception raised by the command
        context: Extra values shown below the message (e.g. api path, frequency)
    """
    logger.debug(
        "CLI command failed",
        error=str(error),
        error_type=type(error).__name__,
        kind=getattr(error, "kind", None),
        **(context or {}),
    )

    lines = [escape(_describe(error))]
    if isinstance(error, BackfillError):
        lines.append(f"[dim]kind: {error.kind}[/dim]")
    for key, value in (context or {}).items():
        lines.append(f"[dim]{key}: {escape(str(value))}[/dim]")

    error_console.print(Panel("\n".join(lines), title="Error", border_style="red"))
    raise typer.Exit(code=1)
