"""Domain exceptions for range segmentation and backfill."""

from __future__ import annotations

from typing import Any


class BackfillError(Exception):
    """Base class for backfill errors.

    Every error carries a short ``kind`` tag and a ``context`` mapping with the
    values needed to diagnose it (offending argument, segment bounds, ...).
    """

    kind: str = "backfill_error"

    def __init__(self, message: str, *, kind: str | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.context: dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class InvalidRangeError(BackfillError, ValueError):
    """Raised for invalid backfill arguments, before any request is issued."""

    kind = "invalid_argument"


# Alias kept for callers that think of these as plain validation failures.
ValidationError = InvalidRangeError


class FetchError(BackfillError):
    """Raised when fetching a segment's page fails.

    The original exception is chained as ``__cause__``.
    """

    kind = "fetch_failed"

    @property
    def segment_index(self) -> int | None:
        return self.context.get("segment_index")


class ClampWarning(UserWarning):
    """Emitted when the requested offset exceeds the API per-request limit."""
