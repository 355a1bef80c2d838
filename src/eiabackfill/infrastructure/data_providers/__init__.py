"""Data provider implementations."""

from eiabackfill.infrastructure.data_providers.eia import EiaApiError, EiaDataProvider

__all__ = ["EiaApiError", "EiaDataProvider"]
