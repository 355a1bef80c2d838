"""Ports (interfaces) implemented by infrastructure adapters."""

from eiabackfill.domain.ports.data_providers import EnergyDataProvider, FetchPage, Row

__all__ = ["EnergyDataProvider", "FetchPage", "Row"]
