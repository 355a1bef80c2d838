"""Data provider container configuration."""

from dependency_injector import providers

from eiabackfill.infrastructure.config import get_settings
from eiabackfill.infrastructure.data_providers import EiaDataProvider


def configure_data_providers(eia_api_key: str | None = None) -> dict[str, providers.Provider]:
    """Configure data provider providers.

    Args:
        eia_api_key: Optional EIA API key. If None, uses EIABACKFILL_EIA_API_KEY from settings
                     (for CLI users). Library integrators should pass their own API key here.

    Returns:
        Dictionary of data provider providers
    """
    settings = get_settings()
    effective_api_key = eia_api_key if eia_api_key is not None else settings.eia_api_key

    return {
        "eia_data_provider": providers.Singleton(
            EiaDataProvider,
            api_key=effective_api_key,
            base_url=settings.eia_base_url,
            timeout_seconds=settings.eia_timeout_seconds,
        ),
    }
