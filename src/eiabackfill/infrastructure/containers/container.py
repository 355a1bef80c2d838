"""Main dependency injection container configuration."""

from dependency_injector import containers, providers

from eiabackfill.application.use_cases.backfill import BackfillUseCase
from eiabackfill.infrastructure.config import get_settings
from eiabackfill.infrastructure.containers.data_providers import configure_data_providers


class Container(containers.DeclarativeContainer):
    """Dependency injection container for eiabackfill.

    To provide your own EIA API key (for library integrators):
        container = get_container(eia_api_key="your-eia-api-key")

    Or override after creation:
        container = Container()
        container.eia_api_key_config.override("your-eia-api-key")
    """

    eia_api_key_config = providers.Configuration()

    # Data providers (singletons, can be overridden)
    _data_providers_config = providers.Singleton(
        configure_data_providers,
        eia_api_key=providers.Callable(
            lambda key: key if key else None,
            key=eia_api_key_config.provided,
        ),
    )
    eia_data_provider = providers.Callable(
        lambda config: config["eia_data_provider"](),
        config=_data_providers_config,
    )

    # Use cases
    backfill_use_case = providers.Factory(
        BackfillUseCase,
        data_provider=eia_data_provider,
        max_concurrency=providers.Callable(lambda: get_settings().max_concurrency),
    )


# Global container instance (can be overridden for testing)
_container: Container | None = None


def get_container(eia_api_key: str | None = None) -> Container:
    """Get the global dependency injection container.

    Args:
        eia_api_key: Optional EIA API key. If given, a new container bound to that key
                     is returned and the global one is left untouched.

    Returns:
        Container instance
    """
    global _container
    if eia_api_key is not None:
        container_instance = Container()
        container_instance.eia_api_key_config.override(eia_api_key)
        return container_instance
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Set a custom container (useful for testing).

    Args:
        container: Container instance to use
    """
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    _container = None
