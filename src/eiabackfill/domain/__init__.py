"""Domain layer: models, ports and services."""
