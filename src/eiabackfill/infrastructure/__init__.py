"""Infrastructure layer: configuration, logging, providers and containers."""
