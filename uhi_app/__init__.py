"""Core modules for the UHI explorer: data loading, search and predictions."""

from . import (  # noqa: F401
    api,
    config,
    constants,
    csv_transfer,
    errors,
    maps,
    models,
    prediction,
    report,
    scheduling,
    search,
    strategies,
    viewport,
)

__all__ = [
    "api",
    "config",
    "constants",
    "csv_transfer",
    "errors",
    "maps",
    "models",
    "prediction",
    "report",
    "scheduling",
    "search",
    "strategies",
    "viewport",
]
