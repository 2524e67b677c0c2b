"""Core infrastructure: Configuration, Logging."""

from buildgraph.core.config import (
    ExportSettings,
    load_settings,
    settings_from_env,
)
from buildgraph.core.logging import (
    configure_logging,
    get_logger,
)

__all__ = [
    "ExportSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "settings_from_env",
]
