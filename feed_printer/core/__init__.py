"""
Core utilities for Feed Printer.

This package groups helpers used across the printer and poller:
- config: paths, JSON config loading, typed printer/poller settings
- errors: the exception taxonomy
- logging: item-aware log filters/formatters and root logger config
"""

from .config import (
    DEFAULTS,
    ImageSettings,
    PollSettings,
    PrinterSettings,
    default_cache_path,
    default_config_path,
    default_temp_dir,
    ensure_dir,
    get_config_path,
    load_config,
    require,
)
from .errors import (
    ConfigurationError,
    FeedPrinterError,
    ImageProcessingError,
    MetadataLookupError,
    SourceQueryError,
    TransportError,
    TransportUnreachable,
)
from .logging import (
    ItemContextFilter,
    JsonFormatter,
    configure_logging,
    item_context,
)

__all__ = [
    # config
    "DEFAULTS",
    "ImageSettings",
    "PollSettings",
    "PrinterSettings",
    "default_cache_path",
    "default_config_path",
    "default_temp_dir",
    "ensure_dir",
    "get_config_path",
    "load_config",
    "require",
    # errors
    "ConfigurationError",
    "FeedPrinterError",
    "ImageProcessingError",
    "MetadataLookupError",
    "SourceQueryError",
    "TransportError",
    "TransportUnreachable",
    # logging
    "ItemContextFilter",
    "JsonFormatter",
    "configure_logging",
    "item_context",
]
