"""
Exception taxonomy for Feed Printer.

Only ConfigurationError is fatal; every other error is logged by the caller and
the current unit of work (job, item, or poll iteration) is abandoned.
"""

from __future__ import annotations


class FeedPrinterError(Exception):
    """Base class for all Feed Printer errors."""


class ConfigurationError(FeedPrinterError):
    """Required settings are absent or invalid."""


class TransportError(FeedPrinterError):
    """Printer open/write/commit failure."""


class TransportUnreachable(TransportError):
    """The printer device could not be reached when acquiring a connection."""


class SourceQueryError(FeedPrinterError):
    """The content source query failed; the poll iteration is skipped."""


class MetadataLookupError(FeedPrinterError):
    """Author metadata could not be resolved for a feed item."""


class ImageProcessingError(FeedPrinterError):
    """An image could not be fetched, decoded, dithered, or staged."""


__all__ = [
    "ConfigurationError",
    "FeedPrinterError",
    "ImageProcessingError",
    "MetadataLookupError",
    "SourceQueryError",
    "TransportError",
    "TransportUnreachable",
]
