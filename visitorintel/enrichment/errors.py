"""Exception types raised by the enrichment core."""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for enrichment failures that callers may want to handle."""


class InvalidInputError(EnrichmentError, ValueError):
    """Raised when a caller hands the pipeline something that is not an IP address."""


class DatasetError(EnrichmentError):
    """Raised when static reference data cannot be parsed into records."""


__all__ = ["EnrichmentError", "InvalidInputError", "DatasetError"]
