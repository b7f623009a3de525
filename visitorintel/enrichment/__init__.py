"""Visitor IP enrichment: expiring cache, company resolution and the IP pipeline.

Example:
    >>> from visitorintel.enrichment import create_enrichment_pipeline
    >>>
    >>> pipeline = create_enrichment_pipeline()
    >>> result = pipeline.enrich("204.79.197.200")
    >>> print(f"{result.status}: {result.company_profile.company_name}")
    success: Microsoft Corporation
"""

from __future__ import annotations

from typing import Any

from .cache import CacheStats, ExpiringCache
from .company_resolver import CompanyResolver
from .datasets import StaticCompanyDataset, StaticIPDataset
from .errors import DatasetError, EnrichmentError, InvalidInputError
from .models import (
    CompanyProfile,
    EnrichmentResult,
    EnrichmentSource,
    FilteredResult,
    IPRecord,
    IPType,
    SuccessResult,
)
from .pipeline import IPEnrichmentPipeline

__all__ = [
    "CacheStats",
    "CompanyProfile",
    "CompanyResolver",
    "DatasetError",
    "EnrichmentError",
    "EnrichmentResult",
    "EnrichmentSource",
    "ExpiringCache",
    "FilteredResult",
    "IPEnrichmentPipeline",
    "IPRecord",
    "IPType",
    "InvalidInputError",
    "StaticCompanyDataset",
    "StaticIPDataset",
    "SuccessResult",
    "create_enrichment_pipeline",
]


def __getattr__(name: str) -> Any:
    # Deferred: the factory imports settings, which imports this package.
    if name == "create_enrichment_pipeline":
        from .factory import create_enrichment_pipeline as factory

        return factory
    raise AttributeError(f"module 'visitorintel.enrichment' has no attribute {name!r}")
