"""Factory functions for wiring the enrichment pipeline with dependency injection."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..settings import EnrichmentSettings
from .cache import ExpiringCache
from .company_resolver import CompanyResolver
from .datasets import CompanyDataSource, StaticIPDataset, load_company_dataset, load_ip_dataset
from .pipeline import IPEnrichmentPipeline

logger = logging.getLogger(__name__)


def create_enrichment_pipeline(
    settings: Optional[EnrichmentSettings] = None,
    cache: Optional[ExpiringCache] = None,
    ip_dataset: Optional[StaticIPDataset] = None,
    company_source: Optional[CompanyDataSource] = None,
    clock: Callable[[], float] = time.time,
) -> IPEnrichmentPipeline:
    """Create a fully initialized IPEnrichmentPipeline.

    Every collaborator can be injected; anything omitted is built from
    ``settings`` (defaults when None). The resolver and pipeline always share
    one cache instance.

    Args:
        settings: Cache sizing, TTLs and dataset paths
        cache: Pre-built cache to share, e.g. across pipelines in tests
        ip_dataset: IP reference table; loaded from ``settings`` when omitted
        company_source: Company data source; the static dataset when omitted
        clock: Time source for a newly built cache

    Returns:
        IPEnrichmentPipeline ready for use

    Example:
        >>> pipeline = create_enrichment_pipeline()
        >>> pipeline.enrich("1.2.3.4").reason
        'No data found for this IP.'
    """
    settings = settings or EnrichmentSettings()

    if cache is None:
        cache = ExpiringCache(
            max_entries=settings.cache_max_entries,
            default_ttl=settings.cache_default_ttl,
            clock=clock,
        )
    if ip_dataset is None:
        ip_dataset = load_ip_dataset(settings.ip_dataset_path)
    if company_source is None:
        company_source = load_company_dataset(settings.company_dataset_path)

    resolver = CompanyResolver(
        cache=cache,
        source=company_source,
        hit_ttl=settings.company_hit_ttl,
        miss_ttl=settings.company_miss_ttl,
    )
    pipeline = IPEnrichmentPipeline(
        cache=cache,
        ip_dataset=ip_dataset,
        resolver=resolver,
        filtered_ttl=settings.filtered_ttl,
        success_ttl=settings.success_ttl,
        validate_input=settings.validate_input,
    )

    logger.info(
        "IPEnrichmentPipeline initialized (%d IP records, %d company domains, max %d cache entries)",
        len(ip_dataset),
        len(company_source.domains()),
        cache.max_entries,
    )
    return pipeline


__all__ = ["create_enrichment_pipeline"]
