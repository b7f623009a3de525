"""IP classification and enrichment pipeline.

This module provides the IPEnrichmentPipeline service, the single entry point
that turns a visitor IP into an enrichment verdict. It coordinates the
expiring cache, the static IP dataset and the company resolver.

Example:
    >>> from visitorintel.enrichment import create_enrichment_pipeline
    >>>
    >>> pipeline = create_enrichment_pipeline()
    >>> result = pipeline.enrich("204.79.197.200")
    >>> print(result.status, result.company_profile.company_name)
    success Microsoft Corporation
    >>> pipeline.enrich("125.20.250.6").reason
    'ISP or Hosting'
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Iterable

from ..telemetry import start_span
from .cache import MISSING, CacheStats, ExpiringCache
from .company_resolver import CompanyResolver
from .datasets import StaticIPDataset
from .errors import InvalidInputError
from .models import (
    REASON_ISP_OR_HOSTING,
    REASON_NO_DATA,
    EnrichmentResult,
    EnrichmentSource,
    FilteredResult,
    SuccessResult,
)

logger = logging.getLogger(__name__)

IP_CACHE_PREFIX = "ip:"
FILTERED_TTL = 60 * 60
SUCCESS_TTL = 24 * 60 * 60


class IPEnrichmentPipeline:
    """Classify visitor IPs and enrich business traffic with company profiles.

    Enrichment waterfall (linear, no retries):
    1. Cache check (``ip:<address>``)
    2. Exact lookup in the IP reference dataset; absent → filtered
    3. ISP / hosting type → filtered
    4. Business → company resolver, synthesized fallback when it has no data
    5. Assemble and cache the success result

    Filtered verdicts are cached for ``filtered_ttl`` (1h) so reclassified
    IPs self-heal quickly; successful enrichments for ``success_ttl`` (24h).

    Thread Safety:
        Safe to share across request threads. The only shared mutable state
        is the injected cache, which locks internally. Concurrent misses on
        the same IP may both compute; they produce equal results.
    """

    def __init__(
        self,
        cache: ExpiringCache,
        ip_dataset: StaticIPDataset,
        resolver: CompanyResolver,
        filtered_ttl: float = FILTERED_TTL,
        success_ttl: float = SUCCESS_TTL,
        validate_input: bool = True,
    ) -> None:
        """Initialize the pipeline with its collaborators.

        Args:
            cache: Cache shared with the resolver
            ip_dataset: IP reference table
            resolver: Company resolver for business IPs
            filtered_ttl: TTL in seconds for filtered verdicts
            success_ttl: TTL in seconds for successful enrichments
            validate_input: Reject strings that are not IP addresses
        """
        self.cache = cache
        self.ip_dataset = ip_dataset
        self.resolver = resolver
        self.filtered_ttl = filtered_ttl
        self.success_ttl = success_ttl
        self.validate_input = validate_input

        self._stats = {
            "enrichments": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "no_data": 0,
            "filtered_isp_hosting": 0,
            "business_matches": 0,
            "dataset_profiles": 0,
            "fallback_profiles": 0,
        }

    def enrich(self, ip_address: str) -> EnrichmentResult:
        """Return the enrichment verdict for ``ip_address``.

        Args:
            ip_address: IPv4 or IPv6 address string, e.g. "204.79.197.200"

        Returns:
            FilteredResult for unknown, ISP and hosting IPs; SuccessResult with
            the IP record and company profile for business IPs

        Raises:
            InvalidInputError: If validation is enabled and the string is not an IP
        """
        ip = self._normalize(ip_address)
        self._stats["enrichments"] += 1

        with start_span("visitorintel.enrich", {"ip": ip}) as span:
            cache_key = f"{IP_CACHE_PREFIX}{ip}"
            cached = self.cache.lookup(cache_key)
            if cached is not MISSING:
                self._stats["cache_hits"] += 1
                logger.info("Using cached result for IP: %s", ip)
                span.set_attribute("cache_hit", True)
                span.set_attribute("status", cached.status)
                return cached

            self._stats["cache_misses"] += 1
            span.set_attribute("cache_hit", False)
            logger.info("Performing initial lookup for IP: %s", ip)

            result = self._classify_and_enrich(ip)
            ttl = self.success_ttl if isinstance(result, SuccessResult) else self.filtered_ttl
            self.cache.set(cache_key, result, ttl)
            span.set_attribute("status", result.status)
            return result

    def bulk_enrich(self, ips: Iterable[str]) -> dict[str, EnrichmentResult]:
        """Enrich several IPs; duplicates are served from cache."""
        results = {}
        for ip in ips:
            results[ip] = self.enrich(ip)
        return results

    def cache_stats(self) -> CacheStats:
        """Return a snapshot of the shared cache (read-only)."""
        return self.cache.stats()

    def cache_clear(self) -> int:
        """Drop every cached verdict and company profile."""
        return self.cache.clear()

    def get_available_enrichment_domains(self) -> list[str]:
        """Return the domains the company resolver can enrich."""
        return self.resolver.list_available_domains()

    def get_stats(self) -> dict[str, int]:
        """Return pipeline counters.

        Returns:
            Statistics dict with keys:
            - enrichments: Total enrich calls
            - cache_hits / cache_misses: Verdict cache outcomes
            - no_data: IPs absent from the reference dataset
            - filtered_isp_hosting: IPs filtered as ISP or hosting
            - business_matches: IPs that reached the business path
            - dataset_profiles / fallback_profiles: Profile origin for business IPs
        """
        return self._stats.copy()

    def _normalize(self, ip_address: str) -> str:
        if not isinstance(ip_address, str):
            raise InvalidInputError(f"IP address must be a string, got {type(ip_address).__name__}")
        ip = ip_address.strip()
        if self.validate_input:
            try:
                ipaddress.ip_address(ip)
            except ValueError as exc:
                raise InvalidInputError(f"Invalid IP address: {ip_address!r}") from exc
        return ip

    def _classify_and_enrich(self, ip: str) -> EnrichmentResult:
        record = self.ip_dataset.lookup(ip)
        if record is None:
            self._stats["no_data"] += 1
            logger.info("No match found for %s. Filtering this traffic out.", ip)
            return FilteredResult(reason=REASON_NO_DATA)

        if record.ip_type.is_filtered:
            self._stats["filtered_isp_hosting"] += 1
            logger.info("IP belongs to ISP/Hosting service: %s. Filtering out.", record.as_name)
            return FilteredResult(reason=REASON_ISP_OR_HOSTING)

        self._stats["business_matches"] += 1
        logger.info("IP matched to business: %s. Domain: %s", record.as_name, record.as_domain)
        logger.info("Beginning enrichment waterfall for domain: %s", record.as_domain)

        profile = self.resolver.resolve(record.as_domain)
        if profile is None:
            profile = self.resolver.fallback(record.as_domain, record.as_name)

        if profile.enrichment_source is EnrichmentSource.FALLBACK:
            self._stats["fallback_profiles"] += 1
        else:
            self._stats["dataset_profiles"] += 1

        return SuccessResult(ip_record=record, company_profile=profile)


__all__ = ["FILTERED_TTL", "SUCCESS_TTL", "IP_CACHE_PREFIX", "IPEnrichmentPipeline"]
