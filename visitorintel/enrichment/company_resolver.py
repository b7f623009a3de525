"""Domain → company profile resolution with negative caching."""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

from .cache import MISSING, ExpiringCache
from .datasets import CompanyDataSource
from .models import CompanyProfile, EnrichmentSource

logger = logging.getLogger(__name__)

COMPANY_CACHE_PREFIX = "company:"
COMPANY_HIT_TTL = 24 * 60 * 60
COMPANY_MISS_TTL = 60 * 60

FALLBACK_INDUSTRY = "Technology"
_FALLBACK_EMPLOYEES_MIN = 100
_FALLBACK_EMPLOYEES_SPAN = 5000


class _NoData:
    """Marker cached for domains the data source does not know."""

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = _NoData()


class CompanyResolver:
    """Resolve company domains to profiles, consulting the cache first.

    Lookup order:
    1. Cache (``company:<domain>``), including cached "no data" markers
    2. Company data source (static dataset or a vendor client)

    Hits are cached for ``hit_ttl`` (24h by default); misses are cached as
    :data:`NO_DATA` for the shorter ``miss_ttl`` so unknown domains are
    retried sooner than confirmed ones.

    Example:
        >>> resolver = CompanyResolver(cache, StaticCompanyDataset.from_json())
        >>> resolver.resolve("microsoft.com").company_name
        'Microsoft Corporation'
        >>> resolver.resolve("unknown.example") is None
        True
    """

    def __init__(
        self,
        cache: ExpiringCache,
        source: CompanyDataSource,
        hit_ttl: float = COMPANY_HIT_TTL,
        miss_ttl: float = COMPANY_MISS_TTL,
    ) -> None:
        self.cache = cache
        self.source = source
        self.hit_ttl = hit_ttl
        self.miss_ttl = miss_ttl
        self._stats = {
            "lookups": 0,
            "cache_hits": 0,
            "dataset_hits": 0,
            "dataset_misses": 0,
            "fallbacks": 0,
        }

    def resolve(self, domain: str) -> Optional[CompanyProfile]:
        """Return the company profile for ``domain`` or None when no data exists.

        Args:
            domain: Company domain, e.g. "microsoft.com"

        Returns:
            Dataset-sourced CompanyProfile, or None (also cached, for ``miss_ttl``)
        """
        self._stats["lookups"] += 1
        cache_key = f"{COMPANY_CACHE_PREFIX}{domain}"

        cached = self.cache.lookup(cache_key)
        if cached is not MISSING:
            self._stats["cache_hits"] += 1
            logger.debug("Using cached company data for domain: %s", domain)
            return None if cached is NO_DATA else cached

        profile = self.source.lookup(domain)
        if profile is None:
            self._stats["dataset_misses"] += 1
            logger.info("No enriched data found for domain: %s", domain)
            self.cache.set(cache_key, NO_DATA, self.miss_ttl)
            return None

        self._stats["dataset_hits"] += 1
        logger.info("Successfully enriched data for domain: %s", domain)
        self.cache.set(cache_key, profile, self.hit_ttl)
        return profile

    def fallback(self, domain: str, company_name_hint: str) -> CompanyProfile:
        """Synthesize a placeholder profile for a business with no dataset entry.

        The employee estimate is derived from the domain so repeated calls
        agree. The result is not cached here.
        """
        self._stats["fallbacks"] += 1
        logger.info("Generating fallback enrichment data for %s", domain)
        digest = hashlib.sha256(domain.encode("utf-8")).digest()
        employees = _FALLBACK_EMPLOYEES_MIN + int.from_bytes(digest[:4], "big") % _FALLBACK_EMPLOYEES_SPAN
        return CompanyProfile(
            company_name=company_name_hint,
            domain=domain,
            employees=employees,
            industry=FALLBACK_INDUSTRY,
            headquarters="Unknown",
            revenue="N/A",
            website=f"https://www.{domain}",
            enrichment_source=EnrichmentSource.FALLBACK,
        )

    def has_enrichment_data(self, domain: str) -> bool:
        """Return True if the data source knows ``domain`` (bypasses the cache)."""
        return self.source.lookup(domain) is not None

    def list_available_domains(self) -> list[str]:
        """Return every domain the data source can enrich; diagnostics only."""
        return self.source.domains()

    def get_stats(self) -> dict[str, int]:
        return self._stats.copy()


__all__ = [
    "COMPANY_CACHE_PREFIX",
    "COMPANY_HIT_TTL",
    "COMPANY_MISS_TTL",
    "FALLBACK_INDUSTRY",
    "NO_DATA",
    "CompanyResolver",
]
