"""Unit tests for create_enrichment_pipeline."""

from __future__ import annotations

from tests.fixtures.enrichment_fixtures import MICROSOFT_PROFILE, CountingCompanySource, FakeClock, build_ip_dataset
from visitorintel.enrichment import create_enrichment_pipeline
from visitorintel.enrichment.cache import ExpiringCache
from visitorintel.enrichment.models import SuccessResult
from visitorintel.settings import EnrichmentSettings


def test_default_pipeline_uses_bundled_datasets() -> None:
    """Defaults wire the bundled datasets and enrich the reference scenarios."""
    pipeline = create_enrichment_pipeline()

    result = pipeline.enrich("204.79.197.200")
    assert isinstance(result, SuccessResult)
    assert result.company_profile.company_name == "Microsoft Corporation"
    assert pipeline.enrich("125.20.250.6").reason == "ISP or Hosting"
    assert pipeline.enrich("1.2.3.4").reason == "No data found for this IP."


def test_resolver_and_pipeline_share_cache() -> None:
    pipeline = create_enrichment_pipeline()
    assert pipeline.resolver.cache is pipeline.cache


def test_settings_flow_into_components() -> None:
    settings = EnrichmentSettings(cache_max_entries=50, success_ttl=120, filtered_ttl=30, company_miss_ttl=10)

    pipeline = create_enrichment_pipeline(settings)

    assert pipeline.cache.max_entries == 50
    assert pipeline.success_ttl == 120
    assert pipeline.filtered_ttl == 30
    assert pipeline.resolver.miss_ttl == 10


def test_injected_collaborators_are_used() -> None:
    clock = FakeClock()
    cache = ExpiringCache(max_entries=10, clock=clock)
    source = CountingCompanySource({"microsoft.com": MICROSOFT_PROFILE})

    pipeline = create_enrichment_pipeline(cache=cache, ip_dataset=build_ip_dataset(), company_source=source)
    pipeline.enrich("204.79.197.200")

    assert pipeline.cache is cache
    assert source.lookups == ["microsoft.com"]
    assert pipeline.get_available_enrichment_domains() == ["microsoft.com"]
