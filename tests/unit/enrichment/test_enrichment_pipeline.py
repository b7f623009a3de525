"""Unit tests for IPEnrichmentPipeline."""

from __future__ import annotations

import pytest

from tests.fixtures.enrichment_fixtures import (
    MICROSOFT_PROFILE,
    SAMPLE_BUSINESS_IP,
    SAMPLE_FALLBACK_IP,
    SAMPLE_HOSTING_IP,
    SAMPLE_ISP_IP,
    SAMPLE_UNKNOWN_IP,
    FakeClock,
    build_company_dataset,
    build_ip_dataset,
)
from visitorintel.enrichment.cache import ExpiringCache
from visitorintel.enrichment.company_resolver import CompanyResolver
from visitorintel.enrichment.errors import InvalidInputError
from visitorintel.enrichment.models import EnrichmentSource, FilteredResult, IPType, SuccessResult
from visitorintel.enrichment.pipeline import FILTERED_TTL, SUCCESS_TTL, IPEnrichmentPipeline


class TestClassification:
    """Test the verdict for each branch of the waterfall."""

    def test_business_ip_with_company_data(self, pipeline: IPEnrichmentPipeline) -> None:
        """A business IP whose domain is in the dataset gets the dataset profile."""
        result = pipeline.enrich(SAMPLE_BUSINESS_IP)

        assert isinstance(result, SuccessResult)
        assert result.status == "success"
        assert result.ip_record.ip_type is IPType.BUSINESS
        assert result.ip_record.as_domain == "microsoft.com"
        assert result.company_profile == MICROSOFT_PROFILE

    def test_business_ip_without_company_data_uses_fallback(self, pipeline: IPEnrichmentPipeline) -> None:
        result = pipeline.enrich(SAMPLE_FALLBACK_IP)

        assert isinstance(result, SuccessResult)
        profile = result.company_profile
        assert profile.enrichment_source is EnrichmentSource.FALLBACK
        assert profile.company_name == "Northwind Traders Ltd"
        assert profile.domain == "northwindtraders.example"
        assert 100 <= profile.employees < 5100

    def test_isp_ip_is_filtered(self, pipeline: IPEnrichmentPipeline) -> None:
        result = pipeline.enrich(SAMPLE_ISP_IP)

        assert result == FilteredResult(reason="ISP or Hosting")
        assert result.to_dict() == {"status": "filtered", "reason": "ISP or Hosting"}

    def test_hosting_ip_is_filtered(self, pipeline: IPEnrichmentPipeline) -> None:
        assert pipeline.enrich(SAMPLE_HOSTING_IP) == FilteredResult(reason="ISP or Hosting")

    def test_unknown_ip_is_filtered_with_no_data(self, pipeline: IPEnrichmentPipeline) -> None:
        result = pipeline.enrich(SAMPLE_UNKNOWN_IP)

        assert isinstance(result, FilteredResult)
        assert result.reason == "No data found for this IP."

    def test_filtered_ip_never_consults_resolver(self, pipeline: IPEnrichmentPipeline) -> None:
        pipeline.enrich(SAMPLE_ISP_IP)
        pipeline.enrich(SAMPLE_UNKNOWN_IP)
        assert pipeline.resolver.get_stats()["lookups"] == 0

    def test_success_payload_shape(self, pipeline: IPEnrichmentPipeline) -> None:
        payload = pipeline.enrich(SAMPLE_BUSINESS_IP).to_dict()

        assert payload["status"] == "success"
        assert payload["data"]["ip"] == SAMPLE_BUSINESS_IP
        assert payload["data"]["type"] == "business"
        assert payload["data"]["company"]["company_name"] == "Microsoft Corporation"
        assert payload["data"]["company"]["enrichment_source"] == "dataset"


class TestCaching:
    """Test verdict caching and its TTLs."""

    def test_repeat_enrich_is_served_from_cache(self, pipeline: IPEnrichmentPipeline) -> None:
        first = pipeline.enrich(SAMPLE_BUSINESS_IP)
        second = pipeline.enrich(SAMPLE_BUSINESS_IP)

        assert first == second
        stats = pipeline.get_stats()
        assert stats["enrichments"] == 2
        assert stats["cache_hits"] == 1
        assert stats["cache_misses"] == 1
        assert pipeline.resolver.get_stats()["lookups"] == 1

    def test_enrich_is_idempotent_for_cache_size(self, pipeline: IPEnrichmentPipeline) -> None:
        """Enriching the same IP twice adds no further active entries."""
        pipeline.enrich(SAMPLE_BUSINESS_IP)
        active = pipeline.cache_stats().active_entries
        pipeline.enrich(SAMPLE_BUSINESS_IP)
        assert pipeline.cache_stats().active_entries == active

    def test_success_caches_verdict_and_company(self, pipeline: IPEnrichmentPipeline) -> None:
        pipeline.enrich(SAMPLE_BUSINESS_IP)
        keys = {info.key for info in pipeline.cache_stats().entries}
        assert keys == {f"ip:{SAMPLE_BUSINESS_IP}", "company:microsoft.com"}

    def test_filtered_verdict_expires_after_an_hour(self, clock: FakeClock) -> None:
        cache = ExpiringCache(clock=clock)
        resolver = CompanyResolver(cache=cache, source=build_company_dataset())
        pipeline = IPEnrichmentPipeline(cache=cache, ip_dataset=build_ip_dataset(), resolver=resolver)

        pipeline.enrich(SAMPLE_ISP_IP)
        pipeline.enrich(SAMPLE_BUSINESS_IP)
        clock.advance(FILTERED_TTL + 1)

        stats = pipeline.cache_stats()
        expired = {info.key for info in stats.entries if info.expired}
        assert expired == {f"ip:{SAMPLE_ISP_IP}"}

        clock.advance(SUCCESS_TTL)
        assert pipeline.cache_stats().active_entries == 0

    def test_cache_clear_forces_recomputation(self, pipeline: IPEnrichmentPipeline) -> None:
        pipeline.enrich(SAMPLE_BUSINESS_IP)
        pipeline.enrich(SAMPLE_ISP_IP)

        assert pipeline.cache_clear() == 3
        assert pipeline.cache_stats().total_entries == 0

        pipeline.enrich(SAMPLE_BUSINESS_IP)
        assert pipeline.get_stats()["cache_misses"] == 3

    def test_cache_stats_is_read_only(self, pipeline: IPEnrichmentPipeline) -> None:
        pipeline.enrich(SAMPLE_UNKNOWN_IP)
        before = pipeline.cache_stats()
        after = pipeline.cache_stats()
        assert before.total_entries == after.total_entries
        assert before.hits == after.hits


class TestInput:
    """Test input normalization and validation."""

    def test_surrounding_whitespace_is_stripped(self, pipeline: IPEnrichmentPipeline) -> None:
        result = pipeline.enrich(f"  {SAMPLE_BUSINESS_IP}\n")
        assert isinstance(result, SuccessResult)

    @pytest.mark.parametrize("value", ["", "not-an-ip", "999.1.1.1"])
    def test_invalid_ip_rejected(self, pipeline: IPEnrichmentPipeline, value: str) -> None:
        with pytest.raises(InvalidInputError):
            pipeline.enrich(value)
        assert pipeline.cache_stats().total_entries == 0

    def test_non_string_rejected(self, pipeline: IPEnrichmentPipeline) -> None:
        with pytest.raises(InvalidInputError):
            pipeline.enrich(12345)  # type: ignore[arg-type]

    def test_validation_can_be_disabled(self, cache: ExpiringCache, resolver: CompanyResolver) -> None:
        """Without validation any string is looked up and filtered as unknown."""
        pipeline = IPEnrichmentPipeline(
            cache=cache, ip_dataset=build_ip_dataset(), resolver=resolver, validate_input=False
        )
        assert pipeline.enrich("not-an-ip") == FilteredResult(reason="No data found for this IP.")

    def test_ipv6_address_accepted(self, pipeline: IPEnrichmentPipeline) -> None:
        assert isinstance(pipeline.enrich("2001:db8::1"), FilteredResult)


class TestBulkAndDiagnostics:
    """Test bulk enrichment and diagnostic accessors."""

    def test_bulk_enrich(self, pipeline: IPEnrichmentPipeline) -> None:
        results = pipeline.bulk_enrich([SAMPLE_BUSINESS_IP, SAMPLE_ISP_IP, SAMPLE_BUSINESS_IP])

        assert set(results) == {SAMPLE_BUSINESS_IP, SAMPLE_ISP_IP}
        assert pipeline.get_stats()["cache_hits"] == 1

    def test_available_domains(self, pipeline: IPEnrichmentPipeline) -> None:
        assert pipeline.get_available_enrichment_domains() == ["microsoft.com"]

    def test_stats_counters(self, pipeline: IPEnrichmentPipeline) -> None:
        for ip in (SAMPLE_BUSINESS_IP, SAMPLE_FALLBACK_IP, SAMPLE_ISP_IP, SAMPLE_HOSTING_IP, SAMPLE_UNKNOWN_IP):
            pipeline.enrich(ip)

        stats = pipeline.get_stats()
        assert stats["no_data"] == 1
        assert stats["filtered_isp_hosting"] == 2
        assert stats["business_matches"] == 2
        assert stats["dataset_profiles"] == 1
        assert stats["fallback_profiles"] == 1
