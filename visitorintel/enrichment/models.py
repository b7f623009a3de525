"""Data models for visitor IP enrichment.

This module provides the reference records loaded from the static datasets,
the company profiles produced by the resolver, and the tagged enrichment
results returned by the pipeline. All of them are immutable so a cached
value can be handed to any number of callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from .errors import DatasetError

REASON_NO_DATA = "No data found for this IP."
REASON_ISP_OR_HOSTING = "ISP or Hosting"


class IPType(str, Enum):
    """Organisation types carried by the IP reference dataset.

    Attributes:
        BUSINESS: IP attributable to a company worth enriching
        ISP: Consumer or mobile access network
        HOSTING: Datacenter, cloud or hosting provider
    """

    BUSINESS = "business"
    ISP = "isp"
    HOSTING = "hosting"

    @property
    def is_filtered(self) -> bool:
        """True for traffic types that carry no business value."""
        return self in (IPType.ISP, IPType.HOSTING)


class EnrichmentSource(str, Enum):
    """Where a company profile came from."""

    DATASET = "dataset"
    FALLBACK = "fallback"


def _require(payload: Mapping[str, Any], key: str, context: str) -> Any:
    try:
        value = payload[key]
    except KeyError as exc:
        raise DatasetError(f"{context}: missing field {key!r}") from exc
    if value is None:
        raise DatasetError(f"{context}: field {key!r} is null")
    return value


@dataclass(slots=True, frozen=True)
class IPRecord:
    """Immutable row of the IP reference dataset.

    Attributes:
        ip: Exact IP string used as the lookup key
        asn: Autonomous system number as published (e.g. "AS8075")
        as_name: Name of the organisation owning the AS
        as_domain: Primary domain of that organisation
        ip_type: Organisation type used for filtering
    """

    ip: str
    asn: str
    as_name: str
    as_domain: str
    ip_type: IPType

    @classmethod
    def from_mapping(cls, ip: str, payload: Mapping[str, Any]) -> IPRecord:
        """Build a record from one dataset entry.

        Args:
            ip: Dataset key; takes precedence over an ``ip`` field in the payload
            payload: Raw mapping with ``asn``, ``as_name``, ``as_domain`` and ``type``

        Returns:
            Parsed IPRecord

        Raises:
            DatasetError: If a field is missing or ``type`` is not a known IPType
        """
        context = f"IP record {ip}"
        raw_type = str(_require(payload, "type", context)).strip().lower()
        try:
            ip_type = IPType(raw_type)
        except ValueError as exc:
            raise DatasetError(f"{context}: unsupported type {raw_type!r}") from exc

        return cls(
            ip=ip,
            asn=str(_require(payload, "asn", context)),
            as_name=str(_require(payload, "as_name", context)),
            as_domain=str(_require(payload, "as_domain", context)).strip().lower(),
            ip_type=ip_type,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the record using the dataset's field names."""
        return {
            "ip": self.ip,
            "asn": self.asn,
            "as_name": self.as_name,
            "as_domain": self.as_domain,
            "type": self.ip_type.value,
        }


@dataclass(slots=True, frozen=True)
class CompanyProfile:
    """Enriched company information attached to a business IP."""

    company_name: str
    domain: str
    employees: Union[int, str]
    industry: str
    headquarters: str
    revenue: str
    website: str
    enrichment_source: EnrichmentSource = EnrichmentSource.DATASET

    @classmethod
    def from_mapping(cls, domain: str, payload: Mapping[str, Any]) -> CompanyProfile:
        """Build a dataset-sourced profile from one company dataset entry.

        Only ``company_name`` is mandatory; the remaining descriptive fields
        default to the same placeholders used for synthesized profiles.

        Raises:
            DatasetError: If ``company_name`` is missing
        """
        context = f"company profile {domain}"
        return cls(
            company_name=str(_require(payload, "company_name", context)),
            domain=str(payload.get("domain") or domain).strip().lower(),
            employees=payload.get("employees", "N/A"),
            industry=str(payload.get("industry") or "Unknown"),
            headquarters=str(payload.get("headquarters") or "Unknown"),
            revenue=str(payload.get("revenue") or "N/A"),
            website=str(payload.get("website") or f"https://www.{domain}"),
            enrichment_source=EnrichmentSource.DATASET,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the profile as a JSON-serialisable dictionary."""
        return {
            "company_name": self.company_name,
            "domain": self.domain,
            "employees": self.employees,
            "industry": self.industry,
            "headquarters": self.headquarters,
            "revenue": self.revenue,
            "website": self.website,
            "enrichment_source": self.enrichment_source.value,
        }


@dataclass(slots=True, frozen=True)
class FilteredResult:
    """Verdict for traffic that carries no business value."""

    reason: str

    @property
    def status(self) -> str:
        return "filtered"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "reason": self.reason}


@dataclass(slots=True, frozen=True)
class SuccessResult:
    """Verdict for a business IP together with its company profile."""

    ip_record: IPRecord
    company_profile: CompanyProfile

    @property
    def status(self) -> str:
        return "success"

    def to_dict(self) -> dict[str, Any]:
        data = self.ip_record.to_dict()
        data["company"] = self.company_profile.to_dict()
        return {"status": self.status, "data": data}


EnrichmentResult = Union[FilteredResult, SuccessResult]


__all__ = [
    "REASON_NO_DATA",
    "REASON_ISP_OR_HOSTING",
    "IPType",
    "EnrichmentSource",
    "IPRecord",
    "CompanyProfile",
    "FilteredResult",
    "SuccessResult",
    "EnrichmentResult",
]
