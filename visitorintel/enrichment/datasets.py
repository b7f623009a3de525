"""Static reference datasets backing the enrichment waterfall.

Both tables are JSON objects keyed by lookup value (IP string or company
domain). They are read once, parsed into immutable records and served by
exact-match lookup only; there is no CIDR or suffix matching.
"""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol, Union

from .errors import DatasetError
from .models import CompanyProfile, IPRecord

logger = logging.getLogger(__name__)

IP_DATASET_NAME = "ip_database.json"
COMPANY_DATASET_NAME = "company_enrichment.json"

PathLike = Union[str, Path]


class CompanyDataSource(Protocol):
    """Anything able to turn a domain into a company profile.

    The static dataset implements this; a vendor API client can replace it
    without touching the resolver or pipeline.
    """

    def lookup(self, domain: str) -> Optional[CompanyProfile]:
        """Return the profile for ``domain`` or None if unknown."""
        ...

    def domains(self) -> list[str]:
        """Return every domain the source can answer for."""
        ...


def _read_json_object(path: Optional[PathLike], bundled_name: str) -> dict[str, Any]:
    if path is None:
        text = resources.files("visitorintel").joinpath("data", bundled_name).read_text(encoding="utf-8")
        origin = f"bundled {bundled_name}"
    else:
        text = Path(path).read_text(encoding="utf-8")
        origin = str(path)

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DatasetError(f"{origin}: invalid JSON ({exc})") from exc
    if not isinstance(payload, dict):
        raise DatasetError(f"{origin}: expected a JSON object keyed by lookup value")

    logger.info("Loaded %d reference rows from %s", len(payload), origin)
    return payload


class StaticIPDataset:
    """Read-only IP → organisation table."""

    def __init__(self, records: Mapping[str, IPRecord]) -> None:
        self._records: Mapping[str, IPRecord] = MappingProxyType(dict(records))

    @classmethod
    def from_json(cls, path: Optional[PathLike] = None) -> StaticIPDataset:
        """Load the dataset from ``path`` or the bundled reference file.

        Raises:
            DatasetError: If the file is not a JSON object of valid IP records
        """
        raw = _read_json_object(path, IP_DATASET_NAME)
        records = {}
        for ip, payload in raw.items():
            if not isinstance(payload, dict):
                raise DatasetError(f"IP record {ip}: expected an object")
            records[ip] = IPRecord.from_mapping(ip, payload)
        return cls(records)

    def lookup(self, ip: str) -> Optional[IPRecord]:
        """Return the record for ``ip`` by exact string match."""
        return self._records.get(ip)

    def ips(self) -> list[str]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, ip: object) -> bool:
        return ip in self._records


class StaticCompanyDataset:
    """Read-only domain → company profile table implementing CompanyDataSource."""

    def __init__(self, profiles: Mapping[str, CompanyProfile]) -> None:
        self._profiles: Mapping[str, CompanyProfile] = MappingProxyType(dict(profiles))

    @classmethod
    def from_json(cls, path: Optional[PathLike] = None) -> StaticCompanyDataset:
        """Load the dataset from ``path`` or the bundled reference file.

        Raises:
            DatasetError: If the file is not a JSON object of valid company entries
        """
        raw = _read_json_object(path, COMPANY_DATASET_NAME)
        profiles = {}
        for domain, payload in raw.items():
            if not isinstance(payload, dict):
                raise DatasetError(f"company profile {domain}: expected an object")
            key = domain.strip().lower()
            profiles[key] = CompanyProfile.from_mapping(key, payload)
        return cls(profiles)

    def lookup(self, domain: str) -> Optional[CompanyProfile]:
        return self._profiles.get(domain)

    def domains(self) -> list[str]:
        return list(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, domain: object) -> bool:
        return domain in self._profiles


def load_ip_dataset(path: Optional[PathLike] = None) -> StaticIPDataset:
    """Convenience wrapper used by the factory and CLI."""
    return StaticIPDataset.from_json(path)


def load_company_dataset(path: Optional[PathLike] = None) -> StaticCompanyDataset:
    """Convenience wrapper used by the factory and CLI."""
    return StaticCompanyDataset.from_json(path)


__all__ = [
    "CompanyDataSource",
    "StaticIPDataset",
    "StaticCompanyDataset",
    "load_ip_dataset",
    "load_company_dataset",
]
