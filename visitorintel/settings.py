"""Runtime configuration for the enrichment pipeline and visit tracker."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from .enrichment.cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS
from .enrichment.company_resolver import COMPANY_HIT_TTL, COMPANY_MISS_TTL
from .enrichment.pipeline import FILTERED_TTL, SUCCESS_TTL

_DEFAULT_DB_PATH = Path("visitorintel.sqlite")
DEFAULT_ENV_PREFIX = "VISITORINTEL_"


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _coerce_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _explicit(config: Mapping[str, Any] | None) -> dict[str, Any]:
    if not config:
        return {}
    return {k: v for k, v in config.items() if v is not None}


@dataclass(slots=True)
class DatabaseSettings:
    """Database configuration for the visit tracker."""

    url: str
    echo: bool = False
    pool_size: int | None = None
    pool_timeout: int = 30

    @classmethod
    def from_sources(
        cls,
        config: Mapping[str, Any] | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        file_config: Mapping[str, Any] | None = None,
    ) -> "DatabaseSettings":
        """Build settings from defaults, config file, environment variables and explicit values.

        Precedence order (highest to lowest):
        1. Explicit config mapping values
        2. Environment variables
        3. ``[database]`` table of the config file
        4. Default values
        """
        cfg: dict[str, Any] = {
            "url": f"sqlite:///{_DEFAULT_DB_PATH.resolve()}",
            "echo": False,
            "pool_size": None,
            "pool_timeout": 30,
        }
        known = set(cfg)
        cfg.update({k: v for k, v in _explicit(file_config).items() if k in known})
        explicit = _explicit(config)
        env = os.environ
        prefix = env_prefix.upper()

        url_override = env.get(f"{prefix}DB_URL")
        if url_override:
            cfg["url"] = url_override
        else:
            path_override = env.get(f"{prefix}DB_PATH")
            if path_override:
                cfg["url"] = f"sqlite:///{Path(path_override).resolve()}"

        cfg["echo"] = _coerce_bool(env.get(f"{prefix}DB_ECHO"), bool(cfg["echo"]))

        pool_size = env.get(f"{prefix}DB_POOL_SIZE")
        if pool_size is not None:
            coerced = _coerce_int(pool_size, -1)
            cfg["pool_size"] = coerced if coerced >= 0 else None

        cfg["pool_timeout"] = _coerce_int(env.get(f"{prefix}DB_POOL_TIMEOUT"), int(cfg["pool_timeout"]))

        cfg.update({k: v for k, v in explicit.items() if k in known})
        return cls(**cfg)


@dataclass(slots=True)
class EnrichmentSettings:
    """Cache sizing, TTLs and dataset locations for the enrichment core."""

    ip_dataset_path: Optional[Path] = None
    company_dataset_path: Optional[Path] = None
    cache_max_entries: int = DEFAULT_MAX_ENTRIES
    cache_default_ttl: int = DEFAULT_TTL_SECONDS
    success_ttl: int = SUCCESS_TTL
    filtered_ttl: int = FILTERED_TTL
    company_hit_ttl: int = COMPANY_HIT_TTL
    company_miss_ttl: int = COMPANY_MISS_TTL
    validate_input: bool = True

    _INT_FIELDS = (
        "cache_max_entries",
        "cache_default_ttl",
        "success_ttl",
        "filtered_ttl",
        "company_hit_ttl",
        "company_miss_ttl",
    )

    def __post_init__(self) -> None:
        """Reject non-positive sizes and TTLs."""
        for name in self._INT_FIELDS:
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.ip_dataset_path is not None:
            self.ip_dataset_path = Path(self.ip_dataset_path)
        if self.company_dataset_path is not None:
            self.company_dataset_path = Path(self.company_dataset_path)

    @classmethod
    def from_sources(
        cls,
        config: Mapping[str, Any] | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        file_config: Mapping[str, Any] | None = None,
    ) -> "EnrichmentSettings":
        """Build settings from defaults, config file, environment variables and explicit values.

        Precedence order (highest to lowest):
        1. Explicit config mapping values
        2. Environment variables (``<prefix>CACHE_MAX_ENTRIES``, ``<prefix>SUCCESS_TTL`` ...)
        3. ``[enrichment]`` table of the config file
        4. Default values
        """
        cfg: dict[str, Any] = {f.name: f.default for f in fields(cls)}
        known = set(cfg)
        cfg.update({k: v for k, v in _explicit(file_config).items() if k in known})

        env = os.environ
        prefix = env_prefix.upper()

        ip_path = env.get(f"{prefix}IP_DATASET")
        if ip_path:
            cfg["ip_dataset_path"] = Path(ip_path)
        company_path = env.get(f"{prefix}COMPANY_DATASET")
        if company_path:
            cfg["company_dataset_path"] = Path(company_path)

        for name in cls._INT_FIELDS:
            cfg[name] = _coerce_int(env.get(f"{prefix}{name.upper()}"), int(cfg[name]))

        cfg["validate_input"] = _coerce_bool(env.get(f"{prefix}VALIDATE_INPUT"), bool(cfg["validate_input"]))

        cfg.update({k: v for k, v in _explicit(config).items() if k in known})
        return cls(**cfg)


def load_database_settings(
    config: Mapping[str, Any] | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    file_config: Mapping[str, Any] | None = None,
) -> DatabaseSettings:
    """Convenience wrapper used by CLI entry points."""
    return DatabaseSettings.from_sources(config=config, env_prefix=env_prefix, file_config=file_config)


def load_enrichment_settings(
    config: Mapping[str, Any] | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    file_config: Mapping[str, Any] | None = None,
) -> EnrichmentSettings:
    """Convenience wrapper used by CLI entry points."""
    return EnrichmentSettings.from_sources(config=config, env_prefix=env_prefix, file_config=file_config)


__all__ = [
    "DatabaseSettings",
    "EnrichmentSettings",
    "load_database_settings",
    "load_enrichment_settings",
]
