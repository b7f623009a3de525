"""Shared pytest fixtures for visitorintel tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from visitorintel.db import create_engine_from_settings, create_session_maker, init_database
from visitorintel.enrichment.cache import ExpiringCache
from visitorintel.enrichment.company_resolver import CompanyResolver
from visitorintel.enrichment.datasets import StaticCompanyDataset, StaticIPDataset
from visitorintel.enrichment.pipeline import IPEnrichmentPipeline
from visitorintel.settings import DatabaseSettings

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.fixtures.enrichment_fixtures import (  # noqa: E402
    FakeClock,
    build_company_dataset,
    build_ip_dataset,
)


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Controllable time source starting at a fixed epoch."""
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ExpiringCache:
    """Fresh cache per test driven by the fake clock."""
    return ExpiringCache(max_entries=100, clock=clock)


# ============================================================================
# Dataset and Pipeline Fixtures
# ============================================================================


@pytest.fixture
def ip_dataset() -> StaticIPDataset:
    return build_ip_dataset()


@pytest.fixture
def company_dataset() -> StaticCompanyDataset:
    return build_company_dataset()


@pytest.fixture
def resolver(cache: ExpiringCache, company_dataset: StaticCompanyDataset) -> CompanyResolver:
    return CompanyResolver(cache=cache, source=company_dataset)


@pytest.fixture
def pipeline(cache: ExpiringCache, ip_dataset: StaticIPDataset, resolver: CompanyResolver) -> IPEnrichmentPipeline:
    """Pipeline over the small fixture datasets with an isolated cache."""
    return IPEnrichmentPipeline(cache=cache, ip_dataset=ip_dataset, resolver=resolver)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_engine() -> Iterator[Engine]:
    """In-memory SQLite engine with all tables created."""
    engine = create_engine_from_settings(DatabaseSettings(url="sqlite:///:memory:"))
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return create_session_maker(db_engine)
