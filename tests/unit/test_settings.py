"""Unit tests for settings module."""

from __future__ import annotations

from pathlib import Path

import pytest

from visitorintel.settings import (
    DatabaseSettings,
    EnrichmentSettings,
    _coerce_bool,
    _coerce_int,
    load_database_settings,
    load_enrichment_settings,
)

ENV_VARS = [
    "VISITORINTEL_DB_URL",
    "VISITORINTEL_DB_PATH",
    "VISITORINTEL_DB_ECHO",
    "VISITORINTEL_DB_POOL_SIZE",
    "VISITORINTEL_DB_POOL_TIMEOUT",
    "VISITORINTEL_IP_DATASET",
    "VISITORINTEL_COMPANY_DATASET",
    "VISITORINTEL_CACHE_MAX_ENTRIES",
    "VISITORINTEL_SUCCESS_TTL",
    "VISITORINTEL_FILTERED_TTL",
    "VISITORINTEL_VALIDATE_INPUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestCoercionHelpers:
    """Test the helper functions for type coercion."""

    def test_coerce_bool_true_values(self) -> None:
        """Test boolean coercion with truthy string values."""
        for value in ["1", "true", "TRUE", "t", "yes", "Y", "on"]:
            assert _coerce_bool(value, False) is True, f"Expected {value} to coerce to True"

    def test_coerce_bool_false_values(self) -> None:
        for value in ["0", "false", "F", "no", "n", "OFF"]:
            assert _coerce_bool(value, True) is False, f"Expected {value} to coerce to False"

    def test_coerce_bool_invalid_values_use_default(self) -> None:
        for value in ["maybe", "2", ""]:
            assert _coerce_bool(value, True) is True
            assert _coerce_bool(value, False) is False

    def test_coerce_int(self) -> None:
        """Test integer coercion with valid and invalid values."""
        assert _coerce_int(" 42 ", 0) == 42
        assert _coerce_int("12.5", 7) == 7
        assert _coerce_int(None, 99) == 99


class TestDatabaseSettings:
    """Test DatabaseSettings source precedence."""

    def test_defaults(self) -> None:
        settings = DatabaseSettings.from_sources()

        assert settings.url.startswith("sqlite:///")
        assert settings.url.endswith("visitorintel.sqlite")
        assert settings.echo is False
        assert settings.pool_size is None
        assert settings.pool_timeout == 30

    def test_env_overrides_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VISITORINTEL_DB_URL", "postgresql://env/db")
        monkeypatch.setenv("VISITORINTEL_DB_ECHO", "true")

        settings = DatabaseSettings.from_sources(file_config={"url": "sqlite:///file.sqlite", "pool_timeout": 5})

        assert settings.url == "postgresql://env/db"
        assert settings.echo is True
        assert settings.pool_timeout == 5

    def test_db_path_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("VISITORINTEL_DB_PATH", str(tmp_path / "visits.sqlite"))
        settings = DatabaseSettings.from_sources()
        assert settings.url == f"sqlite:///{(tmp_path / 'visits.sqlite').resolve()}"

    def test_explicit_config_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VISITORINTEL_DB_URL", "postgresql://env/db")
        settings = load_database_settings(config={"url": "sqlite:///:memory:", "unknown": 1})
        assert settings.url == "sqlite:///:memory:"

    def test_none_values_in_config_are_ignored(self) -> None:
        settings = load_database_settings(config={"url": None}, file_config={"url": "sqlite:///file.sqlite"})
        assert settings.url == "sqlite:///file.sqlite"

    def test_negative_pool_size_env_means_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VISITORINTEL_DB_POOL_SIZE", "-1")
        assert DatabaseSettings.from_sources().pool_size is None

    def test_custom_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VI_TEST_DB_URL", "sqlite:///custom.sqlite")
        settings = DatabaseSettings.from_sources(env_prefix="vi_test_")
        assert settings.url == "sqlite:///custom.sqlite"


class TestEnrichmentSettings:
    """Test EnrichmentSettings defaults, validation and precedence."""

    def test_defaults(self) -> None:
        settings = EnrichmentSettings()

        assert settings.cache_max_entries == 10_000
        assert settings.cache_default_ttl == 86_400
        assert settings.success_ttl == 86_400
        assert settings.filtered_ttl == 3_600
        assert settings.company_hit_ttl == 86_400
        assert settings.company_miss_ttl == 3_600
        assert settings.validate_input is True
        assert settings.ip_dataset_path is None

    @pytest.mark.parametrize("field_name", ["cache_max_entries", "success_ttl", "filtered_ttl"])
    def test_non_positive_values_rejected(self, field_name: str) -> None:
        with pytest.raises(ValueError, match=field_name):
            EnrichmentSettings(**{field_name: 0})

    def test_paths_are_converted(self) -> None:
        settings = EnrichmentSettings(ip_dataset_path="data/ips.json")  # type: ignore[arg-type]
        assert settings.ip_dataset_path == Path("data/ips.json")

    def test_file_env_and_explicit_precedence(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VISITORINTEL_SUCCESS_TTL", "600")
        monkeypatch.setenv("VISITORINTEL_VALIDATE_INPUT", "no")
        monkeypatch.setenv("VISITORINTEL_IP_DATASET", "/srv/ips.json")

        settings = load_enrichment_settings(
            config={"filtered_ttl": 60},
            file_config={"success_ttl": 300, "filtered_ttl": 120, "cache_max_entries": 500},
        )

        assert settings.cache_max_entries == 500
        assert settings.success_ttl == 600
        assert settings.filtered_ttl == 60
        assert settings.validate_input is False
        assert settings.ip_dataset_path == Path("/srv/ips.json")

    def test_invalid_env_int_keeps_lower_layer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VISITORINTEL_CACHE_MAX_ENTRIES", "lots")
        settings = EnrichmentSettings.from_sources(file_config={"cache_max_entries": 250})
        assert settings.cache_max_entries == 250

    def test_unknown_file_keys_ignored(self) -> None:
        settings = EnrichmentSettings.from_sources(file_config={"redis_url": "redis://localhost"})
        assert settings == EnrichmentSettings()
