from __future__ import annotations

from pathlib import Path

import pytest

from parcelbook.config import (
    MAX_SEARCH_RESULTS,
    ConfigurationError,
    MissingConfigurationError,
    get_batch_config,
    get_database_config,
    get_provider_config,
    require_env_vars,
)
from parcelbook.config.provider import REGRID_BASE_URL, REGRID_TIMEOUT_SECONDS


def test_require_env_vars_returns_stripped_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  value ")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_provider_config_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REGRID_API_TOKEN", raising=False)

    with pytest.raises(ConfigurationError):
        get_provider_config()


def test_provider_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGRID_API_TOKEN", "secret")
    monkeypatch.delenv("REGRID_BASE_URL", raising=False)

    config = get_provider_config()

    assert config.token == "secret"
    assert config.resilience.base_url == REGRID_BASE_URL
    assert config.resilience.timeout_seconds == REGRID_TIMEOUT_SECONDS
    assert config.resilience.retry.total == 0
    assert config.resilience.cache is None
    assert config.search_resilience.cache is not None
    assert config.search_resilience.cache.should_cache is not None
    assert config.search_resilience.cache.should_cache({"results": [{"id": 1}]})
    assert not config.search_resilience.cache.should_cache({"results": []})
    assert MAX_SEARCH_RESULTS == 25


def test_provider_base_url_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGRID_API_TOKEN", "secret")
    monkeypatch.setenv("REGRID_BASE_URL", "https://sandbox.example/api/v2")

    config = get_provider_config()

    assert config.resilience.base_url == "https://sandbox.example/api/v2"
    assert config.search_resilience.base_url == "https://sandbox.example/api/v2"


def test_batch_chunk_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PARCELBOOK_BATCH_CHUNK_SIZE", raising=False)
    assert get_batch_config().chunk_size == 5

    monkeypatch.setenv("PARCELBOOK_BATCH_CHUNK_SIZE", "12")
    assert get_batch_config().chunk_size == 12


@pytest.mark.parametrize("value", ["0", "-3", "five"])
def test_batch_chunk_size_rejects_bad_values(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("PARCELBOOK_BATCH_CHUNK_SIZE", value)

    with pytest.raises(ConfigurationError):
        get_batch_config()


def test_database_uri_defaults_to_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("PARCELBOOK_DATA_DIR", str(tmp_path))

    config = get_database_config()

    assert config.uri == f"sqlite+aiosqlite:///{tmp_path.resolve() / 'parcelbook.db'}"
    assert Path(tmp_path).is_dir()


def test_database_uri_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+aiosqlite:///override.db")

    assert get_database_config().uri == "sqlite+aiosqlite:///override.db"
