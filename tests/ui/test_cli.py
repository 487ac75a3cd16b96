from __future__ import annotations

import json
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import pytest

from parcelbook.domain.errors import (
    DuplicateError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
    RefreshIneligibleError,
)
from parcelbook.domain.model import ImportSource, PropertyInput, SearchResult
from parcelbook.domain.reconciliation import MatchResult
from parcelbook.ui import cli as cli_module
from tests.helpers.properties import make_property

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def quiet_entry_point(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "load_dotenv", lambda: None)
    monkeypatch.setattr(cli_module, "signal", lambda *_: None)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)
    code = excinfo.value.code
    return code if isinstance(code, int) else 1


def test_create_prints_record_as_json(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    owner = uuid4()
    captured: dict[str, object] = {}

    def fake_create(data: PropertyInput, *, owner_id: UUID) -> object:
        captured["data"] = data
        captured["owner_id"] = owner_id
        return make_property(owner_id, owner="Jane Doe", tags={"rental"})

    monkeypatch.setattr(cli_module, "create_property", fake_create)

    code = _run(
        [
            "create",
            "--user-id",
            str(owner),
            "--address",
            "123 Main St",
            "--apn",
            "050-183-176",
            "--tag",
            "rental",
            "--notes",
            "corner lot",
        ]
    )

    assert code == 0
    data = captured["data"]
    assert isinstance(data, PropertyInput)
    assert data.apn == "050-183-176"
    assert data.tags == frozenset({"rental"})
    assert data.user_notes == "corner lot"
    assert captured["owner_id"] == owner
    payload = json.loads(capsys.readouterr().out)
    assert payload["owner"] == "Jane Doe"
    assert payload["tags"] == ["rental"]
    assert payload["owner_id"] == str(owner)


@pytest.mark.parametrize(
    ("error", "expected_code"),
    [
        (DuplicateError("123"), cli_module.EXIT_DUPLICATE),
        (NotFoundError(uuid4()), cli_module.EXIT_NOT_FOUND),
        (ProviderUnavailableError("down"), cli_module.EXIT_PROVIDER_UNAVAILABLE),
        (ProviderError("Regrid API error (503)", status=503), cli_module.EXIT_PROVIDER_UNAVAILABLE),
        (RefreshIneligibleError(uuid4()), cli_module.EXIT_INVALID_INPUT),
        (RuntimeError("unexpected"), cli_module.EXIT_ERROR),
    ],
)
def test_refresh_errors_map_to_exit_codes(
    monkeypatch: pytest.MonkeyPatch, error: Exception, expected_code: int
) -> None:
    def fake_refresh(*_: object, **__: object) -> object:
        raise error

    monkeypatch.setattr(cli_module, "refresh_property", fake_refresh)

    code = _run(["refresh", "--user-id", str(uuid4()), "--property-id", str(uuid4())])

    assert code == expected_code


def test_invalid_user_id_is_invalid_input() -> None:
    assert _run(["check", "--user-id", "not-a-uuid", "--apn", "1"]) == cli_module.EXIT_INVALID_INPUT


def test_check_reports_match(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    owner = uuid4()
    monkeypatch.setattr(
        cli_module,
        "check_duplicate",
        lambda apn, *, owner_id: MatchResult(found=True, record=make_property(owner_id, apn=apn)),
    )

    assert _run(["check", "--user-id", str(owner), "--apn", "777"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["exists"] is True
    assert payload["property"]["apn"] == "777"


def test_bulk_combines_apns_and_rows_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: dict[str, object] = {}

    def fake_bulk(rows: list[dict[str, object]], **kwargs: object) -> dict[str, object]:
        captured["rows"] = rows
        captured.update(kwargs)
        return {"created": [], "errors": []}

    monkeypatch.setattr(cli_module, "bulk_create", fake_bulk)
    rows_file = tmp_path / "rows.json"
    rows_file.write_text(json.dumps([{"apn": "3", "address": "3 Main"}]), encoding="utf-8")

    code = _run(
        [
            "bulk",
            "--user-id",
            str(uuid4()),
            "--apn",
            "1",
            "--apn",
            "2",
            "--rows",
            str(rows_file),
            "--source",
            "csv",
            "--chunk-size",
            "2",
        ]
    )

    assert code == 0
    assert captured["rows"] == [{"apn": "1"}, {"apn": "2"}, {"apn": "3", "address": "3 Main"}]
    assert captured["source"] == ImportSource.CSV
    assert captured["chunk_size"] == 2


def test_bulk_without_rows_is_invalid_input() -> None:
    assert _run(["bulk", "--user-id", str(uuid4())]) == cli_module.EXIT_INVALID_INPUT


def test_search_prints_candidates(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_search(text: str, **kwargs: object) -> list[SearchResult]:
        assert kwargs == {"city": "Reno", "region": "NV", "limit": 3}
        return [SearchResult(external_id="r-1", parcel_number="1", address=text, score=0.9)]

    monkeypatch.setattr(cli_module, "search_addresses", fake_search)

    code = _run(["search", "--address", "1 Oak", "--city", "Reno", "--state", "NV", "--limit", "3"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == [
        {
            "external_id": "r-1",
            "parcel_number": "1",
            "address": "1 Oak",
            "city": None,
            "state": None,
            "postal_code": None,
            "score": 0.9,
        }
    ]


def test_search_provider_failure_is_reported_as_unavailable(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def fake_search(*_: object, **__: object) -> list[SearchResult]:
        raise ProviderError("Regrid API error (503) on /search", status=503)

    monkeypatch.setattr(cli_module, "search_addresses", fake_search)

    code = _run(["search", "--address", "1 Oak"])

    assert code == cli_module.EXIT_PROVIDER_UNAVAILABLE
    assert "Provider unavailable" in caplog.text
    assert "Fatal error" not in caplog.text
