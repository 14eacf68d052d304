"""JSON file gateway tests."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ratebook.db.base_gateway import TransientGateway
from ratebook.db.json_gateway import JsonFileGateway
from ratebook.store.errors import PersistenceError
from ratebook.store.models import Currency, RateRecord, RateType


def _record(rate_id: str, title: str, amount: float = 10.0) -> RateRecord:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return RateRecord(
        id=rate_id,
        title=title,
        amount=amount,
        currency=Currency.CHF,
        rate_type=RateType.STANDARD_RATE,
        created_at=stamp,
        created_by="tester",
        modified_at=stamp,
        modified_by="tester",
    )


def test_json_gateway_roundtrip(tmp_path: Path) -> None:
    gateway = JsonFileGateway(tmp_path / "rates.json")
    rows = [_record("a", "Consulting", 120.0), _record("b", "Support", 80.0)]

    result = gateway.export_rates(rows)

    assert result.written == 2
    assert gateway.import_rates() == rows
    payload = json.loads((tmp_path / "rates.json").read_text(encoding="utf-8"))
    assert isinstance(payload, list)
    assert payload[0]["createdAt"] == "2024-01-01T00:00:00+00:00"


def test_export_rewrites_the_whole_file(tmp_path: Path) -> None:
    gateway = JsonFileGateway(tmp_path / "rates.json")
    gateway.export_rates([_record("a", "Consulting"), _record("b", "Support")])
    gateway.export_rates([_record("b", "Support")])

    assert [row.id for row in gateway.import_rates()] == ["b"]


def test_export_leaves_no_temp_files(tmp_path: Path) -> None:
    gateway = JsonFileGateway(tmp_path / "rates.json")
    gateway.export_rates([_record("a", "Consulting")])

    assert sorted(p.name for p in tmp_path.iterdir()) == ["rates.json"]


def test_missing_or_empty_file_imports_nothing(tmp_path: Path) -> None:
    gateway = JsonFileGateway(tmp_path / "rates.json")
    assert gateway.import_rates() == []

    (tmp_path / "rates.json").write_text("  \n", encoding="utf-8")
    assert gateway.import_rates() == []


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"id": "a"}',
        "[1, 2]",
        '[{"id": "a", "title": "x", "amount": 1, "currency": "XYZ"}]',
    ],
)
def test_unreadable_file_raises_persistence_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "rates.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(PersistenceError):
        JsonFileGateway(path).import_rates()


def test_failed_write_keeps_previous_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "rates.json"
    gateway = JsonFileGateway(path)
    gateway.export_rates([_record("a", "Consulting")])
    before = path.read_text(encoding="utf-8")

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("ratebook.db.json_gateway.os.replace", _boom)
    with pytest.raises(PersistenceError, match="disk full"):
        gateway.export_rates([_record("b", "Support")])

    assert path.read_text(encoding="utf-8") == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["rates.json"]


def test_unserialisable_rows_keep_previous_file(tmp_path: Path) -> None:
    path = tmp_path / "rates.json"
    gateway = JsonFileGateway(path)
    gateway.export_rates([_record("a", "Consulting")])
    before = path.read_text(encoding="utf-8")
    broken = _record("b", "Support")
    broken.description = {"a"}  # type: ignore[assignment]

    with pytest.raises(PersistenceError, match="serialise"):
        gateway.export_rates([_record("a", "Consulting"), broken])

    assert path.read_text(encoding="utf-8") == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["rates.json"]


def test_non_persistent_gateway_never_touches_disk(tmp_path: Path) -> None:
    path = tmp_path / "rates.json"
    path.write_text(json.dumps([_record("a", "Consulting").to_dict()]), encoding="utf-8")
    gateway = JsonFileGateway(path, persistent=False)

    assert gateway.import_rates() == []
    assert gateway.export_rates([_record("b", "Support")]).written == 0
    assert json.loads(path.read_text(encoding="utf-8"))[0]["id"] == "a"


def test_ensure_schema_creates_parent_directories(tmp_path: Path) -> None:
    gateway = JsonFileGateway(tmp_path / "nested" / "dir" / "rates.json")
    gateway.ensure_schema()

    assert (tmp_path / "nested" / "dir").is_dir()


def test_transient_gateway() -> None:
    gateway = TransientGateway()

    assert gateway.persistent is False
    assert gateway.import_rates() == []
    assert gateway.export_rates([_record("a", "Consulting")]).written == 0
