"""Mongo gateway tests that monkeypatch pymongo primitives."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from ratebook.db import mongo_gateway as mongo_module
from ratebook.store.errors import PersistenceError
from ratebook.store.models import Currency, RateRecord


class _DummyReplaceOne:
    def __init__(self, filter: Dict[str, Any], replacement: Dict[str, Any], *, upsert: bool) -> None:
        assert upsert is True
        self.filter = filter
        self.replacement = replacement


class _DummyCollection:
    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.fail = False

    def __bool__(self) -> bool:  # pragma: no cover - behavioural parity with pymongo
        raise NotImplementedError("Collection truthiness is undefined")

    def bulk_write(self, operations: List[_DummyReplaceOne], ordered: bool) -> None:
        assert ordered is False
        if self.fail:
            raise RuntimeError("write failed")
        for op in operations:
            assert isinstance(op, _DummyReplaceOne)
            self.docs[op.filter["_id"]] = dict(op.replacement)

    def delete_many(self, query: Dict[str, Dict[str, List[str]]]) -> None:
        keep = set(query["_id"]["$nin"])
        self.docs = {key: doc for key, doc in self.docs.items() if key in keep}

    def find(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        assert query == {}
        if self.fail:
            raise RuntimeError("read failed")
        return [dict(doc) for doc in self.docs.values()]


class _DummyDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, _DummyCollection] = {}

    def __getitem__(self, name: str) -> _DummyCollection:
        return self.collections.setdefault(name, _DummyCollection())


class _DummyClient:
    def __init__(self, url: str) -> None:
        self.url = url
        self.admin = self
        self.closed = False
        self.databases: Dict[str, _DummyDatabase] = {}

    def __getitem__(self, name: str) -> _DummyDatabase:
        return self.databases.setdefault(name, _DummyDatabase())

    def get_default_database(self) -> _DummyDatabase:
        return self.__getitem__("default")

    def command(self, name: str) -> None:
        assert name == "ping"

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def patch_mongo_client(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(mongo_module, "MongoClient", _DummyClient)
    monkeypatch.setattr(mongo_module, "PyMongoError", RuntimeError)
    monkeypatch.setattr(mongo_module, "ReplaceOne", _DummyReplaceOne)


def _record(rate_id: str, title: str) -> RateRecord:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return RateRecord(
        id=rate_id,
        title=title,
        amount=42.0,
        currency=Currency.EUR,
        created_at=stamp,
        created_by="alice",
        modified_at=stamp,
        modified_by="alice",
    )


def test_mongo_gateway_roundtrip() -> None:
    gateway = mongo_module.MongoGateway("mongodb://example.com/", database="billing")
    gateway.ensure_schema()

    rows = [_record("a", "Consulting"), _record("b", "Support")]
    assert gateway.export_rates(rows).written == 2
    assert sorted(gateway.import_rates(), key=lambda row: row.id) == rows

    collection = gateway._collection
    assert set(collection.docs) == {"a", "b"}
    assert "id" not in collection.docs["a"]

    gateway.close()


def test_mongo_gateway_removes_deleted_rates() -> None:
    gateway = mongo_module.MongoGateway("mongodb://example.com/billing")
    gateway.export_rates([_record("a", "Consulting"), _record("b", "Support")])
    gateway.export_rates([_record("b", "Support")])

    assert [row.id for row in gateway.import_rates()] == ["b"]

    gateway.export_rates([])
    assert gateway.import_rates() == []


def test_mongo_gateway_wraps_driver_errors() -> None:
    gateway = mongo_module.MongoGateway("mongodb://example.com/", database="billing")
    gateway._collection.fail = True

    with pytest.raises(PersistenceError, match="write failed"):
        gateway.export_rates([_record("a", "Consulting")])
    with pytest.raises(PersistenceError, match="read failed"):
        gateway.import_rates()


def test_non_persistent_mongo_gateway_skips_io() -> None:
    gateway = mongo_module.MongoGateway("mongodb://example.com/", database="billing", persistent=False)
    gateway._collection.fail = True

    assert gateway.import_rates() == []
    assert gateway.export_rates([_record("a", "Consulting")]).written == 0
