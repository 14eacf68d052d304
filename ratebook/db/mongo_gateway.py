"""MongoDB gateway."""

from __future__ import annotations

from typing import Any, Sequence

from pymongo import MongoClient, ReplaceOne
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ratebook.db.base_gateway import PersistenceGateway, PersistenceResult
from ratebook.store.errors import PersistenceError
from ratebook.store.models import RateRecord
from ratebook.utils.logger import get_logger

LOGGER = get_logger(__name__)


class MongoGateway(PersistenceGateway):
    """Gateway that keeps one document per rate, keyed by the rate id."""

    def __init__(
        self,
        url: str,
        *,
        database: str | None = None,
        collection: str = "rates",
        persistent: bool = True,
    ) -> None:
        self.url = url
        self.persistent = persistent
        self._client = MongoClient(url)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._collection: Collection = db[collection]

    def ensure_schema(self) -> None:
        if not self.persistent:
            return None
        try:
            LOGGER.info("Ensuring MongoDB rates collection is reachable")
            self._client.admin.command("ping")
        except PyMongoError as exc:  # pragma: no cover - error path
            raise PersistenceError(f"Failed to reach MongoDB: {exc}") from exc

    def import_rates(self) -> list[RateRecord]:
        if not self.persistent:
            return []
        try:
            docs = list(self._collection.find({}))
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to read MongoDB rates: {exc}") from exc
        try:
            records = [RateRecord.from_dict(_from_document(doc)) for doc in docs]
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"MongoDB holds an invalid rate: {exc}") from exc
        LOGGER.info("Read %s rates from MongoDB", len(records))
        return records

    def export_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        if not self.persistent:
            return PersistenceResult()
        operations = []
        for row in rows:
            doc = _to_document(row)
            operations.append(ReplaceOne({"_id": doc["_id"]}, doc, upsert=True))
        try:
            if operations:
                self._collection.bulk_write(operations, ordered=False)
            self._collection.delete_many({"_id": {"$nin": [row.id for row in rows]}})
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to write MongoDB rates: {exc}") from exc
        LOGGER.debug("Wrote %s rates to MongoDB", len(operations))
        return PersistenceResult(written=len(operations))

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


def _to_document(record: RateRecord) -> dict[str, Any]:
    doc = record.to_dict()
    doc["_id"] = doc.pop("id")
    return doc


def _from_document(doc: dict[str, Any]) -> dict[str, Any]:
    payload = dict(doc)
    payload["id"] = payload.pop("_id", payload.get("id"))
    return payload


__all__ = ["MongoGateway"]
