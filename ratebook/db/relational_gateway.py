"""SQL gateway (SQLite/Postgres/MySQL) built on SQLAlchemy."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from ratebook.db.base_gateway import PersistenceGateway, PersistenceResult
from ratebook.store.errors import PersistenceError
from ratebook.store.models import RateRecord
from ratebook.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - type checker helper
    from sqlalchemy.engine import Engine

LOGGER = get_logger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id VARCHAR(64) NOT NULL PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    amount DOUBLE PRECISION NULL,
    currency VARCHAR(8) NULL,
    rate_type VARCHAR(32) NULL,
    description TEXT NULL,
    created_at VARCHAR(40) NULL,
    created_by VARCHAR(255) NULL,
    modified_at VARCHAR(40) NULL,
    modified_by VARCHAR(255) NULL
);
"""

DELETE_ALL_SQL = "DELETE FROM {table}"

INSERT_SQL = """
INSERT INTO {table}(
    id,
    title,
    amount,
    currency,
    rate_type,
    description,
    created_at,
    created_by,
    modified_at,
    modified_by
)
VALUES(
    :id,
    :title,
    :amount,
    :currency,
    :rate_type,
    :description,
    :created_at,
    :created_by,
    :modified_at,
    :modified_by
)
"""

SELECT_SQL = "SELECT * FROM {table} ORDER BY id"


class RelationalGateway(PersistenceGateway):
    """Checkpoints the rate set into one SQL table.

    Every export replaces the table contents inside a single transaction.
    """

    def __init__(self, url: str, *, table: str = "rates", persistent: bool = True) -> None:
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.url = url
        self.table = table
        self.persistent = persistent
        self._engine_instance: Engine | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = create_engine(self.url, future=True)
        return self._engine_instance

    def ensure_schema(self) -> None:
        if not self.persistent:
            return None
        try:
            with self._get_engine().begin() as connection:
                LOGGER.info("Ensuring %s schema exists", self.table)
                connection.execute(text(SCHEMA_SQL.format(table=self.table)))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to ensure {self.table} schema: {exc}") from exc

    def import_rates(self) -> list[RateRecord]:
        if not self.persistent:
            return []
        try:
            with self._get_engine().connect() as connection:
                rows = connection.execute(text(SELECT_SQL.format(table=self.table))).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read {self.table}: {exc}") from exc
        try:
            records = [_row_to_record(row._mapping) for row in rows]
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"{self.table} holds an invalid rate: {exc}") from exc
        LOGGER.info("Read %s rates from %s", len(records), self.table)
        return records

    def export_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        if not self.persistent:
            return PersistenceResult()
        params = [_record_to_params(row) for row in rows]
        try:
            with self._get_engine().begin() as connection:
                connection.execute(text(DELETE_ALL_SQL.format(table=self.table)))
                if params:
                    connection.execute(text(INSERT_SQL.format(table=self.table)), params)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to write {self.table}: {exc}") from exc
        LOGGER.debug("Wrote %s rates to %s", len(params), self.table)
        return PersistenceResult(written=len(params))

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


def _record_to_params(record: RateRecord) -> dict[str, Any]:
    payload = record.to_dict()
    return {
        "id": payload["id"],
        "title": payload["title"],
        "amount": payload["amount"],
        "currency": payload["currency"],
        "rate_type": payload["type"],
        "description": payload["description"],
        "created_at": payload["createdAt"],
        "created_by": payload["createdBy"],
        "modified_at": payload["modifiedAt"],
        "modified_by": payload["modifiedBy"],
    }


def _row_to_record(mapping: Mapping[str, Any]) -> RateRecord:
    return RateRecord.from_dict(
        {
            "id": mapping["id"],
            "title": mapping["title"],
            "amount": mapping["amount"],
            "currency": mapping["currency"],
            "type": mapping["rate_type"],
            "description": mapping["description"],
            "createdAt": mapping["created_at"],
            "createdBy": mapping["created_by"],
            "modifiedAt": mapping["modified_at"],
            "modifiedBy": mapping["modified_by"],
        }
    )


__all__ = ["RelationalGateway"]
