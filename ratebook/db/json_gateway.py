"""JSON file gateway: the whole rate set lives in one JSON array."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Sequence

from ratebook.db import default_json_path
from ratebook.db.base_gateway import PersistenceGateway, PersistenceResult
from ratebook.store.errors import PersistenceError
from ratebook.store.models import RateRecord
from ratebook.utils.logger import get_logger

LOGGER = get_logger(__name__)


class JsonFileGateway(PersistenceGateway):
    """Gateway that checkpoints every rate into a single JSON file."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        persistent: bool = True,
        indent: int | None = 2,
    ) -> None:
        self.path = Path(path).expanduser().resolve() if path is not None else default_json_path()
        self.persistent = persistent
        self.indent = indent

    def ensure_schema(self) -> None:
        if self.persistent:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def import_rates(self) -> list[RateRecord]:
        if not self.persistent or not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to read {self.path}: {exc}") from exc
        if not raw.strip():
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise PersistenceError(f"{self.path} must contain a JSON array of rates")
        records: list[RateRecord] = []
        for position, item in enumerate(payload):
            if not isinstance(item, dict):
                raise PersistenceError(f"{self.path}: entry {position} is not an object")
            try:
                records.append(RateRecord.from_dict(item))
            except (TypeError, ValueError) as exc:
                raise PersistenceError(f"{self.path}: entry {position} is invalid: {exc}") from exc
        LOGGER.info("Read %s rates from %s", len(records), self.path)
        return records

    def export_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        if not self.persistent:
            return PersistenceResult()
        try:
            document = json.dumps(
                [row.to_dict() for row in rows], ensure_ascii=False, indent=self.indent
            )
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to serialise rates for {self.path}: {exc}") from exc
        # Write next to the target so os.replace stays on one filesystem.
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(document)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {self.path}: {exc}") from exc
        LOGGER.debug("Wrote %s rates to %s", len(rows), self.path)
        return PersistenceResult(written=len(rows))


__all__ = ["JsonFileGateway"]
