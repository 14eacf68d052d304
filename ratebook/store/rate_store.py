"""The rate index: CRUD, validation, audit fields and paginated listings."""

from __future__ import annotations

import math
import threading
import uuid
from datetime import datetime
from decimal import Decimal
from numbers import Real
from typing import Any, Callable, Iterator

from ratebook.db.base_gateway import PersistenceGateway
from ratebook.store.errors import (
    DuplicateError,
    InternalError,
    NotAllowedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ratebook.store.models import Currency, RateRecord, RateType
from ratebook.utils.logger import get_logger
from ratebook.utils.timestamps import parse_timestamp, utc_now

LOGGER = get_logger(__name__)

DEFAULT_PAGE_SIZE = 25


def _sort_key(record: RateRecord) -> tuple[str, str, str]:
    return (record.title.casefold(), record.title, record.id)


class RateStore:
    """Owns the rate index and keeps its gateway in sync.

    The index is loaded from ``gateway`` once, at construction. A single
    re-entrant lock serialises every index access together with the export
    that follows a mutation. Stored records are private; callers always
    receive copies.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.gateway = gateway
        self._clock = clock or utc_now
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._lock = threading.RLock()
        gateway.ensure_schema()
        index: dict[str, RateRecord] = {}
        for record in gateway.import_rates():
            if not record.id or not isinstance(record.id, str):
                raise PersistenceError("Imported rate without an id")
            if record.id in index:
                raise PersistenceError(f"Imported rate <{record.id}> twice", rate_id=record.id)
            try:
                record.amount = self._validate(record, record.id)
            except ValidationError as exc:
                raise PersistenceError(
                    f"Imported rate <{record.id}> is invalid: {exc}", rate_id=record.id
                ) from exc
            index[record.id] = record
        self._index: dict[str, RateRecord] = index
        LOGGER.info("%s rates imported.", len(self._index))

    @property
    def persistent(self) -> bool:
        return self.gateway.persistent

    def __len__(self) -> int:
        return self.count()

    def count(self) -> int:
        with self._lock:
            return len(self._index)

    def snapshot(self) -> list[RateRecord]:
        """Return copies of every rate in listing order."""

        with self._lock:
            return [record.copy() for record in self._sorted()]

    def list(
        self,
        query: str | None = None,
        query_type: str | None = None,
        position: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> list[RateRecord]:
        """Return the page ``[position, position + size)`` of rates sorted by title.

        ``query`` and ``query_type`` are reserved for filtering and currently
        have no effect.
        """

        start = max(position, 0)
        with self._lock:
            selection = [] if size <= 0 else [r.copy() for r in self._sorted()[start : start + size]]
        LOGGER.info(
            "list(<%s>, <%s>, <%s>, <%s>) -> %s rates.",
            query,
            query_type,
            position,
            size,
            len(selection),
        )
        return selection

    def create(self, rate: RateRecord, principal: str) -> RateRecord:
        """Store a new rate and return it with its server-assigned fields."""

        with self._lock:
            if rate.id:
                if rate.id in self._index:
                    raise DuplicateError(f"rate <{rate.id}> exists already.", rate_id=rate.id)
                raise ValidationError(
                    f"rate <{rate.id}> contains an ID generated on the client. This is not allowed.",
                    rate_id=rate.id,
                )
            rate_id = self._id_factory()
            if not rate_id or rate_id in self._index:
                raise InternalError(f"id factory produced an unusable id <{rate_id}>", rate_id=rate_id)
            amount = self._validate(rate, rate_id)
            now = self._clock()
            stored = RateRecord(
                id=rate_id,
                title=rate.title,
                amount=amount,
                currency=_enum_value(Currency, rate.currency, rate_id) or Currency.default(),
                rate_type=_enum_value(RateType, rate.rate_type, rate_id) or RateType.default(),
                description=rate.description,
                created_at=now,
                created_by=principal,
                modified_at=now,
                modified_by=principal,
            )
            self._index[rate_id] = stored
            self._persist(rate_id, previous=None)
            LOGGER.info("create(%s) by <%s>", rate_id, principal)
            return stored.copy()

    def read(self, rate_id: str) -> RateRecord:
        with self._lock:
            record = self._index.get(rate_id)
            if record is None:
                raise NotFoundError(f"no rate with ID <{rate_id}> was found.", rate_id=rate_id)
            return record.copy()

    def update(self, rate_id: str, rate: RateRecord, principal: str) -> RateRecord:
        """Apply the mutable fields of ``rate`` to the stored rate ``rate_id``.

        ``id``, ``created_at`` and ``created_by`` are immutable; supplying a
        different value for any of them raises :class:`NotAllowedError`.
        Leaving them unset is fine.
        """

        with self._lock:
            current = self._index.get(rate_id)
            if current is None:
                raise NotFoundError(f"no rate with ID <{rate_id}> was found.", rate_id=rate_id)
            amount = self._validate(rate, rate_id)
            if rate.id and rate.id != rate_id:
                raise NotAllowedError(
                    f"rate <{rate_id}>: the id can not be changed to <{rate.id}>.",
                    rate_id=rate_id,
                )
            try:
                created_at = parse_timestamp(rate.created_at)
            except ValueError as exc:
                raise ValidationError(f"rate <{rate_id}>: {exc}.", rate_id=rate_id) from exc
            if created_at is not None and created_at != current.created_at:
                raise NotAllowedError(
                    f"rate <{rate_id}>: it is not allowed to modify createdAt.",
                    rate_id=rate_id,
                )
            if rate.created_by and rate.created_by.casefold() != (current.created_by or "").casefold():
                raise NotAllowedError(
                    f"rate <{rate_id}>: it is not allowed to modify createdBy.",
                    rate_id=rate_id,
                )
            updated = current.copy()
            updated.title = rate.title
            updated.amount = amount
            updated.currency = _enum_value(Currency, rate.currency, rate_id) or Currency.default()
            updated.rate_type = _enum_value(RateType, rate.rate_type, rate_id) or RateType.default()
            updated.description = rate.description
            updated.modified_at = self._clock()
            updated.modified_by = principal
            self._index[rate_id] = updated
            self._persist(rate_id, previous=current)
            LOGGER.info("update(%s) by <%s>", rate_id, principal)
            return updated.copy()

    def delete(self, rate_id: str) -> None:
        with self._lock:
            if rate_id not in self._index:
                raise NotFoundError(f"rate <{rate_id}> was not found.", rate_id=rate_id)
            removed = self._index.pop(rate_id, None)
            if removed is None:
                raise InternalError(
                    f"rate <{rate_id}> can not be removed, because it does not exist in the index",
                    rate_id=rate_id,
                )
            self._persist(rate_id, previous=removed)
            LOGGER.info("delete(%s)", rate_id)

    def __iter__(self) -> Iterator[RateRecord]:
        return iter(self.snapshot())

    def _sorted(self) -> list[RateRecord]:
        return sorted(self._index.values(), key=_sort_key)

    def _persist(self, rate_id: str, *, previous: RateRecord | None) -> None:
        """Export the index; on failure put ``previous`` back and re-raise."""

        if not self.gateway.persistent:
            return None
        try:
            self.gateway.export_rates(self._sorted())
        except Exception:
            LOGGER.warning("Export failed; rolling back the change to rate <%s>", rate_id)
            if previous is None:
                self._index.pop(rate_id, None)
            else:
                self._index[rate_id] = previous
            raise

    @staticmethod
    def _validate(rate: RateRecord, rate_id: str) -> float:
        """Check ``rate`` and return its amount as the float that gets stored."""

        if not isinstance(rate.title, str) or not rate.title.strip():
            raise ValidationError(f"rate <{rate_id}> must contain a valid title.", rate_id=rate_id)
        amount = rate.amount
        if amount is None or isinstance(amount, bool) or not isinstance(amount, (Real, Decimal)):
            raise ValidationError(f"rate <{rate_id}> must contain a numeric amount.", rate_id=rate_id)
        try:
            value = float(amount)
        except (OverflowError, ValueError) as exc:
            raise ValidationError(
                f"rate <{rate_id}> has an amount that is not a usable number: {exc}.", rate_id=rate_id
            ) from exc
        if not math.isfinite(value) or value < 0:
            raise ValidationError(
                f"rate <{rate_id}> must have an amount >= 0, got {amount}.", rate_id=rate_id
            )
        if rate.description is not None and not isinstance(rate.description, str):
            raise ValidationError(
                f"rate <{rate_id}> must have a text description.", rate_id=rate_id
            )
        _enum_value(Currency, rate.currency, rate_id)
        _enum_value(RateType, rate.rate_type, rate_id)
        return value


def _enum_value(enum_type: Any, value: Any, rate_id: str) -> Any:
    """Coerce ``value`` into ``enum_type``; ``None`` stays ``None``."""

    try:
        return enum_type.parse(value)
    except ValueError as exc:
        raise ValidationError(f"rate <{rate_id}>: {exc}.", rate_id=rate_id) from exc


__all__ = ["DEFAULT_PAGE_SIZE", "RateStore"]
