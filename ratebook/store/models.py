"""Data model for rate records and their enumerations."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from ratebook.utils.timestamps import format_timestamp, parse_timestamp


class Currency(str, Enum):
    """Currencies a rate can be expressed in."""

    CHF = "CHF"
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"

    @classmethod
    def default(cls) -> "Currency":
        return cls.CHF

    @classmethod
    def parse(cls, value: "Currency | str | None") -> "Currency | None":
        """Return the enum member for ``value`` (case-insensitive)."""

        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unsupported currency: {value}") from exc


class RateType(str, Enum):
    """Classification of a rate."""

    STANDARD_RATE = "STANDARD_RATE"
    REDUCED_RATE = "REDUCED_RATE"
    OVERTIME_RATE = "OVERTIME_RATE"
    FLAT_RATE = "FLAT_RATE"

    @classmethod
    def default(cls) -> "RateType":
        return cls.STANDARD_RATE

    @classmethod
    def parse(cls, value: "RateType | str | None") -> "RateType | None":
        """Return the enum member for ``value`` (case-insensitive)."""

        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unsupported rate type: {value}") from exc


@dataclass(slots=True)
class RateRecord:
    """A single billable rate, e.g. an hourly consulting fee."""

    title: str = ""
    amount: float | None = None
    currency: Currency | None = None
    rate_type: RateType | None = None
    description: str | None = None
    id: str = ""
    created_at: datetime | None = None
    created_by: str | None = None
    modified_at: datetime | None = None
    modified_by: str | None = None

    def copy(self) -> "RateRecord":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready representation used by every gateway."""

        return {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "currency": self.currency.value if self.currency is not None else None,
            "type": self.rate_type.value if self.rate_type is not None else None,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
            "createdBy": self.created_by,
            "modifiedAt": format_timestamp(self.modified_at),
            "modifiedBy": self.modified_by,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RateRecord":
        """Build a record from :meth:`to_dict` output.

        ``rate`` is accepted as an alias of ``amount`` for files written by
        older releases.
        """

        amount = payload.get("amount", payload.get("rate"))
        if amount is not None and not isinstance(amount, bool):
            amount = float(amount)
        return cls(
            id=str(payload.get("id") or ""),
            title=payload.get("title") or "",
            amount=amount,
            currency=Currency.parse(payload.get("currency")),
            rate_type=RateType.parse(payload.get("type")),
            description=payload.get("description"),
            created_at=parse_timestamp(payload.get("createdAt")),
            created_by=payload.get("createdBy"),
            modified_at=parse_timestamp(payload.get("modifiedAt")),
            modified_by=payload.get("modifiedBy"),
        )


__all__ = ["Currency", "RateRecord", "RateType"]
