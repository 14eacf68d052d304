"""Helpers for the audit timestamps stored on every rate."""

from __future__ import annotations

from datetime import datetime, timezone
from numbers import Real


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    """Render ``value`` as ISO-8601 with an explicit UTC offset."""

    if value is None:
        return None
    return _as_utc(value).isoformat()


def parse_timestamp(value: str | datetime | Real | None) -> datetime | None:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (a trailing ``Z`` is allowed), ``datetime``
    instances and epoch milliseconds, which older exports used. Naive values
    are taken to be UTC.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, Real):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp: {value!r}") from exc
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["format_timestamp", "parse_timestamp", "utc_now"]
