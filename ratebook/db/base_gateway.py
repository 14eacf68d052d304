"""Gateway interface between the rate index and its backing store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ratebook.store.models import RateRecord


@dataclass(slots=True)
class PersistenceResult:
    """Represents how many records a full export wrote."""

    written: int = 0


class PersistenceGateway(ABC):
    """Common interface implemented by every persistence gateway.

    Exports are whole-state checkpoints: each call replaces the backing store
    with exactly the records it is given.
    """

    persistent: bool = True

    def ensure_schema(self) -> None:
        """Create tables/collections/directories the gateway needs."""

    @abstractmethod
    def import_rates(self) -> list[RateRecord]:
        """Return every stored record, or ``[]`` if nothing is stored yet."""

    @abstractmethod
    def export_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        """Replace the backing store with ``rows``."""

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Gateways may override to release connections/resources."""


class TransientGateway(PersistenceGateway):
    """Gateway with persistence disabled: nothing is read or written."""

    persistent = False

    def import_rates(self) -> list[RateRecord]:
        return []

    def export_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        return PersistenceResult()


__all__ = ["PersistenceGateway", "PersistenceResult", "TransientGateway"]
