"""Rate domain model and error taxonomy.

:class:`ratebook.store.rate_store.RateStore` is imported from its module
directly, since it depends on :mod:`ratebook.db`, which depends on the
model defined here.
"""

from __future__ import annotations

from ratebook.store.errors import (
    DuplicateError,
    InternalError,
    NotAllowedError,
    NotFoundError,
    PersistenceError,
    RatebookError,
    ValidationError,
)
from ratebook.store.models import Currency, RateRecord, RateType

__all__ = [
    "Currency",
    "DuplicateError",
    "InternalError",
    "NotAllowedError",
    "NotFoundError",
    "PersistenceError",
    "RateRecord",
    "RateType",
    "RatebookError",
    "ValidationError",
]
