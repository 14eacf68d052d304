"""Exceptions raised by the rate store and its persistence gateways."""

from __future__ import annotations


class RatebookError(Exception):
    """Base class for every error raised by :mod:`ratebook`.

    Attributes:
        rate_id: Identifier of the rate the error refers to, if any.
    """

    def __init__(self, message: str, *, rate_id: str | None = None) -> None:
        super().__init__(message)
        self.rate_id = rate_id


class NotFoundError(RatebookError, LookupError):
    """Raised when no rate exists for the requested identifier."""


class DuplicateError(RatebookError):
    """Raised when a create request carries an identifier already in use."""


class ValidationError(RatebookError, ValueError):
    """Raised when a rate fails validation.

    This covers:
    - client-supplied identifiers on create
    - empty titles
    - missing, non-numeric, non-finite or negative amounts
    - descriptions that are not text
    - unknown currency or rate type values
    """


class NotAllowedError(RatebookError):
    """Raised when an update tries to change ``id``, ``createdAt`` or ``createdBy``."""


class InternalError(RatebookError, RuntimeError):
    """Raised when the index contradicts itself. Always a bug, never user input."""


class PersistenceError(RatebookError, OSError):
    """Raised when a gateway cannot read or write its backing store."""


__all__ = [
    "DuplicateError",
    "InternalError",
    "NotAllowedError",
    "NotFoundError",
    "PersistenceError",
    "RatebookError",
    "ValidationError",
]
