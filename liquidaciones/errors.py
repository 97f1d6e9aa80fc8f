"""Exceptions raised by the liquidation engine and its persistence helpers."""
from __future__ import annotations


class InvalidInputError(ValueError):
    """Input outside its documented domain. Values are never clamped."""


class NettingError(ValueError):
    """A penalty netting selection was rejected before anything was written.

    ``offending_ids`` lists the broker-commission ids that caused the rejection.
    """

    def __init__(self, message: str, offending_ids: list[int] | None = None):
        super().__init__(message)
        self.offending_ids = list(offending_ids or [])


class NettingConflictError(RuntimeError):
    """Concurrent writers kept invalidating the netting transaction."""


class RecordNotFoundError(LookupError):
    pass


class PersistenceError(RuntimeError):
    """Saving a result failed. The caller may retry with the same snapshot."""
