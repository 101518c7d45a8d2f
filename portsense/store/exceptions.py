"""Exception hierarchy for the container/alert store."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all store errors."""


class EntityNotFoundError(StoreError):
    """No tracked container with the given id."""


class AlertNotFoundError(StoreError):
    """No alert with the given id."""


class UnauthorizedUpdateError(StoreError):
    """The acting user does not own the targeted record."""
