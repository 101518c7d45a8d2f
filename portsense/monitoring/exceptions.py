"""Monitoring cycle exceptions."""

from __future__ import annotations


class MonitoringError(Exception):
    """Base exception for monitoring cycle errors."""


class CycleAlreadyRunningError(MonitoringError):
    """A monitoring cycle is already in flight; the new invocation is rejected."""
