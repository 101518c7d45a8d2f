"""Exception hierarchy for tracking provider connectors."""

from __future__ import annotations


class TrackingError(Exception):
    """Base exception for all tracking provider errors."""


class TrackingConnectionError(TrackingError):
    """Failed to reach the tracking provider (HTTP error, refused, etc.)."""


class TrackingParseError(TrackingError):
    """Failed to parse a response from the tracking provider."""


class TrackingTimeoutError(TrackingError):
    """The tracking provider did not answer within the configured timeout."""
