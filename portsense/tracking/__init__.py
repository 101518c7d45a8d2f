"""Tracking provider connectors — external source of container positions."""

from portsense.tracking.base import TrackingProvider
from portsense.tracking.exceptions import (
    TrackingConnectionError,
    TrackingError,
    TrackingParseError,
    TrackingTimeoutError,
)
from portsense.tracking.factory import create_tracking_provider
from portsense.tracking.http import HttpTrackingProvider
from portsense.tracking.mock import MockTrackingProvider
from portsense.tracking.rate_limiter import RateLimiter

__all__ = [
    "HttpTrackingProvider",
    "MockTrackingProvider",
    "RateLimiter",
    "TrackingConnectionError",
    "TrackingError",
    "TrackingParseError",
    "TrackingProvider",
    "TrackingTimeoutError",
    "create_tracking_provider",
]
