"""Pick the tracking provider implementation from configuration."""

from __future__ import annotations

import structlog

from portsense.core.config import TrackingConfig
from portsense.tracking.base import TrackingProvider
from portsense.tracking.http import HttpTrackingProvider
from portsense.tracking.mock import MockTrackingProvider

logger = structlog.stdlib.get_logger()


def create_tracking_provider(
    config: TrackingConfig,
    timeout_secs: float = 15.0,
) -> TrackingProvider:
    """HTTP provider when configured with a base URL, the mock otherwise."""
    if config.provider == "http":
        if config.base_url:
            logger.info("tracking_provider_configured", provider="http", base_url=config.base_url)
            return HttpTrackingProvider(config, timeout_secs=timeout_secs)
        logger.warning("tracking_provider_missing_base_url")
    elif config.provider != "mock":
        logger.warning("tracking_provider_unknown", provider=config.provider)
    logger.info("tracking_provider_configured", provider="mock")
    return MockTrackingProvider(latency_secs=config.mock_latency_secs)
