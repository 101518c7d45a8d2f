"""Pick the text generator implementation from configuration."""

from __future__ import annotations

import structlog

from portsense.core.config import EnrichmentConfig
from portsense.enrich.base import FallbackTextGenerator, TextGenerator
from portsense.enrich.openai import OpenAITextGenerator

logger = structlog.stdlib.get_logger()


def create_text_generator(config: EnrichmentConfig) -> TextGenerator:
    """Real generator when enabled and keyed, the fallback stand-in otherwise."""
    if config.enabled and config.api_key.get_secret_value():
        logger.info("text_generator_configured", model=config.model)
        return OpenAITextGenerator(config)
    if config.enabled:
        logger.warning("text_generator_missing_api_key")
    return FallbackTextGenerator()
