"""Alert message enrichment via an optional text generation service."""

from portsense.enrich.base import AlertContext, FallbackTextGenerator, TextGenerator
from portsense.enrich.exceptions import EnrichmentError
from portsense.enrich.factory import create_text_generator
from portsense.enrich.openai import OpenAITextGenerator

__all__ = [
    "AlertContext",
    "EnrichmentError",
    "FallbackTextGenerator",
    "OpenAITextGenerator",
    "TextGenerator",
    "create_text_generator",
]
