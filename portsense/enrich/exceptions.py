"""Text generation exceptions."""

from __future__ import annotations


class EnrichmentError(Exception):
    """The text generation service could not produce a message."""
