"""OpenAI-compatible chat-completions text generator."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from portsense.core.config import EnrichmentConfig
from portsense.core.types import AlertCategory
from portsense.enrich.base import AlertContext, TextGenerator
from portsense.enrich.exceptions import EnrichmentError
from portsense.enrich.prompts import SYSTEM_PROMPT, alert_message_prompt

logger = structlog.stdlib.get_logger()


def _extract_content(body: Any) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise EnrichmentError("unexpected completion response shape") from exc
    if not isinstance(content, str) or not content.strip():
        raise EnrichmentError("empty completion")
    return content.strip()


class OpenAITextGenerator(TextGenerator):
    """Calls ``POST {base_url}/chat/completions`` with a single user prompt."""

    def __init__(
        self,
        config: EnrichmentConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers={
                    "Authorization": f"Bearer {self._config.api_key.get_secret_value()}",
                },
                timeout=httpx.Timeout(self._config.timeout_secs),
                transport=self._transport,
            )
        return self._http

    async def generate_alert_message(
        self, context: AlertContext, category: AlertCategory
    ) -> str:
        payload = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": alert_message_prompt(context, category)},
            ],
        }
        try:
            response = await self._get_client().post("/chat/completions", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise EnrichmentError(
                f"completion API returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EnrichmentError(f"completion request failed: {exc}") from exc
        except ValueError as exc:
            raise EnrichmentError("completion API returned invalid JSON") from exc

        return _extract_content(body)

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None
