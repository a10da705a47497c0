"""
Gemini Client

Calls the Gemini ``generateContent`` endpoint and decodes the model's reply as JSON.
Every failure (transport, HTTP status, empty reply, unparseable JSON) surfaces as
ExternalServiceError; callers decide on a fallback.
"""

import json
import re
from typing import Any
from typing import Optional

import httpx
from loguru import logger

from nexus_api.errors import ExternalServiceError

SERVICE_NAME = "gemini"

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```) if present."""
    return _FENCE_RE.sub("", text).strip()


class GeminiClient:
    """Async client for one Gemini model."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-1.5-flash",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_text(self, prompt: str) -> str:
        """
        Send one prompt and return the text of the first candidate.

        Raises:
            ExternalServiceError: On timeout, transport error, non-2xx status or an empty reply
        """
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Gemini request timed out after {self.timeout_seconds}s")
            raise ExternalServiceError("AI service timed out", service=SERVICE_NAME) from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Gemini returned HTTP {e.response.status_code}", status_code=e.response.status_code)
            raise ExternalServiceError(
                f"AI service returned HTTP {e.response.status_code}", service=SERVICE_NAME
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Gemini request failed: {e}", error_type=type(e).__name__)
            raise ExternalServiceError(f"AI service request failed: {e}", service=SERVICE_NAME) from e

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError("AI service returned no content", service=SERVICE_NAME) from e

    async def generate_json(self, prompt: str) -> Any:
        """
        Send one prompt and decode the reply as JSON (code fences are stripped).

        Raises:
            ExternalServiceError: On any request failure or if the reply is not valid JSON
        """
        text = await self.generate_text(prompt)
        try:
            return json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            logger.warning("Gemini reply is not valid JSON", reply_preview=text[:200])
            raise ExternalServiceError("AI service returned malformed JSON", service=SERVICE_NAME) from e
