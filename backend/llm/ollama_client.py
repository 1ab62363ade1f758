"""
Ollama Client

Async client for the local Ollama LLM used by AI data cleaning. Cleaning
answers are requested in Ollama's JSON mode so the model returns a
parseable document rather than prose.
"""

import asyncio
from typing import Any, Optional

import httpx

from config import get_settings
from core.logging_config import llm_logger as logger


RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class OllamaClient:
    """
    Async client for the Ollama generate API.

    Server errors, rate limiting and timeouts are retried with
    exponential backoff; other HTTP errors propagate.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.ollama.base_url,
                timeout=httpx.Timeout(self.settings.ollama.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def build_payload(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> dict[str, Any]:
        """Request body for /api/generate with the configured model and sampling."""
        ollama = self.settings.ollama
        payload: dict[str, Any] = {
            "model": ollama.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": ollama.temperature,
                "num_predict": ollama.max_tokens,
            },
        }
        if system:
            payload["system"] = system
        if json_mode:
            payload["format"] = "json"
        return payload

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Generate a completion.

        Args:
            prompt: User prompt
            system: Optional system prompt
            json_mode: Constrain the answer to a JSON document

        Returns:
            Generated response text

        Raises:
            RuntimeError: If every attempt hit a retryable failure
            httpx.HTTPStatusError: For non-retryable error responses
        """
        payload = self.build_payload(prompt, system=system, json_mode=json_mode)
        data = await self._post_with_retry("/api/generate", payload)

        if data.get("done_reason") == "length":
            logger.warning(
                f"Answer hit the {self.settings.ollama.max_tokens} token limit and may be truncated"
            )
        return data.get("response", "")

    async def _post_with_retry(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        client = await self.get_client()
        attempts = self.settings.ollama.max_retries
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code not in RETRYABLE_STATUSES:
                    raise
                last_error = e
                logger.warning(
                    f"Ollama returned {e.response.status_code} (attempt {attempt + 1}/{attempts})"
                )
            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Ollama request timed out (attempt {attempt + 1}/{attempts})")

            if attempt + 1 < attempts:
                await asyncio.sleep(self.settings.ollama.retry_backoff * 2 ** attempt)

        raise RuntimeError(f"Ollama request failed after {attempts} attempts: {last_error}")

    async def is_available(self) -> bool:
        """Check if Ollama is running and responsive."""
        try:
            client = await self.get_client()
            response = await client.get("/")
            return response.status_code == 200
        except httpx.HTTPError:
            return False


# Global instance
ollama_client = OllamaClient()
