"""HTTP generator for OpenAI-compatible chat completion backends."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import aiohttp

from ..core.exceptions import GeneratorError
from ..shapes.json_extract import extract_json

if TYPE_CHECKING:
    from ..shapes.descriptor import ShapeDescriptor

logger = logging.getLogger(__name__)


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _url(self, url: str) -> str:
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url}/{url.lstrip('/')}"
        return url

    async def post(
        self,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST request returning the decoded JSON body."""
        async with self.session.post(self._url(url), json=json_body, headers=headers) as response:
            response.raise_for_status()
            return await response.json()

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HTTPClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()


class OpenAICompatibleGenerator:
    """Generator backed by a ``/chat/completions`` endpoint.

    Works with OpenAI, LM Studio, Ollama's OpenAI-compatible API and similar
    servers. Returns the JSON extracted from the first choice's message.
    """

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434/v1",
        model: str = "llama3",
        api_key: str | None = None,
        temperature: float = 1.2,
        max_tokens: int | None = None,
        timeout: float = 30.0,
        client: HTTPClient | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            base_url: Base URL of the OpenAI-compatible API
            model: Model or deployment name
            api_key: Bearer token for hosted providers (None for local servers)
            temperature: Sampling temperature (high values give varied variants)
            max_tokens: Output token limit sent with each call
            timeout: Request timeout in seconds
            client: Optional HTTPClient (created from base_url/timeout if omitted)
        """
        self._client = client or HTTPClient(base_url=base_url, timeout=timeout)
        self._model = model
        self._api_key = api_key
        self._temperature = temperature
        self._max_tokens = max_tokens

    def build_messages(self, shape: ShapeDescriptor, context: str | None) -> list[dict[str, str]]:
        prompt = f"Generate realistic JSON data matching this shape:\n{shape.to_text()}"
        if context:
            prompt = f"{prompt}\n{context}"
        return [
            {"role": "system", "content": "Respond with JSON only."},
            {"role": "user", "content": prompt},
        ]

    async def generate(self, shape: ShapeDescriptor, context: str | None = None) -> str:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": self.build_messages(shape, context),
            "temperature": self._temperature,
            "stream": False,
        }
        if self._max_tokens is not None:
            body["max_tokens"] = self._max_tokens
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None

        try:
            data = await self._client.post("chat/completions", json_body=body, headers=headers)
        except aiohttp.ClientResponseError as e:
            raise GeneratorError(f"Backend returned HTTP {e.status}: {e.message}", status_code=e.status) from e
        except aiohttp.ClientError as e:
            raise GeneratorError(f"Backend request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GeneratorError("Backend response has no completion content") from e

        logger.debug("Generated completion", extra={"model": self._model, "length": len(content or "")})
        return extract_json(content)

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> OpenAICompatibleGenerator:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
