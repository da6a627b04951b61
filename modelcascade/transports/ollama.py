"""
Ollama transport for local models.

Talks to a local Ollama server over its HTTP API. Used as the last
tier of the cascade, after the hosted providers.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from modelcascade.exceptions import TransportError, TransportTimeout
from modelcascade.transports.base import ChatRequest, ModelResponse, has_text

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"

DEFAULT_OPTIONS: dict[str, Any] = {
    "temperature": 0.7,
    "top_p": 0.9,
    "top_k": 40,
}


class OllamaTransport:
    """
    Transport for one Ollama model.

    Requests with chat messages go to /api/chat, prompt-only requests to
    /api/generate. Streaming is disabled; the full answer is returned.

    Example:
        >>> transport = OllamaTransport("llama3.2")
        >>> response = await transport.invoke(ChatRequest.from_prompt("Hi"), 30000)
        >>> response.text
        'Hello! How can I help?'
    """

    provider = "ollama"

    def __init__(
        self,
        model: str,
        base_url: str = DEFAULT_OLLAMA_URL,
        client: httpx.AsyncClient | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """
        Args:
            model: Ollama model name (e.g., "llama3.2").
            base_url: Server URL.
            client: Shared client. When None, a client is created per call.
            options: Default generation options, merged under request options.
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.options = {**DEFAULT_OPTIONS, **(options or {})}

    @property
    def name(self) -> str:
        return f"ollama/{self.model}"

    async def invoke(self, request: ChatRequest, timeout_ms: float) -> ModelResponse:
        """
        Generate an answer.

        Raises:
            TransportTimeout: If the HTTP call timed out.
            TransportError: On connection errors or non-2xx responses.
        """
        options = {**self.options, **dict(request.options)}
        if request.messages:
            path = "/api/chat"
            body: dict[str, Any] = {
                "model": self.model,
                "messages": request.as_messages(),
                "stream": False,
                "options": options,
            }
        else:
            path = "/api/generate"
            body = {
                "model": self.model,
                "prompt": request.as_prompt(),
                "stream": False,
                "options": options,
            }

        data = await self._post(path, body, timeout_ms)

        if path == "/api/chat":
            text = (data.get("message") or {}).get("content", "")
        else:
            text = data.get("response", "")

        return ModelResponse(
            text=text or "",
            model=self.model,
            provider=self.provider,
            raw=data,
            metadata={
                "done": data.get("done"),
                "total_duration": data.get("total_duration"),
                "load_duration": data.get("load_duration"),
                "prompt_eval_count": data.get("prompt_eval_count"),
                "eval_count": data.get("eval_count"),
            },
        )

    def is_usable_response(self, response: Any) -> bool:
        return has_text(response)

    async def is_available(self, timeout_ms: float = 5000) -> bool:
        """Check whether the Ollama server answers."""
        try:
            await self._get("/api/tags", timeout_ms)
        except TransportError as e:
            logger.warning(f"Ollama not available at {self.base_url}: {e}")
            return False
        return True

    async def list_models(self, timeout_ms: float = 5000) -> list[dict[str, Any]]:
        """
        List models installed on the server.

        Raises:
            TransportError: If the server cannot be reached.
        """
        data = await self._get("/api/tags", timeout_ms)
        return list(data.get("models") or [])

    async def _get(self, path: str, timeout_ms: float) -> dict[str, Any]:
        return await self._request("GET", path, None, timeout_ms)

    async def _post(self, path: str, body: dict[str, Any], timeout_ms: float) -> dict[str, Any]:
        return await self._request("POST", path, body, timeout_ms)

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None,
        timeout_ms: float,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        timeout = httpx.Timeout(timeout_ms / 1000.0)
        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=body, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.request(method, url, json=body)
        except httpx.TimeoutException as e:
            raise TransportTimeout(self.name, timeout_ms) from e
        except httpx.HTTPError as e:
            raise TransportError(self.name, str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            raise TransportError(
                self.name,
                response.reason_phrase or "request failed",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(self.name, f"invalid JSON response: {e}") from e

    def __repr__(self) -> str:
        return f"OllamaTransport(model={self.model!r}, base_url={self.base_url!r})"
