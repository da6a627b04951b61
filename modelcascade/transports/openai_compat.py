"""
Transport for OpenAI-compatible chat completion APIs.

Covers the hosted providers of the default cascade (opencode zen,
OpenRouter, ZenMux), which all expose POST /chat/completions.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from modelcascade.exceptions import TransportError, TransportTimeout
from modelcascade.transports.base import ChatRequest, ModelResponse, has_text

logger = logging.getLogger(__name__)


class OpenAICompatibleTransport:
    """
    Transport for one model behind an OpenAI-compatible endpoint.

    Example:
        >>> transport = OpenAICompatibleTransport(
        ...     provider="openrouter",
        ...     model="qwen/qwen3-coder:free",
        ...     base_url="https://openrouter.ai/api/v1",
        ...     api_key=os.environ["OPENROUTER_API_KEY"],
        ... )
    """

    def __init__(
        self,
        provider: str,
        model: str,
        base_url: str,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """
        Args:
            provider: Provider name used in ids and logs.
            model: Model id sent in the request body.
            base_url: API root, without the /chat/completions suffix.
            api_key: Bearer token, if the provider needs one.
            client: Shared client. When None, a client is created per call.
            headers: Extra headers (e.g., OpenRouter's HTTP-Referer).
            options: Default body parameters (temperature, max_tokens, ...).
        """
        self.provider = provider
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client
        self.headers = dict(headers or {})
        self.options = dict(options or {})

    @property
    def name(self) -> str:
        return f"{self.provider}/{self.model}"

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self.headers}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def invoke(self, request: ChatRequest, timeout_ms: float) -> ModelResponse:
        """
        Request a chat completion.

        Raises:
            TransportTimeout: If the HTTP call timed out.
            TransportError: On connection errors, non-2xx responses or an
                undecodable body.
        """
        body: dict[str, Any] = {
            "model": self.model,
            "messages": request.as_messages(),
            **self.options,
            **dict(request.options),
        }
        url = f"{self.base_url}/chat/completions"
        timeout = httpx.Timeout(timeout_ms / 1000.0)

        try:
            if self._client is not None:
                response = await self._client.post(
                    url, json=body, headers=self._build_headers(), timeout=timeout
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=body, headers=self._build_headers())
        except httpx.TimeoutException as e:
            raise TransportTimeout(self.name, timeout_ms) from e
        except httpx.HTTPError as e:
            raise TransportError(self.name, str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            raise TransportError(
                self.name,
                _error_message(response),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(self.name, f"invalid JSON response: {e}") from e

        choices = data.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        return ModelResponse(
            text=message.get("content") or "",
            model=data.get("model") or self.model,
            provider=self.provider,
            raw=data,
            metadata={
                "finish_reason": choices[0].get("finish_reason") if choices else None,
                "usage": data.get("usage"),
            },
        )

    def is_usable_response(self, response: Any) -> bool:
        return has_text(response)

    def __repr__(self) -> str:
        return f"OpenAICompatibleTransport(provider={self.provider!r}, model={self.model!r})"


def _error_message(response: httpx.Response) -> str:
    """Extract the provider's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.reason_phrase or "request failed"
