"""
Default model cascade.

The free hosted models of the chat front-end, followed by local Ollama
models as the final tier:

    tier 0  opencode zen
    tier 1  OpenRouter, ZenMux
    tier 2  Ollama (local)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from modelcascade.catalog import ProviderCatalog
from modelcascade.config import AttemptConfig, CascadeConfig, build_catalog
from modelcascade.transports import DEFAULT_OLLAMA_URL, OllamaTransport, OpenAICompatibleTransport

logger = logging.getLogger(__name__)

PROVIDER_BASE_URLS: dict[str, str] = {
    "opencode": "https://opencode.ai/zen/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "zenmux": "https://zenmux.ai/api/v1",
}

PROVIDER_TIERS: dict[str, int] = {
    "opencode": 0,
    "openrouter": 1,
    "zenmux": 1,
    "ollama": 2,
}

DEFAULT_REMOTE_MODELS: list[tuple[str, str]] = [
    ("opencode", "minimax-m2.1-free"),
    ("opencode", "glm-4.7-free"),
    ("openrouter", "kwaipilot/kat-coder-pro:free"),
    ("openrouter", "google/gemini-2.0-flash-exp:free"),
    ("openrouter", "qwen/qwen3-coder:free"),
    ("openrouter", "mistralai/devstral-2512:free"),
    ("openrouter", "meta-llama/llama-3.3-70b-instruct:free"),
    ("openrouter", "mistralai/devstral-small-2507"),
    ("openrouter", "z-ai/glm-4.5-air:free"),
    ("zenmux", "xiaomi/mimo-v2-flash-free"),
    ("zenmux", "z-ai/glm-4.6v-flash-free"),
    ("zenmux", "kuaishou/kat-coder-pro-v1-free"),
]

DEFAULT_OLLAMA_MODELS: list[str] = ["llama3.2", "qwen2.5-coder", "deepseek-coder-v2"]


def default_config(
    global_timeout_ms: int | None = None,
    default_timeout_ms: int = 30_000,
) -> CascadeConfig:
    """Configuration of the default cascade (all entries enabled)."""
    attempts = [
        AttemptConfig(
            id=f"{provider}/{model}",
            tier=PROVIDER_TIERS[provider],
            provider=provider,
            model=model,
            base_url=PROVIDER_BASE_URLS[provider],
        )
        for provider, model in DEFAULT_REMOTE_MODELS
    ]
    attempts.extend(
        AttemptConfig(
            id=f"ollama/{model}",
            tier=PROVIDER_TIERS["ollama"],
            provider="ollama",
            model=model,
        )
        for model in DEFAULT_OLLAMA_MODELS
    )
    return CascadeConfig(
        default_timeout_ms=default_timeout_ms,
        global_timeout_ms=global_timeout_ms,
        attempts=attempts,
    )


def build_transports(
    config: CascadeConfig,
    api_keys: Mapping[str, str] | None = None,
    ollama_base_url: str = DEFAULT_OLLAMA_URL,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    Create transports for every attempt of a configuration.

    Entries are matched on their provider; "ollama" gets an
    OllamaTransport, anything else an OpenAICompatibleTransport.
    """
    api_keys = api_keys or {}
    transports: dict[str, Any] = {}
    for attempt in config.attempts:
        provider = attempt.provider or attempt.id.split("/", 1)[0]
        model = attempt.model or attempt.id.split("/", 1)[-1]
        if provider == "ollama":
            transports[attempt.id] = OllamaTransport(
                model,
                base_url=attempt.base_url or ollama_base_url,
                client=client,
            )
        else:
            transports[attempt.id] = OpenAICompatibleTransport(
                provider=provider,
                model=model,
                base_url=attempt.base_url or PROVIDER_BASE_URLS.get(provider, ""),
                api_key=api_keys.get(provider),
                client=client,
            )
    return transports


def build_default_catalog(
    api_keys: Mapping[str, str] | None = None,
    ollama_base_url: str = DEFAULT_OLLAMA_URL,
    client: httpx.AsyncClient | None = None,
    keyless_providers: frozenset[str] = frozenset({"ollama"}),
) -> ProviderCatalog:
    """
    Build the default cascade.

    Hosted providers without an API key are disabled rather than dropped,
    so they can be enabled later with set_enabled().

    Args:
        api_keys: Provider name to API key.
        ollama_base_url: Local Ollama server.
        client: Shared httpx client for all transports.
        keyless_providers: Providers that work without a key.
    """
    api_keys = api_keys or {}
    config = default_config()
    catalog = build_catalog(
        config,
        build_transports(config, api_keys, ollama_base_url=ollama_base_url, client=client),
    )

    for attempt in config.attempts:
        provider = attempt.provider or ""
        if provider not in keyless_providers and not api_keys.get(provider):
            catalog.set_enabled(attempt.id, False)

    logger.info(f"Default cascade ready: {catalog.enabled_ids()}")
    return catalog
