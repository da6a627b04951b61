"""
Transports for cascade attempts.

Each catalog entry references a transport that performs the real call:
- OllamaTransport for local models
- OpenAICompatibleTransport for hosted chat completion APIs
- CallableTransport for plain functions
"""

from modelcascade.transports.base import (
    CallableTransport,
    ChatRequest,
    ModelResponse,
    Transport,
    as_transport,
    has_text,
    is_non_empty,
)
from modelcascade.transports.ollama import DEFAULT_OLLAMA_URL, OllamaTransport
from modelcascade.transports.openai_compat import OpenAICompatibleTransport

__all__ = [
    "Transport",
    "CallableTransport",
    "ChatRequest",
    "ModelResponse",
    "as_transport",
    "is_non_empty",
    "has_text",
    "OllamaTransport",
    "OpenAICompatibleTransport",
    "DEFAULT_OLLAMA_URL",
]
