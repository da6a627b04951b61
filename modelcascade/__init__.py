"""
modelcascade: ordered fallback across language-model providers.

Sends a request to a list of model endpoints in declared order (tier by
tier) and returns the first usable answer, together with a record of
every attempt that was made.

Basic Usage:
    >>> from modelcascade import (
    ...     ChatRequest, FallbackExecutor, ProviderCatalog, RunOptions,
    ... )
    >>>
    >>> catalog = ProviderCatalog.build([
    ...     {"id": "m1", "tier": 0, "transport": remote_a},
    ...     {"id": "m2", "tier": 0, "transport": remote_b},
    ...     {"id": "ollama", "tier": 1, "transport": local},
    ... ])
    >>> executor = FallbackExecutor()
    >>> run = await executor.run(
    ...     catalog,
    ...     ChatRequest.from_prompt("Hello"),
    ...     RunOptions(global_timeout_ms=60000),
    ... )
    >>> print(run.source if run.succeeded else run.describe(verbose=True))
"""

__version__ = "0.1.0"

from modelcascade.catalog import DEFAULT_TIMEOUT_MS, ProviderCatalog
from modelcascade.config import (
    AttemptConfig,
    CascadeConfig,
    build_catalog,
    load_config,
    parse_config,
)
from modelcascade.exceptions import (
    CascadeError,
    ConfigurationError,
    NotFoundError,
    TransportError,
    TransportTimeout,
)
from modelcascade.executor import FallbackExecutor, RunOptions
from modelcascade.observability import InMemoryMetricHook, LoggingMetricHook, MetricHook
from modelcascade.registry import (
    Capability,
    CapabilityRegistry,
    CapabilityResult,
    FunctionCapability,
)
from modelcascade.timeouts import Deadline, TimeoutConfig
from modelcascade.transports import (
    CallableTransport,
    ChatRequest,
    ModelResponse,
    OllamaTransport,
    OpenAICompatibleTransport,
    Transport,
)
from modelcascade.types import (
    ALL_ATTEMPTS_FAILED,
    CANCELLED,
    EMPTY_RESPONSE,
    GLOBAL_TIMEOUT,
    AttemptDescriptor,
    AttemptOutcome,
    AttemptPayload,
    AttemptStatus,
    FailureSummary,
    FallbackRun,
    RunState,
)

__all__ = [
    "__version__",
    # Catalog
    "ProviderCatalog",
    "DEFAULT_TIMEOUT_MS",
    # Executor
    "FallbackExecutor",
    "RunOptions",
    # Types
    "AttemptDescriptor",
    "AttemptOutcome",
    "AttemptPayload",
    "AttemptStatus",
    "FailureSummary",
    "FallbackRun",
    "RunState",
    "ALL_ATTEMPTS_FAILED",
    "GLOBAL_TIMEOUT",
    "CANCELLED",
    "EMPTY_RESPONSE",
    # Transports
    "Transport",
    "CallableTransport",
    "ChatRequest",
    "ModelResponse",
    "OllamaTransport",
    "OpenAICompatibleTransport",
    # Configuration
    "AttemptConfig",
    "CascadeConfig",
    "TimeoutConfig",
    "Deadline",
    "build_catalog",
    "load_config",
    "parse_config",
    # Registry
    "Capability",
    "CapabilityRegistry",
    "CapabilityResult",
    "FunctionCapability",
    # Observability
    "MetricHook",
    "LoggingMetricHook",
    "InMemoryMetricHook",
    # Exceptions
    "CascadeError",
    "ConfigurationError",
    "NotFoundError",
    "TransportError",
    "TransportTimeout",
]
