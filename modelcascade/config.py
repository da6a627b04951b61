"""
Cascade configuration.

Parses the declarative part of a cascade (ids, tiers, timeouts, enabled
flags) from dictionaries, YAML or JSON files into validated pydantic
models, and turns it into a ProviderCatalog once the caller supplies the
id -> transport side table. Transports are runtime objects and are never
part of the configuration data.

Example YAML:

    default_timeout_ms: 30000
    global_timeout_ms: 120000
    attempts:
      - id: opencode/minimax-m2.1-free
        tier: 0
      - id: ollama/llama3.2
        tier: 2
        timeoutMs: 60000
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modelcascade.catalog import DEFAULT_TIMEOUT_MS, ProviderCatalog
from modelcascade.exceptions import ConfigurationError
from modelcascade.executor import RunOptions
from modelcascade.timeouts import TimeoutConfig

logger = logging.getLogger(__name__)


class AttemptConfig(BaseModel):
    """Declarative part of one catalog entry."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str = Field(min_length=1)
    tier: int = Field(default=0, ge=0)
    timeout_ms: int | None = Field(default=None, gt=0, alias="timeoutMs")
    enabled: bool = True
    provider: str | None = None
    model: str | None = None
    base_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_entry(self) -> dict[str, Any]:
        """Entry mapping accepted by ProviderCatalog.build()."""
        metadata = dict(self.metadata)
        for key in ("provider", "model", "base_url"):
            value = getattr(self, key)
            if value is not None:
                metadata.setdefault(key, value)
        return {
            "id": self.id,
            "tier": self.tier,
            "timeout_ms": self.timeout_ms,
            "enabled": self.enabled,
            "metadata": metadata,
        }


class CascadeConfig(BaseModel):
    """Complete cascade configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, alias="defaultTimeoutMs")
    global_timeout_ms: int | None = Field(default=None, gt=0, alias="globalTimeoutMs")
    attempts: list[AttemptConfig] = Field(default_factory=list)

    @field_validator("attempts")
    @classmethod
    def _unique_ids(cls, attempts: list[AttemptConfig]) -> list[AttemptConfig]:
        seen: set[str] = set()
        for attempt in attempts:
            if attempt.id in seen:
                raise ValueError(f"duplicate attempt id '{attempt.id}'")
            seen.add(attempt.id)
        return attempts

    @property
    def timeouts(self) -> TimeoutConfig:
        return TimeoutConfig(
            default_attempt_timeout_ms=self.default_timeout_ms,
            global_timeout_ms=self.global_timeout_ms,
        )

    def run_options(self, **kwargs: Any) -> RunOptions:
        """RunOptions carrying the configured global timeout."""
        kwargs.setdefault("global_timeout_ms", self.global_timeout_ms)
        return RunOptions(**kwargs)


def parse_config(data: Mapping[str, Any]) -> CascadeConfig:
    """
    Validate configuration data.

    Raises:
        ConfigurationError: If the data does not describe a valid cascade.
    """
    try:
        return CascadeConfig.model_validate(dict(data))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise ConfigurationError(
            "cascade",
            message=f"Invalid cascade configuration ({len(errors)} error(s))",
            details={"errors": errors},
        ) from e


def load_config(path: str | Path) -> CascadeConfig:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: File ending in .yaml, .yml or .json.

    Raises:
        ConfigurationError: If the file is missing, unreadable, of an
            unknown type or invalid.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(
            str(path),
            expected=".yaml, .yml or .json file",
            received=suffix or "<no extension>",
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(str(path), message=f"Cannot read config file: {e}") from e

    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(str(path), message=f"Cannot parse config file: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            str(path), expected="mapping at top level", received=type(data).__name__
        )

    logger.debug(f"Loaded cascade config from {path}")
    return parse_config(data)


def build_catalog(config: CascadeConfig, transports: Mapping[str, Any]) -> ProviderCatalog:
    """
    Build a catalog from configuration and a transport side table.

    Args:
        config: Validated configuration.
        transports: Mapping of attempt id to transport.

    Raises:
        ConfigurationError: If an attempt has no transport.
    """
    return ProviderCatalog.build(
        [attempt.to_entry() for attempt in config.attempts],
        transports=transports,
        default_timeout_ms=config.default_timeout_ms,
    )
