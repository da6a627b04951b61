"""
Provider catalog for the fallback cascade.

Holds the ordered, tiered set of attempt targets and exposes a
deterministic iteration order. The catalog is immutable apart from
set_enabled(), which swaps in a new entries tuple so runs that already
took a snapshot are never affected.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any, Union

from modelcascade.exceptions import ConfigurationError, NotFoundError
from modelcascade.types import AttemptDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000

EntryInput = Union[AttemptDescriptor, Mapping[str, Any]]


class ProviderCatalog:
    """
    Ordered, tiered collection of attempt descriptors.

    Entries are tried tier by tier (ascending); within a tier the original
    declaration order wins, regardless of how often entries have been
    toggled.

    Example:
        >>> catalog = ProviderCatalog.build([
        ...     {"id": "m1", "tier": 0, "transport": call_m1},
        ...     {"id": "m2", "tier": 0, "transport": call_m2},
        ...     {"id": "ollama", "tier": 1, "transport": call_ollama},
        ... ])
        >>> [d.id for d in catalog.ordered_attempts(override="ollama")]
        ['ollama', 'm1', 'm2']
    """

    def __init__(
        self,
        entries: Iterable[AttemptDescriptor] = (),
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """
        Initialize the catalog from already-validated descriptors.

        Prefer build(), which performs validation and fills defaults.

        Args:
            entries: Validated descriptors.
            default_timeout_ms: Timeout applied to entries without one.
        """
        self.default_timeout_ms = default_timeout_ms
        self._entries: tuple[AttemptDescriptor, ...] = tuple(
            d if d.timeout_ms is not None else replace(d, timeout_ms=default_timeout_ms)
            for d in entries
        )
        self._lock = threading.Lock()

    @classmethod
    def build(
        cls,
        entries: Iterable[EntryInput],
        transports: Mapping[str, Any] | None = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> ProviderCatalog:
        """
        Validate entries and build a catalog.

        Args:
            entries: AttemptDescriptor objects or mappings with keys
                id, tier, timeout_ms (or timeoutMs), enabled, transport
                and metadata.
            transports: Side table mapping id to transport, used for
                entries that do not carry their own transport.
            default_timeout_ms: Timeout for entries that omit one.

        Returns:
            A new ProviderCatalog.

        Raises:
            ConfigurationError: On a duplicate or empty id, an invalid tier
                or timeout, or a missing transport. Nothing is built.
        """
        if not isinstance(default_timeout_ms, int) or default_timeout_ms <= 0:
            raise ConfigurationError(
                "default_timeout_ms",
                expected="positive integer (milliseconds)",
                received=default_timeout_ms,
            )

        transports = transports or {}
        descriptors: list[AttemptDescriptor] = []
        seen: set[str] = set()

        for index, entry in enumerate(entries):
            descriptor = cls._coerce_entry(entry, index, transports, default_timeout_ms)
            if descriptor.id in seen:
                raise ConfigurationError(
                    descriptor.id,
                    message=f"Duplicate attempt id '{descriptor.id}'",
                    details={"index": index},
                )
            seen.add(descriptor.id)
            descriptors.append(descriptor)

        logger.debug(f"Built provider catalog with {len(descriptors)} entries")
        return cls(descriptors, default_timeout_ms=default_timeout_ms)

    @staticmethod
    def _coerce_entry(
        entry: EntryInput,
        index: int,
        transports: Mapping[str, Any],
        default_timeout_ms: int,
    ) -> AttemptDescriptor:
        if isinstance(entry, AttemptDescriptor):
            data: dict[str, Any] = entry.to_dict()
            data["transport"] = entry.transport
        elif isinstance(entry, Mapping):
            data = dict(entry)
        else:
            raise ConfigurationError(
                f"entries[{index}]",
                expected="AttemptDescriptor or mapping",
                received=type(entry).__name__,
            )

        attempt_id = data.get("id")
        if not isinstance(attempt_id, str) or not attempt_id:
            raise ConfigurationError(
                f"entries[{index}].id",
                expected="non-empty string",
                received=attempt_id,
            )

        tier = data.get("tier", 0)
        if tier is None:
            tier = 0
        if isinstance(tier, bool) or not isinstance(tier, int) or tier < 0:
            raise ConfigurationError(
                attempt_id,
                expected="non-negative integer tier",
                received=tier,
            )

        timeout_ms = data.get("timeout_ms", data.get("timeoutMs"))
        if timeout_ms is None:
            timeout_ms = default_timeout_ms
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)) or timeout_ms <= 0:
            raise ConfigurationError(
                attempt_id,
                expected="positive timeout_ms",
                received=timeout_ms,
            )

        transport = data.get("transport")
        if transport is None:
            transport = transports.get(attempt_id)
        if transport is None:
            raise ConfigurationError(
                attempt_id,
                message=f"Attempt '{attempt_id}' has no transport",
            )

        enabled = data.get("enabled", True)
        return AttemptDescriptor(
            id=attempt_id,
            transport=transport,
            tier=tier,
            timeout_ms=timeout_ms,
            enabled=True if enabled is None else bool(enabled),
            index=index,
            metadata=dict(data.get("metadata") or {}),
        )

    def ordered_attempts(self, override: str | None = None) -> tuple[AttemptDescriptor, ...]:
        """
        Produce the execution order for one run.

        The result is computed from a snapshot of the catalog, so calling
        it twice without an intervening set_enabled() yields equal
        sequences and a later mutation never changes a sequence already
        handed out.

        Args:
            override: Id to try first. Ignored if unknown or disabled.

        Returns:
            Enabled descriptors, override first, then by (tier, index).
        """
        snapshot = self._entries
        ordered = sorted(
            (d for d in snapshot if d.enabled),
            key=lambda d: d.sort_key,
        )

        if override is None:
            return tuple(ordered)

        preferred = next((d for d in ordered if d.id == override), None)
        if preferred is None:
            if any(d.id == override for d in snapshot):
                logger.debug(f"Override '{override}' is disabled, using catalog order")
            else:
                logger.warning(f"Override '{override}' not in catalog, using catalog order")
            return tuple(ordered)

        return (preferred, *(d for d in ordered if d.id != override))

    def set_enabled(self, attempt_id: str, enabled: bool) -> None:
        """
        Enable or disable one entry.

        Args:
            attempt_id: Id of the entry.
            enabled: New availability.

        Raises:
            NotFoundError: If no entry has this id.
        """
        with self._lock:
            entries = list(self._entries)
            for position, descriptor in enumerate(entries):
                if descriptor.id == attempt_id:
                    if descriptor.enabled != enabled:
                        entries[position] = replace(descriptor, enabled=enabled)
                        self._entries = tuple(entries)
                        logger.info(
                            f"Attempt '{attempt_id}' {'enabled' if enabled else 'disabled'}"
                        )
                    return
        raise NotFoundError("attempt", attempt_id, available=self.ids())

    def enable(self, attempt_id: str) -> None:
        """Enable an entry."""
        self.set_enabled(attempt_id, True)

    def disable(self, attempt_id: str) -> None:
        """Disable an entry."""
        self.set_enabled(attempt_id, False)

    def get(self, attempt_id: str) -> AttemptDescriptor:
        """
        Look up a descriptor by id.

        Raises:
            NotFoundError: If no entry has this id.
        """
        for descriptor in self._entries:
            if descriptor.id == attempt_id:
                return descriptor
        raise NotFoundError("attempt", attempt_id, available=self.ids())

    def ids(self) -> list[str]:
        """Ids in declaration order."""
        return [d.id for d in self._entries]

    def enabled_ids(self) -> list[str]:
        return [d.id for d in self.ordered_attempts()]

    def to_dict(self) -> dict[str, Any]:
        """Serialize catalog data (transports are not included)."""
        return {
            "default_timeout_ms": self.default_timeout_ms,
            "entries": [d.to_dict() for d in self._entries],
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, attempt_id: object) -> bool:
        return any(d.id == attempt_id for d in self._entries)

    def __repr__(self) -> str:
        return f"ProviderCatalog(entries={self.ids()!r})"
