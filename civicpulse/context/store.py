"""
Context Store: TTL-cached access to the local-context knowledge base.

Provides:
- get(): cached bundle, refreshed from the configuration source once the
  cache is older than the TTL; defaults whenever the source is empty or
  unreachable (never raises)
- merge(): append-only deep merge of a learned-pattern patch into a new
  bundle version, persisted and swapped into the cache

Bundles are immutable; a refresh or merge replaces the cached reference in
one assignment, so concurrent readers see either the old or the new
version and reads need no lock. Merges are serialized so each one builds on
the version the previous merge produced.

Usage:
    store = ContextStore(source=database)
    bundle = await store.get()
    await store.merge({"sarcasm_markers": ["sotey"]})
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from ..config import ContextConfig
from ..models import ContextValidationError
from .defaults import default_bundle
from .schemas import CONTEXT_KEYS, ContextBundle

logger = logging.getLogger("civicpulse.context.store")

META_KEY = "bundle_meta"


class ContextSource(Protocol):
    """Structured key/value configuration store scoped by config type."""

    async def load_context(self, config_type: str) -> Dict[str, Any]:
        ...

    async def save_context(
        self,
        config_type: str,
        key: str,
        value: Any,
        evolved_at: datetime,
    ) -> None:
        ...


def _phrase_key(item: Any) -> Any:
    return item.strip().lower() if isinstance(item, str) else item


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``patch`` into ``base`` in place without losing knowledge.

    Maps merge recursively, lists gain the patch items they do not already
    contain, and scalars are only set when the key is absent.
    """
    for key, value in patch.items():
        if key not in base or base[key] is None:
            base[key] = copy.deepcopy(value)
        elif isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        elif isinstance(base[key], list) and isinstance(value, list):
            present = [_phrase_key(item) for item in base[key]]
            for item in value:
                if _phrase_key(item) not in present:
                    base[key].append(copy.deepcopy(item))
                    present.append(_phrase_key(item))
        elif type(base[key]) is not type(value) and not (
            isinstance(base[key], (int, float)) and isinstance(value, (int, float))
        ):
            raise ContextValidationError(
                f"Cannot merge {type(value).__name__} into {type(base[key]).__name__} at {key!r}"
            )
    return base


class ContextStore:
    """
    Explicit cache object for the knowledge base.

    Args:
        source: Configuration store; None serves defaults plus in-memory merges.
        config: TTL and config-type discriminator.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        source: Optional[ContextSource] = None,
        config: Optional[ContextConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.config = config or ContextConfig()
        self._clock = clock
        self._bundle: Optional[ContextBundle] = None
        self._loaded_at: float = 0.0
        self._merge_lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[ContextBundle]:
        return self._bundle

    def invalidate(self) -> None:
        """Force the next get() to reload."""
        self._bundle = None
        self._loaded_at = 0.0

    def _is_fresh(self) -> bool:
        if self._bundle is None:
            return False
        return (self._clock() - self._loaded_at) < self.config.cache_ttl_seconds

    def _swap(self, bundle: ContextBundle) -> None:
        self._bundle = bundle
        self._loaded_at = self._clock()

    async def get(self) -> ContextBundle:
        """Return the current bundle. Never raises."""
        if self._is_fresh():
            logger.debug(f"Context cache hit (version {self._bundle.version})")
            return self._bundle

        if self.source is None:
            self._swap(self._bundle or default_bundle())
            return self._bundle

        try:
            rows = await self.source.load_context(self.config.config_type)
        except Exception as e:
            logger.warning(f"Failed to load local context, using defaults: {e}")
            return default_bundle()

        if not rows:
            logger.info("No persisted local context, using defaults")
            bundle = default_bundle()
        else:
            bundle = self._assemble(rows)

        self._swap(bundle)
        logger.info(f"Local context loaded (version {bundle.version})")
        return bundle

    def _assemble(self, rows: Dict[str, Any]) -> ContextBundle:
        """Build a bundle from stored rows, defaulting missing or invalid keys."""
        defaults = default_bundle()
        data: Dict[str, Any] = {}

        for key in CONTEXT_KEYS:
            if key not in rows:
                data[key] = defaults.section(key)
                continue
            try:
                ContextBundle.model_validate({key: rows[key]})
                data[key] = rows[key]
            except ValidationError as e:
                logger.warning(f"Rejected stored context key {key!r}, using default: {e}")
                data[key] = defaults.section(key)

        meta = rows.get(META_KEY) or {}
        data["version"] = meta.get("version", 1)
        data["last_evolution"] = meta.get("last_evolution")

        try:
            return ContextBundle.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Stored context metadata invalid, using defaults: {e}")
            return defaults

    async def merge(self, patch: Dict[str, Any]) -> ContextBundle:
        """
        Fold a learned-pattern patch into a new bundle version.

        Raises:
            ContextValidationError: patch has unknown keys or produces an
                invalid bundle. Nothing is persisted in that case.
        """
        if not isinstance(patch, dict) or not patch:
            raise ContextValidationError("Context patch must be a non-empty mapping")
        unknown = set(patch) - set(CONTEXT_KEYS)
        if unknown:
            raise ContextValidationError(f"Unknown context keys: {sorted(unknown)}")

        async with self._merge_lock:
            current = await self.get()
            evolved_at = datetime.now(timezone.utc)

            merged = deep_merge(current.model_dump(mode="json"), patch)
            merged["version"] = current.version + 1
            merged["last_evolution"] = evolved_at.isoformat()

            try:
                bundle = ContextBundle.model_validate(merged)
            except ValidationError as e:
                raise ContextValidationError(f"Context patch rejected: {e}") from e

            if self.source is not None:
                try:
                    for key in patch:
                        await self.source.save_context(
                            self.config.config_type, key, bundle.section(key), evolved_at
                        )
                    await self.source.save_context(
                        self.config.config_type,
                        META_KEY,
                        {"version": bundle.version, "last_evolution": evolved_at.isoformat()},
                        evolved_at,
                    )
                except Exception as e:
                    logger.error(f"Failed to persist context evolution: {e}")

            self._swap(bundle)
            logger.info(
                f"Local context evolved to version {bundle.version} "
                f"(keys: {', '.join(sorted(patch))})"
            )
            return bundle
