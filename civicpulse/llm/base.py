"""
Base Classifier Interface for CivicPulse

Provides:
- Abstract SignalClassifier interface (swappable)
- ClassificationOutcome tagged result (Ok | Degraded)
- HeuristicSignalClassifier: the always-available rule-based tier

Classifiers are chained: a primary classifier that cannot produce a result
hands the text to its fallback and tags the outcome as degraded, so the
degradation is visible in logs and counters without reaching the caller.

Usage:
    fallback = HeuristicSignalClassifier(store)
    primary = OpenAIClassifier(config, fallback=fallback)

    outcome = await primary.classify("Wetin dey happen for Bamenda?")
    if outcome.degraded:
        print(outcome.reason)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from ..context.store import ContextStore
from ..heuristic import HeuristicClassifier

# Partial signal in the external camelCase shape; any field may be missing
PartialSignalResult = Dict[str, Any]


# =============================================================================
# Outcome
# =============================================================================

@dataclass(frozen=True)
class ClassificationOutcome:
    """
    Result of one classification attempt.

    ``degraded`` is False for Ok outcomes. Degraded outcomes carry the
    reason the preferred classifier was bypassed.
    """
    partial: PartialSignalResult
    source: str
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, partial: PartialSignalResult, source: str) -> "ClassificationOutcome":
        return cls(partial=partial, source=source)

    def degrade(self, reason: str) -> "ClassificationOutcome":
        """Same partial result, tagged as a fallback."""
        return replace(self, degraded=True, reason=reason)


# =============================================================================
# Abstract Classifier
# =============================================================================

class SignalClassifier(ABC):
    """
    Abstract base class for signal classifiers.

    Implementations must not raise for well-formed text; failures are
    expressed as degraded outcomes.
    """

    name: str = "classifier"

    @abstractmethod
    async def classify(self, text: str) -> ClassificationOutcome:
        """
        Classify one text.

        Args:
            text: The post text to classify.

        Returns:
            ClassificationOutcome wrapping a partial signal result.
        """

    async def close(self) -> None:
        """Clean up resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class HeuristicSignalClassifier(SignalClassifier):
    """Rule-based tier bound to the context store."""

    name = "heuristic"

    def __init__(
        self,
        store: ContextStore,
        heuristic: Optional[HeuristicClassifier] = None,
    ):
        self.store = store
        self.heuristic = heuristic or HeuristicClassifier()

    async def classify(self, text: str) -> ClassificationOutcome:
        bundle = await self.store.get()
        result = self.heuristic.classify(text, bundle)
        return ClassificationOutcome.ok(result.to_dict(include_internal=True), self.name)
