# Classifier tiers for CivicPulse
"""
Classifier interface and implementations.

Provides:
- SignalClassifier ABC and ClassificationOutcome (Ok | Degraded)
- HeuristicSignalClassifier (always available)
- OpenAIClassifier (external service, falls back transparently)
"""

from .base import (
    ClassificationOutcome,
    HeuristicSignalClassifier,
    PartialSignalResult,
    SignalClassifier,
)
from .openai import OpenAIClassifier, parse_json_payload
from .prompts import SENTIMENT_ANALYST_SYSTEM

__all__ = [
    "ClassificationOutcome",
    "HeuristicSignalClassifier",
    "PartialSignalResult",
    "SignalClassifier",
    "OpenAIClassifier",
    "parse_json_payload",
    "SENTIMENT_ANALYST_SYSTEM",
]
