"""
Signal data models for CivicPulse.

Defines the request/response contract of the classification engine:
- SignalRequest: one piece of social text to classify
- SignalResult: the immutable structured signal derived from it
- AlertRecord: raised for high/critical threat levels
- LearningLogEntry: audit record feeding the knowledge base

Also hosts the two fixed mappings every classifier shares:
score -> polarity (neutral deadband) and threat score -> threat level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Errors
# =============================================================================

class CivicPulseError(Exception):
    """Base class for engine errors."""


class InvalidSignalRequest(CivicPulseError, ValueError):
    """Request rejected before classification (missing or empty content)."""


class ContextValidationError(CivicPulseError):
    """A context bundle or merge patch failed validation."""


class ClassifierError(CivicPulseError):
    """External classifier failed; always handled inside the adapter."""


# =============================================================================
# Enums
# =============================================================================

class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ThreatLevel(str, Enum):
    """Discrete threat escalation levels, lowest first."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def triggers_alert(self) -> bool:
        return self in (ThreatLevel.HIGH, ThreatLevel.CRITICAL)


class Language(str, Enum):
    ENGLISH = "en"
    FRENCH = "fr"
    PIDGIN = "pidgin"


class Category(str, Enum):
    """Fixed topical taxonomy."""
    ELECTION = "election"
    GOVERNANCE = "governance"
    SECURITY = "security"
    ECONOMY = "economy"
    YOUTH = "youth"
    INFRASTRUCTURE = "infrastructure"
    CORRUPTION = "corruption"
    EDUCATION = "education"


CATEGORY_VALUES = frozenset(c.value for c in Category)
LANGUAGE_VALUES = frozenset(lang.value for lang in Language)

NEUTRAL_DEADBAND = 0.1

# (minimum threat score, level), checked top-down
THREAT_BREAKPOINTS: Tuple[Tuple[float, ThreatLevel], ...] = (
    (6.0, ThreatLevel.CRITICAL),
    (4.0, ThreatLevel.HIGH),
    (2.0, ThreatLevel.MEDIUM),
)


def polarity_from_score(score: float) -> Polarity:
    """|score| <= 0.1 is neutral; otherwise the sign decides."""
    if score > NEUTRAL_DEADBAND:
        return Polarity.POSITIVE
    if score < -NEUTRAL_DEADBAND:
        return Polarity.NEGATIVE
    return Polarity.NEUTRAL


def threat_level_from_score(threat_score: float) -> ThreatLevel:
    """
    Map an additive threat score to a level.

    The score is a plain sum of keyword weights, not a probability:
    >=6 critical, >=4 high, >=2 medium, >0 low, else none.
    """
    for minimum, level in THREAT_BREAKPOINTS:
        if threat_score >= minimum:
            return level
    if threat_score > 0:
        return ThreatLevel.LOW
    return ThreatLevel.NONE


def _dedupe(items) -> List[str]:
    seen = []
    for item in items or []:
        if item not in seen:
            seen.append(item)
    return seen


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Request / Result
# =============================================================================

@dataclass
class SignalRequest:
    """One unit of input text plus its provenance."""
    content: str
    platform: str = "unknown"
    content_id: Optional[str] = None
    author_handle: Optional[str] = None
    engagement_metrics: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignalRequest":
        """Build from a payload using either snake_case or camelCase keys."""
        if not isinstance(data, dict):
            raise InvalidSignalRequest("Signal request must be a mapping")
        metrics = data.get("engagement_metrics", data.get("engagementMetrics")) or {}
        if not isinstance(metrics, dict):
            raise InvalidSignalRequest("Engagement metrics must be a mapping")
        return cls(
            content=data.get("content") or "",
            platform=data.get("platform") or "unknown",
            content_id=data.get("content_id", data.get("contentId")),
            author_handle=data.get("author_handle", data.get("authorHandle")),
            engagement_metrics=dict(metrics),
        )

    def validate(self) -> None:
        if not isinstance(self.content, str) or not self.content.strip():
            raise InvalidSignalRequest("Signal request content is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "platform": self.platform,
            "contentId": self.content_id,
            "authorHandle": self.author_handle,
            "engagementMetrics": dict(self.engagement_metrics),
        }


@dataclass(frozen=True)
class SignalResult:
    """
    Structured signal for one piece of text.

    Immutable once produced. ``threat_score`` is the internal additive
    score the level was derived from (None when the producer only
    reported a level).
    """
    polarity: Polarity
    score: float
    emotions: Tuple[str, ...]
    confidence: float
    language: Language
    categories: Tuple[str, ...]
    keywords: Tuple[str, ...]
    hashtags: Tuple[str, ...]
    mentions: Tuple[str, ...]
    threat_level: ThreatLevel
    region: Optional[str] = None
    threat_score: Optional[float] = None

    def to_dict(self, include_internal: bool = False) -> Dict[str, Any]:
        """External (camelCase) representation."""
        payload = {
            "polarity": self.polarity.value,
            "score": self.score,
            "emotions": list(self.emotions),
            "confidence": self.confidence,
            "language": self.language.value,
            "categories": list(self.categories),
            "keywords": list(self.keywords),
            "hashtags": list(self.hashtags),
            "mentions": list(self.mentions),
            "region": self.region,
            "threatLevel": self.threat_level.value,
        }
        if include_internal:
            payload["threatScore"] = self.threat_score
        return payload


@dataclass
class AlertRecord:
    """Threat alert raised for one triggering SignalResult."""
    severity: ThreatLevel
    title: str
    description: str
    affected_regions: List[str] = field(default_factory=list)
    sentiment_snapshot: Dict[str, Any] = field(default_factory=dict)
    alert_type: str = "threat"
    platform: Optional[str] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class LearningLogEntry:
    """Append-only audit of one classification or learning event."""
    input_data: Dict[str, Any]
    pattern_identified: str
    confidence_improvement: float
    learning_type: str = "local_context_learning"
    validation_score: float = 0.9
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None


@dataclass
class BulkItemResult:
    """Outcome of one request inside a batch."""
    request: SignalRequest
    success: bool
    result: Optional[SignalResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"request": self.request.to_dict(), "success": self.success}
        if self.success and self.result is not None:
            payload["result"] = self.result.to_dict()
        else:
            payload["error"] = self.error
        return payload


@dataclass
class BulkReport:
    """Per-item outcomes of a batch plus a tally."""
    items: List[BulkItemResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.items],
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }
