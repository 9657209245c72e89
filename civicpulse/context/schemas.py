"""
Context Bundle Data Contracts.

Typed, versioned shape of the local-context knowledge base. Each top-level
field corresponds to one row of the configuration store. Strict validation
keeps malformed learned entries out of the bundle.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import CATEGORY_VALUES, LANGUAGE_VALUES

# Storage keys, one per dictionary
SLANG_PATTERNS = "slang_patterns"
POLITICAL_FIGURES = "political_figures"
REGIONAL_CONTEXT = "regional_context"
THREAT_MULTIPLIERS = "threat_multipliers"
SARCASM_MARKERS = "sarcasm_markers"
TOPIC_KEYWORDS = "topic_keywords"

CONTEXT_KEYS = (
    SLANG_PATTERNS,
    POLITICAL_FIGURES,
    REGIONAL_CONTEXT,
    THREAT_MULTIPLIERS,
    SARCASM_MARKERS,
    TOPIC_KEYWORDS,
)


def _clean_phrases(values: List[str]) -> List[str]:
    """Strip and lowercase, drop empties, keep first occurrence order."""
    cleaned: List[str] = []
    for value in values:
        phrase = value.strip().lower()
        if phrase and phrase not in cleaned:
            cleaned.append(phrase)
    return cleaned


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# --- 1. Slang ---

class LearnedPattern(_Frozen):
    """Phrase folded in by the learning loop."""
    pattern: str = Field(..., min_length=1)
    sentiment: Optional[str] = None
    confidence: float = Field(0.7, ge=0.0, le=1.0)
    learned_at: datetime

    @field_validator("sentiment")
    @classmethod
    def validate_sentiment(cls, v):
        if v is not None and v not in ("positive", "negative", "neutral"):
            raise ValueError(f"Unknown sentiment label: {v!r}")
        return v


class SlangLexicon(_Frozen):
    """Slang for one language: phrase buckets, emotion buckets, learned phrases."""
    phrases: Dict[str, List[str]] = Field(default_factory=dict)
    emotions: Dict[str, List[str]] = Field(default_factory=dict)
    learned_patterns: List[LearnedPattern] = Field(default_factory=list)

    @field_validator("phrases", "emotions")
    @classmethod
    def clean_buckets(cls, v):
        return {bucket.strip().lower(): _clean_phrases(items) for bucket, items in v.items()}

    def bucket(self, name: str) -> List[str]:
        return self.phrases.get(name, [])

    def learned_with_sentiment(self, sentiment: str) -> List[str]:
        return [p.pattern for p in self.learned_patterns if p.sentiment == sentiment]


# --- 2. Political figures ---

class DetectedFigure(_Frozen):
    name: str = Field(..., min_length=1)
    first_detected: datetime
    confidence: float = Field(0.8, ge=0.0, le=1.0)


class PoliticalFigures(_Frozen):
    current_officials: Dict[str, List[str]] = Field(default_factory=dict)
    nicknames: Dict[str, List[str]] = Field(default_factory=dict)
    political_parties: List[str] = Field(default_factory=list)
    detected_figures: List[DetectedFigure] = Field(default_factory=list)

    @field_validator("current_officials", "nicknames")
    @classmethod
    def clean_groups(cls, v):
        return {key: _clean_phrases(names) for key, names in v.items()}

    @field_validator("political_parties")
    @classmethod
    def clean_parties(cls, v):
        return _clean_phrases(v)

    def figure_names(self) -> List[str]:
        """Every name or alias that marks governance discourse."""
        names: List[str] = []
        for group in (self.current_officials, self.nicknames):
            for aliases in group.values():
                names.extend(aliases)
        names.extend(f.name for f in self.detected_figures)
        return _clean_phrases(names)


# --- 3. Regions ---

class RegionProfile(_Frozen):
    keywords: List[str] = Field(default_factory=list)
    emotions: List[str] = Field(default_factory=list)

    @field_validator("keywords", "emotions")
    @classmethod
    def clean(cls, v):
        return _clean_phrases(v)


# --- 4. The bundle ---

class ContextBundle(_Frozen):
    """
    The dynamic knowledge base consumed by the heuristic classifier.

    Instances are immutable; the store swaps whole bundles on refresh
    and builds new ones on merge.
    """
    slang_patterns: Dict[str, SlangLexicon] = Field(default_factory=dict)
    political_figures: PoliticalFigures = Field(default_factory=PoliticalFigures)
    regional_context: Dict[str, RegionProfile] = Field(default_factory=dict)
    threat_multipliers: Dict[str, float] = Field(default_factory=dict)
    sarcasm_markers: List[str] = Field(default_factory=list)
    topic_keywords: Dict[str, List[str]] = Field(default_factory=dict)

    version: int = Field(1, ge=1)
    last_evolution: Optional[datetime] = None

    @field_validator("slang_patterns")
    @classmethod
    def validate_languages(cls, v):
        unknown = set(v) - LANGUAGE_VALUES
        if unknown:
            raise ValueError(f"Unknown language codes: {sorted(unknown)}")
        return v

    @field_validator("threat_multipliers")
    @classmethod
    def validate_multipliers(cls, v):
        cleaned: Dict[str, float] = {}
        for keyword, weight in v.items():
            if weight < 0:
                raise ValueError(f"Threat weight for {keyword!r} must be non-negative")
            if keyword.strip():
                cleaned[keyword.strip()] = float(weight)
        return cleaned

    @field_validator("sarcasm_markers")
    @classmethod
    def clean_markers(cls, v):
        return _clean_phrases(v)

    @field_validator("topic_keywords")
    @classmethod
    def validate_topics(cls, v):
        unknown = set(v) - CATEGORY_VALUES
        if unknown:
            raise ValueError(f"Topics outside the category taxonomy: {sorted(unknown)}")
        return {topic: _clean_phrases(words) for topic, words in v.items()}

    def lexicon(self, language: str) -> SlangLexicon:
        return self.slang_patterns.get(language) or SlangLexicon()

    def section(self, key: str) -> Any:
        """JSON-ready value of one storage key."""
        return self.model_dump(mode="json")[key]
