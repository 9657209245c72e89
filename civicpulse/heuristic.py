"""
Heuristic Classifier: Rule-Based Signal Detection

Provides:
- Language detection (Pidgin > French > English priority cascade)
- Lexicon sentiment scoring with local slang and sarcasm inversion
- Emotion, category and region detection from the context bundle
- Additive threat scoring from weighted keywords
- Hashtag / mention extraction

Always available; used as the reliability floor when the external
classifier is unavailable. Pure function of (text, bundle).
"""

from __future__ import annotations

import re
import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .context.defaults import CITY_REGIONS, REGION_ALIASES
from .context.schemas import ContextBundle
from .models import (
    Language,
    SignalResult,
    polarity_from_score,
    threat_level_from_score,
)

logger = logging.getLogger("civicpulse.heuristic")

HEURISTIC_CONFIDENCE = 0.85
WORD_WEIGHT = 0.5
SCORE_SCALE = 3.0


# =============================================================================
# Text Preprocessing
# =============================================================================

class TextPreprocessor:
    """Social media text utilities."""

    MENTION_PATTERN = re.compile(r'@(\w+)')
    HASHTAG_PATTERN = re.compile(r'#(\w+)')
    FRENCH_FUNCTION_WORDS = re.compile(
        r'\b(le|la|les|un|une|des|et|ou|mais|donc|ni|ce|cette|ces|mon|ma|mes)\b'
    )

    @classmethod
    def normalize(cls, text: str) -> str:
        return re.sub(r'\s+', ' ', text.lower()).strip()

    @classmethod
    def extract_hashtags(cls, text: str) -> List[str]:
        """Hashtags with case preserved and '#' stripped."""
        return cls.HASHTAG_PATTERN.findall(text)

    @classmethod
    def extract_mentions(cls, text: str) -> List[str]:
        """@mentions with case preserved and '@' stripped."""
        return cls.MENTION_PATTERN.findall(text)


@lru_cache(maxsize=4096)
def _phrase_pattern(phrase: str, prefix: bool = False) -> Pattern:
    # Leading boundary always, so "war" never fires inside "award";
    # prefix patterns also match inflections ("attacked", "killings")
    tail = r'' if prefix else r'(?!\w)'
    return re.compile(r'(?<!\w)' + re.escape(phrase.lower()) + tail)


def count_phrase(text: str, phrase: str, prefix: bool = False) -> int:
    """Occurrences of a phrase in already-lowercased text."""
    if not phrase.strip():
        return 0
    return len(_phrase_pattern(phrase.strip(), prefix).findall(text))


def contains_phrase(text: str, phrase: str, prefix: bool = False) -> bool:
    if not phrase.strip():
        return False
    return _phrase_pattern(phrase.strip(), prefix).search(text) is not None


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    return any(contains_phrase(text, p) for p in phrases)


def _append_unique(target: List[str], items: Iterable[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


# =============================================================================
# Classifier
# =============================================================================

class HeuristicClassifier:
    """
    Rule-based sentiment/emotion/category/threat classifier.

    Operates purely on the context bundle's dictionaries, so two calls with
    the same (text, bundle) always produce the same SignalResult.
    """

    POSITIVE_WORDS: Tuple[str, ...] = (
        "good", "great", "excellent", "amazing", "wonderful", "love", "happy", "proud",
    )
    NEGATIVE_WORDS: Tuple[str, ...] = (
        "bad", "terrible", "awful", "hate", "angry", "sad", "frustrated", "disappointed",
    )
    DEFAULT_EMOTIONS: Dict[str, Tuple[str, ...]] = {
        "anger": ("angry", "furious", "mad", "vex"),
        "joy": ("happy", "glad", "excited"),
        "fear": ("afraid", "scared", "worried"),
        "hope": ("hope", "optimistic", "faith"),
    }

    def __init__(self, confidence: float = HEURISTIC_CONFIDENCE):
        self.confidence = confidence
        self.preprocessor = TextPreprocessor()

    def classify(self, text: str, bundle: ContextBundle) -> SignalResult:
        """Classify one text against a context bundle."""
        lower = self.preprocessor.normalize(text)

        language = self.detect_language(lower, bundle)
        score = self.score_sentiment(lower, language, bundle)
        emotions = self.detect_emotions(lower, language, bundle)
        categories, region_emotions = self.detect_categories(lower, bundle)
        _append_unique(emotions, region_emotions)
        threat_score = self.score_threat(lower, bundle)
        region = self.detect_region(lower, bundle)

        keywords: List[str] = []
        _append_unique(keywords, categories)
        _append_unique(keywords, emotions)

        logger.debug(
            f"Heuristic: lang={language.value} score={score:.2f} "
            f"threat={threat_score:.1f} categories={categories}"
        )
        return SignalResult(
            polarity=polarity_from_score(score),
            score=score,
            emotions=tuple(emotions),
            confidence=self.confidence,
            language=language,
            categories=tuple(categories),
            keywords=tuple(keywords),
            hashtags=tuple(self.preprocessor.extract_hashtags(text)),
            mentions=tuple(self.preprocessor.extract_mentions(text)),
            threat_level=threat_level_from_score(threat_score),
            region=region,
            threat_score=threat_score,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def detect_language(self, lower: str, bundle: ContextBundle) -> Language:
        """Pidgin wins over French when both match (common code-mixing)."""
        pidgin = bundle.lexicon(Language.PIDGIN.value)
        if contains_any(lower, pidgin.bucket("greetings")) or contains_any(
            lower, pidgin.bucket("agreement")
        ):
            return Language.PIDGIN

        french = bundle.lexicon(Language.FRENCH.value)
        if self.preprocessor.FRENCH_FUNCTION_WORDS.search(lower) or contains_any(
            lower, french.bucket("slang")
        ):
            return Language.FRENCH

        return Language.ENGLISH

    def score_sentiment(self, lower: str, language: Language, bundle: ContextBundle) -> float:
        """
        Lexicon score in [-1, 1].

        +0.5 per positive occurrence, -0.5 per negative occurrence, sign
        inverted when a sarcasm marker is present, then /3 and clamped.
        """
        lexicon = bundle.lexicon(language.value)
        positive = list(self.POSITIVE_WORDS)
        negative = list(self.NEGATIVE_WORDS)
        positive.extend(lexicon.emotions.get("joy", []))
        negative.extend(lexicon.emotions.get("anger", []))
        positive.extend(lexicon.learned_with_sentiment("positive"))
        negative.extend(lexicon.learned_with_sentiment("negative"))

        raw = 0.0
        for word in positive:
            raw += count_phrase(lower, word) * WORD_WEIGHT
        for word in negative:
            raw -= count_phrase(lower, word) * WORD_WEIGHT

        if contains_any(lower, bundle.sarcasm_markers):
            raw = -raw

        return max(-1.0, min(1.0, raw / SCORE_SCALE))

    def detect_emotions(self, lower: str, language: Language, bundle: ContextBundle) -> List[str]:
        table: Dict[str, List[str]] = {k: list(v) for k, v in self.DEFAULT_EMOTIONS.items()}
        for emotion, phrases in bundle.lexicon(language.value).emotions.items():
            _append_unique(table.setdefault(emotion, []), phrases)

        return [emotion for emotion, phrases in table.items() if contains_any(lower, phrases)]

    def detect_categories(self, lower: str, bundle: ContextBundle) -> Tuple[List[str], List[str]]:
        """Returns (categories, emotions contributed by crisis regions)."""
        categories: List[str] = []
        region_emotions: List[str] = []
        figures = bundle.political_figures

        if contains_any(lower, figures.figure_names()):
            categories.append("governance")
        if contains_any(lower, figures.political_parties):
            categories.append("election")

        for profile in bundle.regional_context.values():
            if contains_any(lower, profile.keywords):
                _append_unique(categories, ["security"])
                _append_unique(region_emotions, profile.emotions)

        for topic, words in bundle.topic_keywords.items():
            if contains_any(lower, words):
                _append_unique(categories, [topic])

        return categories, region_emotions

    def score_threat(self, lower: str, bundle: ContextBundle) -> float:
        """Sum of weights of the threat keywords present (presence, not count)."""
        return float(sum(
            weight for keyword, weight in bundle.threat_multipliers.items()
            if contains_phrase(lower, keyword, prefix=True)
        ))

    def detect_region(self, lower: str, bundle: ContextBundle) -> Optional[str]:
        """Configured region names first, then the city table; first match wins."""
        known = {name for name, _ in REGION_ALIASES}
        candidates = list(REGION_ALIASES) + [
            (name, (name.lower(),)) for name in bundle.regional_context if name not in known
        ]
        for name, aliases in candidates:
            if contains_any(lower, aliases):
                return name

        for city, region in CITY_REGIONS:
            if contains_phrase(lower, city):
                return region
        return None
