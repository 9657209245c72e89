"""
Learning Feedback Loop for CivicPulse

Every classification (and every explicit learning event) leaves an
audit entry. Entries whose pattern description carries a recognized tag
also evolve the local-context knowledge base:

    new_political_figure  ->  political_figures.detected_figures
    new_slang_pattern     ->  slang_patterns[<language>].learned_patterns

Nothing here raises; storage and merge failures are logged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .context.schemas import POLITICAL_FIGURES, SLANG_PATTERNS
from .context.store import ContextStore
from .db import Database
from .db.models import LearningLog
from .models import ContextValidationError, LearningLogEntry, utcnow

logger = logging.getLogger("civicpulse.learning")

LEARNING_TYPE = "local_context_learning"
VALIDATION_SCORE = 0.9

TAG_POLITICAL_FIGURE = "new_political_figure"
TAG_SLANG_PATTERN = "new_slang_pattern"

DEFAULT_FIGURE_CONFIDENCE = 0.8
DEFAULT_PATTERN_CONFIDENCE = 0.7
DEFAULT_PATTERN_LANGUAGE = "en"


def _field(input_data: Dict[str, Any], snake: str, camel: str) -> Any:
    value = input_data.get(snake)
    return input_data.get(camel) if value is None else value


def _confidence(input_data: Dict[str, Any], default: float) -> float:
    confidence = input_data.get("confidence")
    return default if confidence is None else confidence


def figure_patch(input_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    name = _field(input_data, "new_figure", "newFigure")
    if not name:
        return None
    return {
        POLITICAL_FIGURES: {
            "detected_figures": [{
                "name": name,
                "first_detected": utcnow().isoformat(),
                "confidence": _confidence(input_data, DEFAULT_FIGURE_CONFIDENCE),
            }]
        }
    }


def slang_patch(input_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    pattern = _field(input_data, "new_pattern", "newPattern")
    if not pattern:
        return None
    language = input_data.get("language") or DEFAULT_PATTERN_LANGUAGE
    return {
        SLANG_PATTERNS: {
            language: {
                "learned_patterns": [{
                    "pattern": pattern,
                    "sentiment": input_data.get("sentiment"),
                    "confidence": _confidence(input_data, DEFAULT_PATTERN_CONFIDENCE),
                    "learned_at": utcnow().isoformat(),
                }]
            }
        }
    }


class LearningFeedbackLoop:
    """
    Records learning events and folds tagged ones into the context store.

    Args:
        store: Knowledge base to evolve.
        database: Learning-log store; None keeps entries in memory only.
    """

    def __init__(self, store: ContextStore, database: Optional[Database] = None):
        self.store = store
        self.db = database

    async def record(
        self,
        input_data: Dict[str, Any],
        pattern_description: str,
        confidence_delta: float,
    ) -> LearningLogEntry:
        entry = LearningLogEntry(
            input_data=dict(input_data),
            pattern_identified=pattern_description,
            confidence_improvement=confidence_delta,
            learning_type=LEARNING_TYPE,
            validation_score=VALIDATION_SCORE,
        )

        if self.db is not None:
            try:
                stored = await self.db.add_learning_log(LearningLog(
                    learning_type=entry.learning_type,
                    input_data=entry.input_data,
                    pattern_identified=entry.pattern_identified,
                    confidence_improvement=entry.confidence_improvement,
                    validation_score=entry.validation_score,
                ))
                entry.id = stored.id
            except Exception as e:
                logger.error(f"Failed to store learning log: {e}")

        if TAG_POLITICAL_FIGURE in pattern_description:
            await self._evolve(figure_patch(input_data), TAG_POLITICAL_FIGURE)
        if TAG_SLANG_PATTERN in pattern_description:
            await self._evolve(slang_patch(input_data), TAG_SLANG_PATTERN)

        return entry

    async def _evolve(self, patch: Optional[Dict[str, Any]], tag: str) -> None:
        if patch is None:
            logger.warning(f"Learning event tagged {tag} without the data to learn from")
            return
        try:
            bundle = await self.store.merge(patch)
            logger.info(f"Learned {tag} (context version {bundle.version})")
        except ContextValidationError as e:
            logger.warning(f"Rejected {tag} update: {e}")
        except Exception as e:
            logger.error(f"Failed to apply {tag} update: {e}")

    # =========================================================================
    # Convenience
    # =========================================================================

    async def learn_political_figure(
        self,
        name: str,
        confidence: Optional[float] = None,
        source_content: Optional[str] = None,
    ) -> LearningLogEntry:
        input_data: Dict[str, Any] = {"new_figure": name}
        if confidence is not None:
            input_data["confidence"] = confidence
        if source_content:
            input_data["content"] = source_content
        return await self.record(
            input_data, f"{TAG_POLITICAL_FIGURE}: {name}", _confidence(input_data, DEFAULT_FIGURE_CONFIDENCE)
        )

    async def learn_slang_pattern(
        self,
        pattern: str,
        language: str = DEFAULT_PATTERN_LANGUAGE,
        sentiment: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> LearningLogEntry:
        input_data: Dict[str, Any] = {"new_pattern": pattern, "language": language}
        if sentiment is not None:
            input_data["sentiment"] = sentiment
        if confidence is not None:
            input_data["confidence"] = confidence
        return await self.record(
            input_data, f"{TAG_SLANG_PATTERN}: {pattern}", _confidence(input_data, DEFAULT_PATTERN_CONFIDENCE)
        )
