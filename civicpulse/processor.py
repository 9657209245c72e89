"""
Signal Processor: Classification Orchestrator for CivicPulse

Connects the pieces of the engine:
1. Request validation
2. Classifier chain (external classifier -> heuristic fallback)
3. Normalization of the partial result into a complete SignalResult
4. Side effects: persistence, threat alerting, learning log

Only invalid requests are reported to the caller. Classifier degradation
and side-effect failures are logged and counted in ``processor.stats``.

Usage:
    async with await create_processor(ProcessorConfig.from_env()) as processor:
        result = await processor.analyze_sentiment(
            SignalRequest(content="Ambazonia crisis don kill plenty people", platform="twitter")
        )
        print(result.threat_level)
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from .alerts import ThreatAlerter
from .config import ProcessorConfig
from .context.store import ContextStore
from .db import Database
from .learning import LearningFeedbackLoop
from .llm.base import HeuristicSignalClassifier, PartialSignalResult, SignalClassifier
from .llm.openai import OpenAIClassifier
from .models import (
    CATEGORY_VALUES,
    BulkItemResult,
    BulkReport,
    InvalidSignalRequest,
    Language,
    SignalRequest,
    SignalResult,
    ThreatLevel,
    _dedupe,
    polarity_from_score,
    threat_level_from_score,
    utcnow,
)
from .persister import ResultPersister

logger = logging.getLogger("civicpulse.processor")

E = TypeVar("E")

DEFAULT_CONFIDENCE = 0.5
LEARNING_CONFIDENCE_DELTA = 0.1

RequestLike = Union[SignalRequest, Dict[str, Any]]


# =============================================================================
# Normalization
# =============================================================================

def _coerce_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return default


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    number = _as_number(value)
    if number is None:
        return default
    return max(low, min(high, number))


def _str_list(value: Any, strip_prefix: str = "", unique: bool = True) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    items = []
    for item in value:
        if not isinstance(item, str):
            continue
        item = item.strip().lstrip(strip_prefix) if strip_prefix else item.strip()
        if item:
            items.append(item)
    return _dedupe(items) if unique else items


def normalize_partial(partial: PartialSignalResult) -> SignalResult:
    """
    Fill a partial classifier answer into a complete SignalResult.

    Missing or unusable fields take safe defaults. Polarity is always
    re-derived from the final score.
    """
    partial = partial if isinstance(partial, dict) else {}

    score = _clamp(partial.get("score"), -1.0, 1.0, 0.0)
    threat_score = _as_number(partial.get("threatScore"))

    threat_level = _coerce_enum(ThreatLevel, partial.get("threatLevel"), None)
    if threat_level is None:
        if threat_score is not None:
            threat_level = threat_level_from_score(threat_score)
        else:
            threat_level = ThreatLevel.NONE

    categories = [
        c for c in _str_list(partial.get("categories")) if c.lower() in CATEGORY_VALUES
    ]
    region = partial.get("region")
    region = region.strip() if isinstance(region, str) and region.strip() else None

    return SignalResult(
        polarity=polarity_from_score(score),
        score=score,
        emotions=tuple(_str_list(partial.get("emotions"))),
        confidence=_clamp(partial.get("confidence"), 0.0, 1.0, DEFAULT_CONFIDENCE),
        language=_coerce_enum(Language, partial.get("language"), Language.ENGLISH),
        categories=tuple(_dedupe(c.lower() for c in categories)),
        keywords=tuple(_str_list(partial.get("keywords"))),
        hashtags=tuple(_str_list(partial.get("hashtags"), "#", unique=False)),
        mentions=tuple(_str_list(partial.get("mentions"), "@", unique=False)),
        threat_level=threat_level,
        region=region,
        threat_score=threat_score,
    )


def coerce_request(item: RequestLike) -> SignalRequest:
    if isinstance(item, SignalRequest):
        return item
    return SignalRequest.from_dict(item)


# =============================================================================
# Processor
# =============================================================================

class SignalProcessor:
    """
    Orchestrates classification and its side effects.

    Args:
        classifier: Head of the classifier chain.
        store: Context store (shared with the heuristic tier and the learning loop).
        database: Optional persistence; sinks degrade to in-memory without it.
        config: Engine configuration.
    """

    def __init__(
        self,
        classifier: SignalClassifier,
        store: ContextStore,
        database: Optional[Database] = None,
        config: Optional[ProcessorConfig] = None,
        persister: Optional[ResultPersister] = None,
        alerter: Optional[ThreatAlerter] = None,
        learning: Optional[LearningFeedbackLoop] = None,
    ):
        self.config = config or ProcessorConfig()
        self.classifier = classifier
        self.store = store
        self.db = database
        self.persister = persister or ResultPersister(database)
        self.alerter = alerter or ThreatAlerter(database, self.config.alert_excerpt_chars)
        self.learning = learning or LearningFeedbackLoop(store, database)
        self._owns_database = False

        self.stats: Dict[str, int] = {
            "analyzed": 0,
            "degraded": 0,
            "rejected": 0,
            "alerts": 0,
            "side_effect_errors": 0,
        }

    async def close(self) -> None:
        await self.classifier.close()
        if self._owns_database and self.db is not None:
            await self.db.disconnect()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # Classification
    # =========================================================================

    async def analyze(self, request: RequestLike) -> SignalResult:
        """
        Classify one request without side effects.

        Raises:
            InvalidSignalRequest: content missing or empty.
        """
        try:
            request = coerce_request(request)
            request.validate()
        except InvalidSignalRequest:
            self.stats["rejected"] += 1
            raise

        outcome = await self.classifier.classify(request.content)
        if outcome.degraded:
            self.stats["degraded"] += 1
            logger.info(f"Degraded classification via {outcome.source}: {outcome.reason}")

        result = normalize_partial(outcome.partial)
        self.stats["analyzed"] += 1
        return result

    async def analyze_sentiment(self, request: RequestLike) -> SignalResult:
        """Classify, then persist, alert and log learning concurrently."""
        request = coerce_request(request)
        result = await self.analyze(request)

        description = (
            f"Detected {result.polarity.value} sentiment with "
            f"{', '.join(result.emotions)} emotions"
        )
        outcomes = await asyncio.gather(
            self.persister.store(request, result),
            self.alerter.maybe_alert(request, result),
            self.learning.record(
                {"content": request.content, "platform": request.platform},
                description,
                LEARNING_CONFIDENCE_DELTA,
            ),
            return_exceptions=True,
        )

        for name, outcome in zip(("persist", "alert", "learning"), outcomes):
            if isinstance(outcome, Exception):
                self.stats["side_effect_errors"] += 1
                logger.error(f"Side effect '{name}' failed: {outcome}")
        if outcomes[1] is not None and not isinstance(outcomes[1], Exception):
            self.stats["alerts"] += 1

        return result

    async def bulk_analyze(self, requests: Iterable[RequestLike]) -> BulkReport:
        """Process requests one by one; a failing item never aborts the batch."""
        report = BulkReport()
        for index, item in enumerate(requests):
            try:
                request = coerce_request(item)
            except InvalidSignalRequest as e:
                report.items.append(BulkItemResult(
                    request=SignalRequest(content=""), success=False, error=str(e)
                ))
                continue

            try:
                result = await self.analyze_sentiment(request)
                report.items.append(BulkItemResult(request=request, success=True, result=result))
            except Exception as e:
                logger.warning(f"Bulk item {index} failed: {e}")
                report.items.append(BulkItemResult(request=request, success=False, error=str(e)))

        logger.info(
            f"Bulk analysis: {report.succeeded}/{report.processed} succeeded, {report.failed} failed"
        )
        return report

    # =========================================================================
    # Reporting
    # =========================================================================

    async def get_stats(self) -> Dict[str, Any]:
        """Engine summary: totals, active alerts, trending hashtags, status."""
        if self.db is None:
            return {
                "totalAnalyzed": self.stats["analyzed"],
                "activeAlerts": self.stats["alerts"],
                "trendingTopics": [],
                "status": "operational",
            }

        since = utcnow() - timedelta(hours=self.config.trending_window_hours)
        try:
            total = await self.db.count_sentiments()
            active = await self.db.count_active_alerts()
            trending = await self.db.recent_hashtags(since)
        except Exception as e:
            logger.error(f"Failed to collect stats: {e}")
            return {
                "totalAnalyzed": 0,
                "activeAlerts": 0,
                "trendingTopics": [],
                "status": "degraded",
            }

        return {
            "totalAnalyzed": total,
            "activeAlerts": active,
            "trendingTopics": trending,
            "status": "operational",
        }


# =============================================================================
# Factory
# =============================================================================

async def create_processor(
    config: Optional[ProcessorConfig] = None,
    database: Optional[Database] = None,
    use_database: bool = True,
) -> SignalProcessor:
    """
    Build a processor from configuration.

    Connects its own database unless one is passed in (or persistence is
    disabled), and puts the external classifier in front of the heuristic
    tier when an API key is configured.
    """
    config = config or ProcessorConfig.from_env()

    owns_database = False
    if database is None and use_database:
        database = Database(config.database)
        await database.connect()
        owns_database = True

    store = ContextStore(source=database, config=config.context)
    classifier: SignalClassifier = HeuristicSignalClassifier(store)
    if config.llm.is_configured():
        classifier = OpenAIClassifier(config.llm, fallback=classifier)
        logger.info(f"External classifier enabled ({config.llm.model})")
    else:
        logger.info("No external classifier configured, using heuristic classifier")

    processor = SignalProcessor(classifier, store, database=database, config=config)
    processor._owns_database = owns_database
    return processor
