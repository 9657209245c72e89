"""
Result Persister for CivicPulse

Writes one sentiment-log row per classified content. Reprocessing the
same content (same caller id, or same platform + text) updates the row
instead of adding a duplicate. Storage failures are logged, never raised.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Optional

from .db import Database
from .db.models import SentimentLog
from .models import SignalRequest, SignalResult

logger = logging.getLogger("civicpulse.persister")


def content_key(request: SignalRequest) -> str:
    """Stable identity of a request's content."""
    if request.content_id:
        return str(request.content_id)
    digest = hashlib.sha256(f"{request.platform}\n{request.content}".encode("utf-8"))
    return digest.hexdigest()


def to_sentiment_log(request: SignalRequest, result: SignalResult) -> SentimentLog:
    return SentimentLog(
        platform=request.platform,
        content_key=content_key(request),
        content_id=request.content_id,
        content_text=request.content,
        language_detected=result.language.value,
        sentiment_polarity=result.polarity.value,
        sentiment_score=result.score,
        emotional_tone=list(result.emotions),
        confidence_score=result.confidence,
        content_category=list(result.categories),
        keywords_detected=list(result.keywords),
        hashtags=list(result.hashtags),
        mentions=list(result.mentions),
        region_detected=result.region,
        threat_level=result.threat_level.value,
        author_handle=request.author_handle,
        engagement_metrics=dict(request.engagement_metrics),
    )


class ResultPersister:
    """Best-effort sink for classified signals."""

    def __init__(self, database: Optional[Database] = None):
        self.db = database

    async def store(self, request: SignalRequest, result: SignalResult) -> Optional[str]:
        """
        Upsert the signal row.

        Returns:
            The content key on success, None if nothing was stored.
        """
        if self.db is None:
            logger.debug("No database configured, skipping persistence")
            return None

        key = content_key(request)
        try:
            await self.db.upsert_sentiment(to_sentiment_log(request, result))
        except Exception as e:
            logger.error(f"Failed to store sentiment for {request.platform}/{key[:12]}: {e}")
            return None
        return key
