"""
Threat Alerting for CivicPulse

Raises an alert for every signal classified high or critical. The alert
is built even when it cannot be stored, so callers always see it.
"""

from __future__ import annotations

import logging
from typing import Optional

from .db import Database
from .db.models import ThreatAlert
from .models import AlertRecord, SignalRequest, SignalResult

logger = logging.getLogger("civicpulse.alerts")


class ThreatAlerter:
    """
    Args:
        database: Alert store; None keeps alerts in memory only.
        excerpt_chars: Characters of content quoted in the description.
    """

    def __init__(self, database: Optional[Database] = None, excerpt_chars: int = 100):
        self.db = database
        self.excerpt_chars = excerpt_chars

    def build_alert(self, request: SignalRequest, result: SignalResult) -> AlertRecord:
        level = result.threat_level
        excerpt = request.content[:self.excerpt_chars]
        return AlertRecord(
            severity=level,
            title=f"{level.value.upper()} Threat Detected",
            description=f'Potential threat detected in {request.platform} content: "{excerpt}..."',
            affected_regions=[result.region] if result.region else [],
            sentiment_snapshot={
                "sentiment_score": result.score,
                "emotions": list(result.emotions),
                "categories": list(result.categories),
            },
            platform=request.platform,
        )

    async def maybe_alert(
        self, request: SignalRequest, result: SignalResult
    ) -> Optional[AlertRecord]:
        """Create an alert iff the threat level is high or critical."""
        if not result.threat_level.triggers_alert:
            return None

        record = self.build_alert(request, result)
        logger.warning(f"{record.title} on {request.platform} (regions: {record.affected_regions or 'none'})")

        if self.db is None:
            return record

        try:
            stored = await self.db.add_alert(ThreatAlert(
                alert_type=record.alert_type,
                severity=record.severity.value,
                title=record.title,
                description=record.description,
                affected_regions=record.affected_regions,
                sentiment_data=record.sentiment_snapshot,
                platform=record.platform,
                is_active=True,
            ))
            record.id = stored.id
        except Exception as e:
            logger.error(f"Failed to store threat alert: {e}")
        return record

    async def resolve(self, alert_id: str) -> bool:
        """Mark an alert inactive."""
        if self.db is None:
            return False
        resolved = await self.db.resolve_alert(alert_id)
        if resolved:
            logger.info(f"Alert {alert_id} resolved")
        return resolved
