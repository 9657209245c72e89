"""
Database Models for CivicPulse

SQLAlchemy 2.0 models for storing:
- Local-context configuration rows (the evolving knowledge base)
- Classified sentiment logs, one row per content identity
- Threat alerts raised for high/critical signals
- Learning-log audit entries

Design Principles:
- UUID string primary keys
- Timestamps are stored as naive UTC
- JSON fields for list/dict payloads
- Indexes optimized for time-series queries
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON, Boolean, DateTime, Float, Index, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Base Class
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# =============================================================================
# Knowledge Base
# =============================================================================

class IntelligenceConfig(Base):
    """
    One key of a configuration bundle.

    Rows sharing a ``config_type`` (e.g. "local_context") together form
    one bundle; ``config_value`` holds that key's JSON section.
    """
    __tablename__ = "intelligence_config"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    config_key: Mapped[str] = mapped_column(String(100), nullable=False)
    config_type: Mapped[str] = mapped_column(String(100), nullable=False)
    config_value: Mapped[Any] = mapped_column(JSON, nullable=False)
    last_evolution_update: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, nullable=False
    )

    __table_args__ = (
        UniqueConstraint('config_key', 'config_type', name='uq_config_key_type'),
        Index('ix_config_type', 'config_type'),
    )


# =============================================================================
# Signals
# =============================================================================

class SentimentLog(Base):
    """
    Classified signal for one piece of content.

    ``content_key`` is the stable identity of the content (caller id or a
    hash of platform + text) so reprocessing updates rather than duplicates.
    """
    __tablename__ = "sentiment_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    content_key: Mapped[str] = mapped_column(String(255), nullable=False)
    content_id: Mapped[Optional[str]] = mapped_column(String(255))
    content_text: Mapped[str] = mapped_column(Text, nullable=False)

    # Classification
    language_detected: Mapped[str] = mapped_column(String(10), default="en")
    sentiment_polarity: Mapped[str] = mapped_column(String(20), nullable=False)
    sentiment_score: Mapped[float] = mapped_column(Float, default=0.0)
    emotional_tone: Mapped[Optional[List[str]]] = mapped_column(JSON)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0)
    content_category: Mapped[Optional[List[str]]] = mapped_column(JSON)
    keywords_detected: Mapped[Optional[List[str]]] = mapped_column(JSON)
    hashtags: Mapped[Optional[List[str]]] = mapped_column(JSON)
    mentions: Mapped[Optional[List[str]]] = mapped_column(JSON)
    region_detected: Mapped[Optional[str]] = mapped_column(String(100))
    threat_level: Mapped[str] = mapped_column(String(20), default="none")

    # Provenance
    author_handle: Mapped[Optional[str]] = mapped_column(String(255))
    engagement_metrics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    analyzed_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False
    )

    __table_args__ = (
        UniqueConstraint('platform', 'content_key', name='uq_sentiment_content'),
        Index('ix_sentiment_analyzed', 'analyzed_at'),
        Index('ix_sentiment_threat', 'threat_level'),
        Index('ix_sentiment_region', 'region_detected'),
    )


class ThreatAlert(Base):
    """Alert raised when a signal reaches high or critical threat level."""
    __tablename__ = "threat_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    alert_type: Mapped[str] = mapped_column(String(50), default="threat")
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    affected_regions: Mapped[Optional[List[str]]] = mapped_column(JSON)
    sentiment_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    platform: Mapped[Optional[str]] = mapped_column(String(50))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, nullable=False
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index('ix_alert_active', 'is_active'),
        Index('ix_alert_severity', 'severity'),
        Index('ix_alert_created', 'created_at'),
    )


class LearningLog(Base):
    """Append-only audit of classification and learning events."""
    __tablename__ = "learning_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    learning_type: Mapped[str] = mapped_column(String(100), nullable=False)
    input_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    pattern_identified: Mapped[str] = mapped_column(Text, nullable=False)
    confidence_improvement: Mapped[float] = mapped_column(Float, default=0.0)
    validation_score: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, nullable=False
    )

    __table_args__ = (
        Index('ix_learning_type', 'learning_type'),
        Index('ix_learning_created', 'created_at'),
    )
