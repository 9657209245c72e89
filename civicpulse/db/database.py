"""
Database Connection Layer for CivicPulse

Provides:
- Async connections with SQLAlchemy 2.0
- SQLite for development, PostgreSQL-ready URLs for production
- The key/value context source consumed by ContextStore
- Sentiment upsert, alert and learning-log writes, and stats queries

Usage:
    db = Database(DatabaseConfig.in_memory())
    await db.connect()

    async with db.session() as session:
        session.add(ThreatAlert(...))
        await session.commit()

    await db.disconnect()
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig
from .models import (
    Base, IntelligenceConfig, LearningLog, SentimentLog, ThreatAlert, utcnow_naive,
)

logger = logging.getLogger("civicpulse.db")

# Columns refreshed when an existing sentiment row is reprocessed
_SENTIMENT_UPDATE_FIELDS = (
    "content_id", "content_text", "language_detected", "sentiment_polarity",
    "sentiment_score", "emotional_tone", "confidence_score", "content_category",
    "keywords_detected", "hashtags", "mentions", "region_detected",
    "threat_level", "author_handle", "engagement_metrics",
)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Async Database Class
# =============================================================================

class Database:
    """
    Async database connection manager.

    Handles:
    - Engine and session management
    - Schema creation
    - The queries the signal engine needs
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """
        Initialize database connection.

        Args:
            config: Database configuration. Uses defaults if None.
        """
        self.config = config or DatabaseConfig()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._connected = False
        # SQLite shares one connection; sessions must not interleave on it
        self._sqlite_lock: Optional[asyncio.Lock] = (
            asyncio.Lock() if self.config.is_sqlite else None
        )

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """
        Establish database connection and create tables.
        """
        if self._connected:
            return

        logger.info(f"Connecting to database: {self.config.safe_url}")

        engine_kwargs: Dict[str, Any] = {"echo": self.config.echo}

        if self.config.is_sqlite:
            # One shared connection keeps :memory: databases alive
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_size"] = self.config.pool_size
            engine_kwargs["max_overflow"] = self.config.max_overflow
            engine_kwargs["pool_timeout"] = self.config.pool_timeout
            engine_kwargs["pool_recycle"] = self.config.pool_recycle

        self._engine = create_async_engine(self.config.url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._connected = True
        logger.info("Database connection established, tables created")

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._connected = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self):
        """
        Get an async session context manager.

        Usage:
            async with db.session() as session:
                session.add(alert)
                await session.commit()
        """
        if not self._session_factory:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._sqlite_lock or nullcontext():
            async with self._session_factory() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise

    async def add(self, obj: Base) -> Base:
        """Add a single object to the database."""
        async with self.session() as session:
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
            return obj

    # =========================================================================
    # Context Source
    # =========================================================================

    async def load_context(self, config_type: str) -> Dict[str, Any]:
        """All rows of one config type as {config_key: config_value}."""
        async with self.session() as session:
            stmt = select(IntelligenceConfig).where(
                IntelligenceConfig.config_type == config_type
            )
            result = await session.execute(stmt)
            return {row.config_key: row.config_value for row in result.scalars().all()}

    async def save_context(
        self,
        config_type: str,
        key: str,
        value: Any,
        evolved_at: datetime,
    ) -> None:
        """Insert or replace one context key."""
        async with self.session() as session:
            stmt = select(IntelligenceConfig).where(
                IntelligenceConfig.config_type == config_type,
                IntelligenceConfig.config_key == key,
            )
            result = await session.execute(stmt)
            existing = result.scalar_one_or_none()

            if existing:
                existing.config_value = value
                existing.last_evolution_update = _to_naive_utc(evolved_at)
            else:
                session.add(IntelligenceConfig(
                    config_type=config_type,
                    config_key=key,
                    config_value=value,
                    last_evolution_update=_to_naive_utc(evolved_at),
                ))
            await session.commit()

    # =========================================================================
    # Signal Sinks
    # =========================================================================

    async def upsert_sentiment(self, record: SentimentLog) -> SentimentLog:
        """
        Insert or update a sentiment log.

        If a row with the same platform + content_key exists, its
        classification fields are overwritten.
        """
        async with self.session() as session:
            stmt = select(SentimentLog).where(
                SentimentLog.platform == record.platform,
                SentimentLog.content_key == record.content_key,
            )
            result = await session.execute(stmt)
            existing = result.scalar_one_or_none()

            if existing:
                for name in _SENTIMENT_UPDATE_FIELDS:
                    setattr(existing, name, getattr(record, name))
                existing.analyzed_at = utcnow_naive()
                await session.commit()
                return existing

            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def add_alert(self, alert: ThreatAlert) -> ThreatAlert:
        return await self.add(alert)

    async def resolve_alert(self, alert_id: str) -> bool:
        """Mark an alert inactive. Returns False if it was not active."""
        async with self.session() as session:
            stmt = update(ThreatAlert).where(
                ThreatAlert.id == alert_id,
                ThreatAlert.is_active == True,  # noqa: E712
            ).values(is_active=False, resolved_at=utcnow_naive())
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    async def add_learning_log(self, entry: LearningLog) -> LearningLog:
        return await self.add(entry)

    async def get_learning_logs(self, learning_type: Optional[str] = None) -> List[LearningLog]:
        async with self.session() as session:
            stmt = select(LearningLog).order_by(LearningLog.created_at)
            if learning_type:
                stmt = stmt.where(LearningLog.learning_type == learning_type)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_sentiment(self, platform: str, content_key: str) -> Optional[SentimentLog]:
        async with self.session() as session:
            stmt = select(SentimentLog).where(
                SentimentLog.platform == platform,
                SentimentLog.content_key == content_key,
            ).limit(1)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    # =========================================================================
    # Statistics
    # =========================================================================

    async def count_sentiments(self) -> int:
        async with self.session() as session:
            result = await session.execute(select(func.count()).select_from(SentimentLog))
            return result.scalar() or 0

    async def count_active_alerts(self) -> int:
        async with self.session() as session:
            result = await session.execute(
                select(func.count()).select_from(ThreatAlert).where(
                    ThreatAlert.is_active == True  # noqa: E712
                )
            )
            return result.scalar() or 0

    async def recent_hashtags(self, since: datetime) -> List[str]:
        """Distinct hashtags on signals analyzed since ``since``, newest first."""
        async with self.session() as session:
            stmt = select(SentimentLog.hashtags).where(
                SentimentLog.analyzed_at >= _to_naive_utc(since)
            ).order_by(SentimentLog.analyzed_at.desc())
            result = await session.execute(stmt)

            seen: List[str] = []
            for tags in result.scalars().all():
                for tag in tags or []:
                    if tag not in seen:
                        seen.append(tag)
            return seen
