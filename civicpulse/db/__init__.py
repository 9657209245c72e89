# Database package for CivicPulse
"""
Persistence layer for the signal engine.

Provides:
- SQLAlchemy 2.0 async models
- Session management and the queries the engine needs
- Support for SQLite (dev) and PostgreSQL (production)
"""

from .models import (
    Base,
    IntelligenceConfig,
    SentimentLog,
    ThreatAlert,
    LearningLog,
)
from .database import Database

__all__ = [
    "Base",
    "IntelligenceConfig",
    "SentimentLog",
    "ThreatAlert",
    "LearningLog",
    "Database",
]
