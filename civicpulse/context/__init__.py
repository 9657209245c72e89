# Local context knowledge base
"""
Dynamic linguistic/political reference data for CivicPulse.

Provides:
- Typed, validated ContextBundle (slang, figures, regions, threat weights)
- Hard-coded default bundle and region/city tables
- ContextStore with TTL caching and append-only evolution
"""

from .schemas import (
    ContextBundle,
    SlangLexicon,
    LearnedPattern,
    PoliticalFigures,
    DetectedFigure,
    RegionProfile,
    CONTEXT_KEYS,
)
from .defaults import default_bundle, CAMEROON_REGIONS, CITY_REGIONS, REGION_ALIASES
from .store import ContextStore, ContextSource, deep_merge

__all__ = [
    "ContextBundle", "SlangLexicon", "LearnedPattern", "PoliticalFigures",
    "DetectedFigure", "RegionProfile", "CONTEXT_KEYS",
    "default_bundle", "CAMEROON_REGIONS", "CITY_REGIONS", "REGION_ALIASES",
    "ContextStore", "ContextSource", "deep_merge",
]
