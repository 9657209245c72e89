# CivicPulse Signal Engine
"""
Civic sentiment and threat signal engine for Cameroonian social media.

Provides:
- Multilingual (English, French, Pidgin) heuristic classification
- An external chat-completions classifier with transparent fallback
- An evolving local-context knowledge base (slang, figures, regions)
- Persistence, threat alerting and a learning feedback loop
"""

from .models import (
    AlertRecord,
    BulkItemResult,
    BulkReport,
    Category,
    CivicPulseError,
    ClassifierError,
    ContextValidationError,
    InvalidSignalRequest,
    Language,
    LearningLogEntry,
    Polarity,
    SignalRequest,
    SignalResult,
    ThreatLevel,
)
from .config import ProcessorConfig, LLMConfig, DatabaseConfig, ContextConfig
from .context import ContextBundle, ContextStore, default_bundle
from .heuristic import HeuristicClassifier
from .processor import SignalProcessor, create_processor, normalize_partial

__version__ = "0.1.0"

__all__ = [
    "AlertRecord", "BulkItemResult", "BulkReport", "Category",
    "CivicPulseError", "ClassifierError", "ContextValidationError",
    "InvalidSignalRequest", "Language", "LearningLogEntry", "Polarity",
    "SignalRequest", "SignalResult", "ThreatLevel",
    "ProcessorConfig", "LLMConfig", "DatabaseConfig", "ContextConfig",
    "ContextBundle", "ContextStore", "default_bundle",
    "HeuristicClassifier",
    "SignalProcessor", "create_processor", "normalize_partial",
]
