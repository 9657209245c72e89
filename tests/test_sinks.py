"""
Tests for CivicPulse side-effect sinks

Tests:
- Threat alert construction and storage
- Learning-log recording and knowledge-base evolution
- Sentiment persistence identity
- Database queries
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from civicpulse.alerts import ThreatAlerter
from civicpulse.config import DatabaseConfig
from civicpulse.context import ContextStore
from civicpulse.db import Database
from civicpulse.heuristic import HeuristicClassifier
from civicpulse.learning import LearningFeedbackLoop, figure_patch, slang_patch
from civicpulse.models import (
    Language,
    Polarity,
    SignalRequest,
    SignalResult,
    ThreatLevel,
    utcnow,
)
from civicpulse.persister import ResultPersister, content_key


def _result(level=ThreatLevel.CRITICAL, region="Northwest"):
    return SignalResult(
        polarity=Polarity.NEGATIVE,
        score=-0.5,
        emotions=("fear", "anger"),
        confidence=0.85,
        language=Language.PIDGIN,
        categories=("security",),
        keywords=("security", "fear", "anger"),
        hashtags=("Bamenda",),
        mentions=(),
        threat_level=level,
        region=region,
        threat_score=6.0,
    )


# =============================================================================
# Alerts
# =============================================================================

class TestThreatAlerter:
    """Test alert construction and thresholds."""

    def test_alert_shape(self):
        request = SignalRequest(content="x" * 150, platform="twitter")
        record = asyncio.run(ThreatAlerter().maybe_alert(request, _result()))

        assert record.severity == ThreatLevel.CRITICAL
        assert record.title == "CRITICAL Threat Detected"
        assert record.description == f'Potential threat detected in twitter content: "{"x" * 100}..."'
        assert record.affected_regions == ["Northwest"]
        assert record.sentiment_snapshot == {
            "sentiment_score": -0.5,
            "emotions": ["fear", "anger"],
            "categories": ["security"],
        }
        assert record.alert_type == "threat"

    def test_no_region(self):
        record = asyncio.run(ThreatAlerter().maybe_alert(
            SignalRequest(content="attack"), _result(ThreatLevel.HIGH, region=None)
        ))
        assert record.title == "HIGH Threat Detected"
        assert record.affected_regions == []

    def test_below_threshold(self):
        alerter = ThreatAlerter()
        request = SignalRequest(content="protest")
        for level in (ThreatLevel.NONE, ThreatLevel.LOW, ThreatLevel.MEDIUM):
            assert asyncio.run(alerter.maybe_alert(request, _result(level))) is None

    def test_stored_with_id(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                alerter = ThreatAlerter(db)
                record = await alerter.maybe_alert(SignalRequest(content="kill"), _result())
                active = await db.count_active_alerts()
                resolved = await alerter.resolve(record.id)
                resolved_again = await alerter.resolve(record.id)
                return record, active, resolved, resolved_again, await db.count_active_alerts()

        record, active, resolved, resolved_again, remaining = asyncio.run(scenario())
        assert record.id is not None
        assert active == 1
        assert resolved is True
        assert resolved_again is False
        assert remaining == 0

    def test_store_failure_still_returns_record(self):
        db = AsyncMock()
        db.add_alert.side_effect = RuntimeError("insert failed")
        record = asyncio.run(ThreatAlerter(db).maybe_alert(SignalRequest(content="kill"), _result()))

        assert record is not None
        assert record.id is None

    def test_no_deduplication(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                alerter = ThreatAlerter(db)
                request = SignalRequest(content="kill and bomb")
                await alerter.maybe_alert(request, _result())
                await alerter.maybe_alert(request, _result())
                return await db.count_active_alerts()

        assert asyncio.run(scenario()) == 2


# =============================================================================
# Learning
# =============================================================================

class TestLearningPatches:
    """Test patch construction from learning input."""

    def test_figure_patch(self):
        patch = figure_patch({"new_figure": "cabral libii"})
        figure = patch["political_figures"]["detected_figures"][0]
        assert figure["name"] == "cabral libii"
        assert figure["confidence"] == 0.8
        assert "first_detected" in figure

    def test_slang_patch_defaults_to_english(self):
        patch = slang_patch({"new_pattern": "sotey", "sentiment": "negative"})
        learned = patch["slang_patterns"]["en"]["learned_patterns"][0]
        assert learned["pattern"] == "sotey"
        assert learned["sentiment"] == "negative"
        assert learned["confidence"] == 0.7

    def test_missing_data(self):
        assert figure_patch({}) is None
        assert slang_patch({"language": "fr"}) is None

    def test_camel_case_keys(self):
        figure = figure_patch({"newFigure": "akere muna"})["political_figures"]["detected_figures"][0]
        learned = slang_patch({"newPattern": "sotey", "language": "pidgin"})["slang_patterns"]["pidgin"]
        assert figure["name"] == "akere muna"
        assert learned["learned_patterns"][0]["pattern"] == "sotey"

    def test_explicit_zero_confidence_kept(self):
        figure = figure_patch({"new_figure": "x", "confidence": 0.0})["political_figures"]["detected_figures"][0]
        learned = slang_patch({"new_pattern": "y", "confidence": 0.0})["slang_patterns"]["en"]["learned_patterns"][0]
        assert figure["confidence"] == 0.0
        assert learned["confidence"] == 0.0


class TestLearningFeedbackLoop:
    """Test learning-log recording and context evolution."""

    def test_record_plain_entry(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                store = ContextStore(source=db)
                loop = LearningFeedbackLoop(store, db)
                entry = await loop.record({"content": "hi"}, "Detected neutral sentiment with  emotions", 0.1)
                return entry, await db.get_learning_logs(), store.cached

        entry, logs, cached = asyncio.run(scenario())
        assert entry.id == logs[0].id
        assert logs[0].learning_type == "local_context_learning"
        assert logs[0].validation_score == 0.9
        # Untagged entries never touch the knowledge base
        assert cached is None

    def test_new_figure_feeds_classifier(self, store):
        loop = LearningFeedbackLoop(store)
        classifier = HeuristicClassifier()

        async def scenario():
            before = classifier.classify("Cabral Libii speaks tonight", await store.get())
            await loop.learn_political_figure("cabral libii", confidence=0.95)
            after = classifier.classify("Cabral Libii speaks tonight", await store.get())
            return before, after, await store.get()

        before, after, bundle = asyncio.run(scenario())
        assert "governance" not in before.categories
        assert "governance" in after.categories
        assert bundle.version == 2
        assert bundle.political_figures.detected_figures[0].confidence == 0.95

    def test_new_slang_pattern(self, store):
        loop = LearningFeedbackLoop(store)

        async def scenario():
            await loop.learn_slang_pattern("sotey", language="pidgin", sentiment="negative")
            return await store.get()

        bundle = asyncio.run(scenario())
        learned = bundle.lexicon("pidgin").learned_patterns
        assert [p.pattern for p in learned] == ["sotey"]
        # Existing pidgin knowledge survives the merge
        assert "how far" in bundle.lexicon("pidgin").bucket("greetings")

    def test_tag_in_description_drives_merge(self, store):
        loop = LearningFeedbackLoop(store)
        asyncio.run(loop.record({"new_pattern": "na wa", "language": "pidgin"}, "new_slang_pattern seen", 0.2))
        assert store.cached.lexicon("pidgin").learned_patterns[0].pattern == "na wa"

    def test_camel_case_record_evolves_context(self, store):
        loop = LearningFeedbackLoop(store)
        asyncio.run(loop.record({"newFigure": "akere muna"}, "new_political_figure seen", 0.1))
        assert "akere muna" in store.cached.political_figures.figure_names()

    def test_invalid_update_is_logged_not_raised(self, store):
        loop = LearningFeedbackLoop(store)

        async def scenario():
            entry = await loop.learn_slang_pattern("wunderbar", language="de")
            return entry, await store.get()

        entry, bundle = asyncio.run(scenario())
        assert entry.pattern_identified == "new_slang_pattern: wunderbar"
        assert bundle.version == 1

    def test_tag_without_data_still_logs(self, store):
        loop = LearningFeedbackLoop(store)
        entry = asyncio.run(loop.record({}, "new_political_figure", 0.1))
        assert entry.input_data == {}
        assert store.cached is None

    def test_log_failure_does_not_block_learning(self, store):
        db = AsyncMock()
        db.add_learning_log.side_effect = RuntimeError("log table locked")
        loop = LearningFeedbackLoop(store, db)

        entry = asyncio.run(loop.learn_political_figure("maurice kamto"))
        assert entry.id is None
        assert "maurice kamto" in store.cached.political_figures.figure_names()


# =============================================================================
# Persistence
# =============================================================================

class TestResultPersister:
    """Test content identity and best-effort storage."""

    def test_content_key_prefers_caller_id(self):
        assert content_key(SignalRequest(content="a", content_id="tw-1")) == "tw-1"

    def test_content_key_hash_is_stable(self):
        a = SignalRequest(content="same", platform="twitter")
        b = SignalRequest(content="same", platform="twitter")
        c = SignalRequest(content="same", platform="facebook")
        assert content_key(a) == content_key(b)
        assert content_key(a) != content_key(c)
        assert len(content_key(a)) == 64

    def test_upsert_by_content_id(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                persister = ResultPersister(db)
                await persister.store(SignalRequest(content="first", content_id="tw-1", platform="twitter"), _result())
                await persister.store(
                    SignalRequest(content="edited", content_id="tw-1", platform="twitter"),
                    _result(ThreatLevel.LOW),
                )
                row = await db.get_sentiment("twitter", "tw-1")
                return row, await db.count_sentiments()

        row, count = asyncio.run(scenario())
        assert count == 1
        assert row.content_text == "edited"
        assert row.threat_level == "low"
        assert row.emotional_tone == ["fear", "anger"]
        assert row.language_detected == "pidgin"

    def test_failure_is_swallowed(self):
        db = AsyncMock()
        db.upsert_sentiment.side_effect = RuntimeError("db gone")
        key = asyncio.run(ResultPersister(db).store(SignalRequest(content="x"), _result()))
        assert key is None

    def test_no_database(self):
        assert asyncio.run(ResultPersister().store(SignalRequest(content="x"), _result())) is None


# =============================================================================
# Database
# =============================================================================

class TestDatabase:
    """Test queries used by the engine."""

    def test_context_rows(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                await db.save_context("local_context", "sarcasm_markers", ["a"], utcnow())
                await db.save_context("local_context", "sarcasm_markers", ["a", "b"], utcnow())
                await db.save_context("other", "sarcasm_markers", ["z"], utcnow())
                return await db.load_context("local_context"), await db.load_context("missing")

        rows, empty = asyncio.run(scenario())
        assert rows == {"sarcasm_markers": ["a", "b"]}
        assert empty == {}

    def test_recent_hashtags_window(self, memory_db):
        async def scenario():
            async with memory_db() as db:
                persister = ResultPersister(db)
                await persister.store(SignalRequest(content="one"), _result())
                recent = await db.recent_hashtags(utcnow() - timedelta(hours=24))
                future = await db.recent_hashtags(utcnow() + timedelta(hours=1))
                return recent, future

        recent, future = asyncio.run(scenario())
        assert recent == ["Bamenda"]
        assert future == []

    def test_session_requires_connect(self):
        db = Database(DatabaseConfig.in_memory())
        with pytest.raises(RuntimeError):
            asyncio.run(db.count_sentiments())
