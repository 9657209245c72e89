"""
Tests for the external classifier adapter

Tests:
- Successful chat-completions parsing
- Fallback to the heuristic tier on every failure mode
- Request shape
"""

import asyncio
import json

import aiohttp
import pytest

from civicpulse.config import LLMConfig
from civicpulse.context import ContextStore
from civicpulse.llm import (
    HeuristicSignalClassifier,
    OpenAIClassifier,
    SENTIMENT_ANALYST_SYSTEM,
    parse_json_payload,
)
from civicpulse.models import ClassifierError
from civicpulse.processor import normalize_partial


# =============================================================================
# Fakes
# =============================================================================

class FakeResponse:
    def __init__(self, status=200, payload=None, body=""):
        self.status = status
        self._payload = payload
        self._body = body

    async def json(self, content_type=None):
        if self._payload is None:
            raise json.JSONDecodeError("Expecting value", self._body, 0)
        return self._payload

    async def text(self):
        return self._body


class FakeRequestContext:
    def __init__(self, response):
        self.response = response

    async def __aenter__(self):
        return self.response

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        return FakeRequestContext(self.response)

    async def close(self):
        self.closed = True


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


ANALYSIS = {
    "polarity": "negative",
    "score": -0.6,
    "emotions": ["anger"],
    "confidence": 0.92,
    "language": "pidgin",
    "categories": ["governance"],
    "keywords": ["biya"],
    "hashtags": [],
    "mentions": [],
    "region": "Littoral",
    "threatLevel": "low",
}

TEXT = "Biya don vex everybody for Douala"


@pytest.fixture
def fallback():
    return HeuristicSignalClassifier(ContextStore())


@pytest.fixture
def config():
    return LLMConfig(api_key="sk-test", base_url="https://llm.example/v1")


def _classify(classifier, session, text=TEXT):
    classifier._session = session
    return asyncio.run(classifier.classify(text))


# =============================================================================
# Tests
# =============================================================================

class TestParseJsonPayload:
    """Test model output parsing."""

    def test_plain_json(self):
        assert parse_json_payload('{"score": 0.2}') == {"score": 0.2}

    def test_code_fences(self):
        assert parse_json_payload('```json\n{"score": 0.2}\n```') == {"score": 0.2}

    def test_rejects_non_object(self):
        with pytest.raises(ClassifierError):
            parse_json_payload("[1, 2]")

    def test_rejects_garbage(self):
        with pytest.raises(ClassifierError):
            parse_json_payload("I think it is negative")


class TestOpenAIClassifier:
    """Test the external tier and its fallback."""

    def test_success(self, config, fallback):
        session = FakeSession(FakeResponse(payload=_completion(json.dumps(ANALYSIS))))
        outcome = _classify(OpenAIClassifier(config, fallback), session)

        assert not outcome.degraded
        assert outcome.source == "openai"
        assert outcome.partial == ANALYSIS

    def test_request_shape(self, config, fallback):
        session = FakeSession(FakeResponse(payload=_completion(json.dumps(ANALYSIS))))
        _classify(OpenAIClassifier(config, fallback), session)

        call = session.calls[0]
        assert call["url"] == "https://llm.example/v1/chat/completions"
        assert call["headers"]["Authorization"] == "Bearer sk-test"
        assert call["json"]["model"] == "gpt-4o-mini"
        assert call["json"]["temperature"] == 0.3
        assert call["json"]["messages"][0] == {"role": "system", "content": SENTIMENT_ANALYST_SYSTEM}
        assert call["json"]["messages"][1] == {"role": "user", "content": TEXT}

    def test_single_attempt(self, config, fallback):
        session = FakeSession(FakeResponse(status=503, body="overloaded"))
        _classify(OpenAIClassifier(config, fallback), session)
        assert len(session.calls) == 1

    def test_not_configured_uses_fallback(self, fallback):
        classifier = OpenAIClassifier(LLMConfig(api_key=""), fallback)
        session = FakeSession(FakeResponse(payload=_completion(json.dumps(ANALYSIS))))
        outcome = _classify(classifier, session)

        assert outcome.degraded
        assert outcome.source == "heuristic"
        assert session.calls == []
        assert classifier.stats["skipped"] == 1

    @pytest.mark.parametrize("session,reason_fragment", [
        (FakeSession(FakeResponse(status=500, body="boom")), "HTTP 500"),
        (FakeSession(FakeResponse(status=401, body="bad key")), "HTTP 401"),
        (FakeSession(error=asyncio.TimeoutError()), "timeout"),
        (FakeSession(error=aiohttp.ClientConnectionError("refused")), "connection error"),
        (FakeSession(FakeResponse(payload=None, body="<html>")), "not JSON"),
        (FakeSession(FakeResponse(payload={"choices": []})), "Malformed"),
        (FakeSession(FakeResponse(payload={"error": "x"})), "Malformed"),
        (FakeSession(FakeResponse(payload=_completion("not json at all"))), "JSON parse"),
    ])
    def test_failures_degrade_to_heuristic(self, config, fallback, session, reason_fragment):
        classifier = OpenAIClassifier(config, fallback)
        outcome = _classify(classifier, session)

        assert outcome.degraded
        assert outcome.source == "heuristic"
        assert reason_fragment in outcome.reason
        assert classifier.stats["failures"] == 1

    def test_degraded_result_equals_heuristic(self, config, fallback):
        session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
        degraded = _classify(OpenAIClassifier(config, fallback), session)
        direct = asyncio.run(fallback.classify(TEXT))

        assert normalize_partial(degraded.partial) == normalize_partial(direct.partial)

    def test_close(self, config, fallback):
        classifier = OpenAIClassifier(config, fallback)
        session = FakeSession()
        classifier._session = session

        asyncio.run(classifier.close())
        assert session.closed
        assert classifier._session is None
