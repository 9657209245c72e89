"""
OpenAI-Compatible Classifier for CivicPulse

Higher-accuracy tier delegating to an external chat-completions service.
Makes exactly one attempt per text; on network failure, timeout, non-2xx
response or unparseable JSON it logs the failure and returns its
fallback's result tagged as degraded. Never raises for well-formed text.

Usage:
    from civicpulse.config import LLMConfig
    from civicpulse.llm import OpenAIClassifier, HeuristicSignalClassifier

    fallback = HeuristicSignalClassifier(store)
    async with OpenAIClassifier(LLMConfig.from_env(), fallback=fallback) as clf:
        outcome = await clf.classify("Na so dem dey do am for Douala")
"""

import asyncio
import json
import logging
import re
import time
from typing import Any, Dict, Optional

import aiohttp

from ..config import LLMConfig
from ..models import ClassifierError
from .base import ClassificationOutcome, PartialSignalResult, SignalClassifier
from .prompts import SENTIMENT_ANALYST_SYSTEM, format_sentiment_prompt

logger = logging.getLogger("civicpulse.llm.openai")

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_payload(content: str) -> PartialSignalResult:
    """Parse the model's message content into a dict, tolerating code fences."""
    if not isinstance(content, str):
        raise ClassifierError("Response content is not text")
    cleaned = _CODE_FENCE.sub("", content.strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ClassifierError(f"JSON parse: {e}") from e
    if not isinstance(parsed, dict):
        raise ClassifierError("Response JSON is not an object")
    return parsed


class OpenAIClassifier(SignalClassifier):
    """
    External classifier with transparent fallback.

    Args:
        config: Endpoint, model and credentials.
        fallback: Classifier used whenever this one cannot answer.
    """

    name = "openai"

    def __init__(self, config: LLMConfig, fallback: SignalClassifier):
        self.config = config
        self.fallback = fallback
        self._session: Optional[aiohttp.ClientSession] = None
        self.stats: Dict[str, int] = {"requests": 0, "failures": 0, "skipped": 0}

    # =========================================================================
    # Session Management
    # =========================================================================

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Lazily create aiohttp session with the configured timeout."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Clean up HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    # =========================================================================
    # Classification
    # =========================================================================

    async def classify(self, text: str) -> ClassificationOutcome:
        if not self.config.is_configured():
            self.stats["skipped"] += 1
            outcome = await self.fallback.classify(text)
            return outcome.degrade("external classifier not configured")

        self.stats["requests"] += 1
        start_time = time.monotonic()
        try:
            partial = await self._request(text)
        except ClassifierError as e:
            reason = str(e)
        except asyncio.TimeoutError:
            reason = f"timeout after {(time.monotonic() - start_time) * 1000:.0f}ms"
        except aiohttp.ClientError as e:
            reason = f"connection error: {e}"
        except Exception as e:
            logger.error(f"Unexpected classifier error: {e}")
            reason = f"unexpected error: {e}"
        else:
            logger.debug(
                f"External classification in {(time.monotonic() - start_time) * 1000:.0f}ms"
            )
            return ClassificationOutcome.ok(partial, self.name)

        self.stats["failures"] += 1
        logger.warning(f"External classifier failed ({reason}), falling back to {self.fallback.name}")
        outcome = await self.fallback.classify(text)
        return outcome.degrade(reason)

    async def _request(self, text: str) -> PartialSignalResult:
        """Single chat-completions call. Raises on any failure."""
        session = await self._ensure_session()
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SENTIMENT_ANALYST_SYSTEM},
                {"role": "user", "content": format_sentiment_prompt(text)},
            ],
            "temperature": self.config.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        async with session.post(
            f"{self.config.base_url}/chat/completions", json=payload, headers=headers
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                error_text = await resp.text()
                raise ClassifierError(f"HTTP {resp.status}: {error_text[:200]}")
            try:
                data = await resp.json(content_type=None)
            except ValueError as e:
                raise ClassifierError(f"Response body is not JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ClassifierError(f"Malformed completion payload: {e!r}") from e

        return parse_json_payload(content)
