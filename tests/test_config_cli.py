"""
Tests for CivicPulse configuration and CLI

Tests:
- .env loading and environment precedence
- Config dataclasses
- CLI commands against an in-memory database
"""

import json

import pytest

from civicpulse.cli import main
from civicpulse.config import DatabaseConfig, LLMConfig, ProcessorConfig, load_env_file

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory with no engine variables set."""
    monkeypatch.chdir(tmp_path)
    for key in (
        "OPENAI_API_KEY", "OPENAI_MODEL", "OPENAI_BASE_URL", "OPENAI_TIMEOUT",
        "OPENAI_TEMPERATURE", "CIVICPULSE_USE_LLM", "DATABASE_URL", "LOG_LEVEL",
        "CONTEXT_CACHE_TTL_SECONDS", "ALERT_EXCERPT_CHARS",
    ):
        # setenv first so values loaded from .env files are undone after the test
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path


class TestConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, clean_env):
        config = ProcessorConfig.from_env()
        assert config.llm.model == "gpt-4o-mini"
        assert config.llm.temperature == 0.3
        assert not config.llm.is_configured()
        assert config.context.cache_ttl_seconds == 1800
        assert config.context.config_type == "local_context"
        assert config.alert_excerpt_chars == 100

    def test_env_file_does_not_override(self, clean_env, monkeypatch):
        (clean_env / ".env").write_text(
            "# comment\nOPENAI_API_KEY='sk-file'\nOPENAI_MODEL=gpt-file\n", encoding="utf-8"
        )
        monkeypatch.setenv("OPENAI_MODEL", "gpt-env")
        monkeypatch.setenv("CIVICPULSE_USE_LLM", "true")

        load_env_file()
        config = LLMConfig.from_env()

        assert config.api_key == "sk-file"
        assert config.model == "gpt-env"
        assert config.is_configured()

    def test_llm_can_be_disabled(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("CIVICPULSE_USE_LLM", "false")
        assert not LLMConfig.from_env().is_configured()

    def test_base_url_trailing_slash(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "https://llm.example/v1/")
        assert LLMConfig.from_env().base_url == "https://llm.example/v1"

    def test_safe_url_hides_password(self):
        config = DatabaseConfig(url="postgresql+asyncpg://pulse:secret@db:5432/pulse")
        assert config.safe_url == "postgresql+asyncpg://pulse:***@db:5432/pulse"
        assert not config.is_sqlite
        assert DatabaseConfig.in_memory().is_sqlite


class TestCLI:
    """Test commands end to end on an in-memory database."""

    def _run(self, capsys, *args):
        code = main(["--database-url", MEMORY_URL, "--no-llm", *args])
        return code, capsys.readouterr().out

    def test_no_command_prints_help(self, clean_env, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_analyze_json(self, clean_env, capsys):
        code, out = self._run(capsys, "analyze", "--text", "They will kill and bomb Bamenda #Anglophone", "--json")
        assert code == 0
        payload = json.loads(out)
        assert payload[0]["threatLevel"] == "critical"
        assert payload[0]["region"] == "Northwest"
        assert payload[0]["hashtags"] == ["Anglophone"]

    def test_analyze_text_output(self, clean_env, capsys):
        code, out = self._run(capsys, "analyze", "--text", "I am happy and proud")
        assert code == 0
        assert "Polarity:   positive" in out

    def test_analyze_requires_input(self, clean_env, capsys):
        code, out = self._run(capsys, "analyze")
        assert code == 1
        assert "Error" in out

    def test_bulk_jsonl(self, clean_env, capsys):
        path = clean_env / "posts.jsonl"
        path.write_text(
            '{"content": "Good news for Douala", "platform": "twitter"}\n'
            '{"content": ""}\n'
            '{"content": "riot in Buea"}\n',
            encoding="utf-8",
        )
        code, out = self._run(capsys, "bulk", str(path), "--json")
        payload = json.loads(out)

        assert code == 2
        assert (payload["processed"], payload["succeeded"], payload["failed"]) == (3, 2, 1)

    def test_bulk_missing_file(self, clean_env, capsys):
        code, out = self._run(capsys, "bulk", str(clean_env / "nope.json"))
        assert code == 1

    def test_stats(self, clean_env, capsys):
        code, out = self._run(capsys, "stats")
        assert code == 0
        assert json.loads(out) == {
            "totalAnalyzed": 0,
            "activeAlerts": 0,
            "trendingTopics": [],
            "status": "operational",
        }

    def test_learn_figure(self, clean_env, capsys):
        code, out = self._run(capsys, "learn-figure", "cabral libii", "--confidence", "0.9")
        assert code == 0
        assert "Context version 2: 1 detected figure(s)" in out

    def test_learn_slang(self, clean_env, capsys):
        code, out = self._run(capsys, "learn-slang", "sotey", "--language", "pidgin", "--sentiment", "negative")
        assert code == 0
        assert "1 learned pidgin pattern(s)" in out

    def test_context_section(self, clean_env, capsys):
        code, out = self._run(capsys, "context", "--key", "sarcasm_markers")
        assert code == 0
        assert "thanks for nothing" in json.loads(out)

    def test_context_unknown_key(self, clean_env, capsys):
        code, out = self._run(capsys, "context", "--key", "nope")
        assert code == 1
