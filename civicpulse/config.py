"""
CivicPulse Configuration

Loads API credentials and engine settings from environment variables
or .env files. NEVER hardcode credentials in source code.
"""

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger("civicpulse.config")


def load_env_file(env_path: str = None) -> None:
    """
    Load environment variables from .env file.

    Existing environment variables always win over values in the file.
    """
    if env_path is None:
        env_path = Path.cwd() / ".env"
    else:
        env_path = Path(env_path)

    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return

    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if '=' in line:
                    key, value = line.split('=', 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = value
        logger.info(f"Loaded environment from {env_path}")
    except OSError as e:
        logger.warning(f"Failed to load .env file: {e}")


def _env_bool(key: str, default: bool) -> bool:
    return os.getenv(key, str(default)).lower() in ("1", "true", "yes", "on")


@dataclass
class LLMConfig:
    """External classifier (OpenAI-compatible chat completions) settings."""
    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com/v1"
    temperature: float = 0.3
    timeout_seconds: float = 30.0
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "LLMConfig":
        load_env_file()
        return cls(
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.3")),
            timeout_seconds=float(os.getenv("OPENAI_TIMEOUT", "30")),
            enabled=_env_bool("CIVICPULSE_USE_LLM", True),
        )

    def is_configured(self) -> bool:
        """True when an external call can be attempted at all."""
        return self.enabled and bool(self.api_key)


@dataclass
class DatabaseConfig:
    """Database configuration."""
    url: str = "sqlite+aiosqlite:///civicpulse.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        load_env_file()
        return cls(
            url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///civicpulse.db"),
            echo=_env_bool("DATABASE_ECHO", False),
            pool_size=int(os.getenv("DATABASE_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DATABASE_MAX_OVERFLOW", "20")),
        )

    @classmethod
    def in_memory(cls) -> "DatabaseConfig":
        """Throwaway SQLite database, used by tests and dry runs."""
        return cls(url="sqlite+aiosqlite:///:memory:")

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.url.lower()

    @property
    def safe_url(self) -> str:
        """URL safe for logging (no passwords)."""
        if "@" in self.url:
            pre_at, post_at = self.url.rsplit("@", 1)
            if ":" in pre_at.split("//", 1)[-1]:
                return f"{pre_at.rsplit(':', 1)[0]}:***@{post_at}"
        return self.url


@dataclass
class ContextConfig:
    """Knowledge-base cache settings."""
    cache_ttl_seconds: float = 30 * 60
    config_type: str = "local_context"

    @classmethod
    def from_env(cls) -> "ContextConfig":
        load_env_file()
        return cls(
            cache_ttl_seconds=float(os.getenv("CONTEXT_CACHE_TTL_SECONDS", str(30 * 60))),
            config_type=os.getenv("CONTEXT_CONFIG_TYPE", "local_context"),
        )


@dataclass
class ProcessorConfig:
    """
    Master configuration for the signal engine.

    Usage:
        config = ProcessorConfig.from_env()
        if config.llm.is_configured():
            ...
    """
    llm: LLMConfig = field(default_factory=LLMConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    context: ContextConfig = field(default_factory=ContextConfig)

    # Alerting / reporting
    alert_excerpt_chars: int = 100
    trending_window_hours: int = 24
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_path: Optional[str] = None) -> "ProcessorConfig":
        """Load all configuration from environment."""
        load_env_file(env_path)
        return cls(
            llm=LLMConfig.from_env(),
            database=DatabaseConfig.from_env(),
            context=ContextConfig.from_env(),
            alert_excerpt_chars=int(os.getenv("ALERT_EXCERPT_CHARS", "100")),
            trending_window_hours=int(os.getenv("TRENDING_WINDOW_HOURS", "24")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
