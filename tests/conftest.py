"""Shared fixtures for CivicPulse tests."""

from contextlib import asynccontextmanager

import pytest

from civicpulse.config import DatabaseConfig
from civicpulse.context import ContextStore, default_bundle
from civicpulse.db import Database


@pytest.fixture
def bundle():
    return default_bundle()


@pytest.fixture
def store():
    """Context store without a persistent source (defaults + in-memory merges)."""
    return ContextStore()


@pytest.fixture
def memory_db():
    """
    Factory for a connected in-memory database.

    Must be entered inside the event loop that uses it:

        async def scenario():
            async with memory_db() as db:
                ...
        asyncio.run(scenario())
    """
    @asynccontextmanager
    async def _open():
        db = Database(DatabaseConfig.in_memory())
        await db.connect()
        try:
            yield db
        finally:
            await db.disconnect()

    return _open
