"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite and the shared HTTP
client from tests/conftest.py, which respx intercepts per test. The calendar
feed is pinned to a fixed "now" so expansion results do not depend on the
day the suite runs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest

from parishfeeds.feeds.calendar import CalendarFeed
from parishfeeds.fetcher import HttpFetcher
from parishfeeds.state import build_state
from parishfeeds.store import SettingsStore
from tests.helpers import NOW

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from parishfeeds.config import Settings
    from parishfeeds.state import AppState


@pytest.fixture()
async def app_state(
    settings: Settings, http_client: httpx.AsyncClient
) -> AsyncGenerator[AppState, None]:
    async with aiosqlite.connect(":memory:") as db:
        store = SettingsStore(db)
        await store.init_db()
        state = build_state(settings, store, http_client)
        state.calendar = CalendarFeed(
            HttpFetcher(http_client), settings.calendar, now=lambda: NOW
        )
        yield state
