"""Shared test fixtures for the parishfeeds test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from parishfeeds.fetcher import HttpFetcher
from tests.helpers import FakeClock, make_settings

if TYPE_CHECKING:
    from parishfeeds.config import Settings


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def fetcher(http_client: httpx.AsyncClient) -> HttpFetcher:
    return HttpFetcher(http_client)
