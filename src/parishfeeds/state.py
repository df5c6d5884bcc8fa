"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and handed to every route handler. Each feed owns its own cache cell; the
Facebook resolver owns the resolved-credential cell. Nothing here is a
module-level global, so tests build an AppState with fake components.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from parishfeeds.feeds.calendar import CalendarFeed
from parishfeeds.feeds.facebook import FacebookFeed
from parishfeeds.feeds.verse import VerseFeed
from parishfeeds.feeds.youtube import YouTubeFeed
from parishfeeds.fetcher import HttpFetcher
from parishfeeds.resolver import PageTokenResolver

if TYPE_CHECKING:
    import httpx

    from parishfeeds.config import Settings
    from parishfeeds.protocols import SettingsStoreProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every route handler."""

    settings: Settings
    store: SettingsStoreProtocol
    resolver: PageTokenResolver
    facebook: FacebookFeed
    youtube: YouTubeFeed
    calendar: CalendarFeed
    verse: VerseFeed


def build_state(
    settings: Settings,
    store: SettingsStoreProtocol,
    http_client: httpx.AsyncClient,
) -> AppState:
    """Wire every feed component around one shared HTTP client."""
    fetcher = HttpFetcher(http_client)
    resolver = PageTokenResolver(fetcher, settings.facebook)
    return AppState(
        settings=settings,
        store=store,
        resolver=resolver,
        facebook=FacebookFeed(fetcher, resolver, settings.facebook),
        youtube=YouTubeFeed(fetcher, settings.youtube),
        calendar=CalendarFeed(fetcher, settings.calendar),
        verse=VerseFeed(fetcher, settings.verse),
    )
