"""Test helpers shared across the unit and integration suites."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from parishfeeds.config import Settings

GRAPH_URL = "https://graph.facebook.com/v21.0"
ICAL_URL = "https://calendar.example.org/parish/basic.ics"
YOUTUBE_FEED_URL = "https://www.youtube.com/feeds/videos.xml"
VERSE_URL = "https://verses.example.org/api/open-node/"
ADMIN_KEY = "admin-secret"

WARSAW = ZoneInfo("Europe/Warsaw")
# Monday morning; local midnight is 2026-10-19 00:00 and the horizon ends 2027-01-17
NOW = datetime(2026, 10, 19, 9, 30, tzinfo=WARSAW)


class FakeClock:
    """Stand-in for ``time.time`` that only moves when told to."""

    def __init__(self, start: float = 1_800_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides: dict) -> Settings:
    """Settings with every feed configured against test URLs."""
    sections: dict[str, dict] = {
        "admin": {"auth_key": ADMIN_KEY},
        "facebook": {"page_token": "long-lived-token", "page_slug": "wislajawornik"},
        "youtube": {"channel_id": "UC-test-channel", "feed_url": YOUTUBE_FEED_URL},
        "calendar": {"ical_url": ICAL_URL, "timezone": "Europe/Warsaw"},
        "verse": {"api_key": "verse-key", "url": VERSE_URL},
        "store": {"db_path": ":memory:"},
    }
    for section, values in overrides.items():
        sections[section] = {**sections.get(section, {}), **values}
    return Settings(**sections)


def make_ical(*events: str) -> str:
    """Wrap VEVENT bodies into a minimal VCALENDAR document."""
    body = "".join(f"BEGIN:VEVENT\n{event.strip()}\nEND:VEVENT\n" for event in events)
    return f"BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//parish//test//PL\n{body}END:VCALENDAR\n"
