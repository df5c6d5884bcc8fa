from __future__ import annotations

from parishfeeds.models.feeds import CalendarEvent, FacebookPost, Video, VerseOfWeek
from parishfeeds.models.routes import (
    FacebookPostsOutput,
    ManualVerseInput,
    ManualVerseOutput,
    UpcomingEventsOutput,
    WeeklyVerseOutput,
    YouTubeVideosOutput,
)

__all__ = [
    # feeds
    "FacebookPost",
    "Video",
    "CalendarEvent",
    "VerseOfWeek",
    # routes
    "ManualVerseInput",
    "ManualVerseOutput",
    "UpcomingEventsOutput",
    "FacebookPostsOutput",
    "YouTubeVideosOutput",
    "WeeklyVerseOutput",
]
