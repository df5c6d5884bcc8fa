from __future__ import annotations

from pydantic import BaseModel, Field

from parishfeeds.models.feeds import CalendarEvent, FacebookPost, Video, VerseOfWeek


class ManualVerseInput(BaseModel):
    text: str = Field(min_length=1, max_length=5000)
    source: str = Field(default="", max_length=500)


class ManualVerseOutput(BaseModel):
    text: str | None
    source: str | None


class UpcomingEventsOutput(BaseModel):
    error: str | None = None
    events: list[CalendarEvent]


class FacebookPostsOutput(BaseModel):
    error: str | None = None  # "no_token" when the page token is not configured
    posts: list[FacebookPost]
    page_slug: str


class YouTubeVideosOutput(BaseModel):
    error: str | None = None
    videos: list[Video]


class WeeklyVerseOutput(BaseModel):
    verse: VerseOfWeek | None
