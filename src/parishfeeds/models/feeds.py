from __future__ import annotations

from datetime import date as date_type

from pydantic import BaseModel


class FacebookPost(BaseModel):
    """Single page post with attachments flattened into an image list."""

    id: str
    message: str = ""
    images: list[str] = []  # Subattachment images first, then full_picture fallback
    created_time: str | None = None
    permalink_url: str | None = None
    reactions_count: int = 0
    shares_count: int = 0
    comments_count: int = 0


class Video(BaseModel):
    """Single entry from a channel's public Atom feed."""

    id: str
    title: str = ""
    published_at: str = ""
    thumbnail_url: str
    channel_title: str


class CalendarEvent(BaseModel):
    """One occurrence of a calendar event, in local wall-clock time."""

    title: str
    date: date_type
    time: str  # "HH:MM"
    type: str  # Classification label, e.g. "Nabożeństwo"
    location: str = ""


class VerseOfWeek(BaseModel):
    """Verse-of-the-week payload; a period pair is null when not published."""

    week_text: str | None = None
    week_source: str | None = None
    month_text: str | None = None
    month_source: str | None = None
    year_text: str | None = None
    year_source: str | None = None
    first_text: str | None = None
    first_source: str | None = None
    second_text: str | None = None
    second_source: str | None = None
    name: str = ""
    date: str = ""
    is_manual: bool = False
