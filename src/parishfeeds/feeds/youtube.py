"""YouTube channel videos from the public Atom feed. No API key required."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlparse

import feedparser
import structlog

from parishfeeds.cache import CacheCell
from parishfeeds.errors import ErrorCode, FeedError
from parishfeeds.models.feeds import Video

if TYPE_CHECKING:
    from parishfeeds.config import YouTubeSettings
    from parishfeeds.protocols import FetcherProtocol

log = structlog.get_logger()

YOUTUBE_TTL_SECONDS = 30 * 60
MAX_VIDEOS = 40
_ENTRY_ID_PREFIX = "yt:video:"
_THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def extract_video_id(entry: Any) -> str:
    """Return the video id of a feed entry, or ``""`` if none can be found.

    Order: ``yt:videoId``, then the ``yt:video:<id>`` entry id, then the
    ``v`` parameter of the watch-page link.
    """
    video_id = entry.get("yt_videoid")
    if video_id:
        return str(video_id)

    entry_id = entry.get("id") or ""
    if entry_id.startswith(_ENTRY_ID_PREFIX):
        return entry_id[len(_ENTRY_ID_PREFIX) :]

    link = entry.get("link") or ""
    values = parse_qs(urlparse(link).query).get("v")
    return values[0] if values else ""


def _thumbnail(entry: Any, video_id: str) -> str:
    for thumbnail in entry.get("media_thumbnail") or []:
        url = thumbnail.get("url") if isinstance(thumbnail, dict) else None
        if url:
            return url
    return _THUMBNAIL_URL.format(video_id=video_id)


def parse_feed(document: str, default_channel_title: str) -> list[Video]:
    """Parse an Atom document into at most MAX_VIDEOS videos.

    Raises FeedError when the document cannot be parsed at all.
    """
    parsed = feedparser.parse(document)
    if parsed.bozo and not parsed.entries:
        raise FeedError(
            code=ErrorCode.FEED_MALFORMED,
            message=f"Unparseable channel feed: {parsed.get('bozo_exception')}",
            suggestion="The channel feed returned an unexpected document.",
            recoverable=True,
        )

    channel_title = parsed.feed.get("title") or default_channel_title
    videos: list[Video] = []
    for entry in parsed.entries:
        video_id = extract_video_id(entry)
        if not video_id:
            log.debug("youtube_entry_skipped", reason="no_video_id", title=entry.get("title"))
            continue
        videos.append(
            Video(
                id=video_id,
                title=entry.get("title") or "",
                published_at=entry.get("published") or entry.get("updated") or "",
                thumbnail_url=_thumbnail(entry, video_id),
                channel_title=channel_title,
            )
        )
        if len(videos) == MAX_VIDEOS:
            break
    return videos


class YouTubeFeed:
    """Fetches and caches the channel's most recent videos."""

    def __init__(
        self,
        fetcher: FetcherProtocol,
        settings: YouTubeSettings,
        *,
        cell: CacheCell[list[Video]] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self.cell = cell if cell is not None else CacheCell(YOUTUBE_TTL_SECONDS)

    async def get_videos(self) -> list[Video]:
        """Return up to MAX_VIDEOS recent videos. Never raises."""
        cached = self.cell.get()
        if cached is not None:
            return cached

        if not self._settings.channel_id:
            log.debug("youtube_disabled", reason="no_channel_id")
            return []

        try:
            document = await self._fetcher.get_text(
                self._settings.feed_url,
                params={"channel_id": self._settings.channel_id},
                timeout=self._settings.timeout_seconds,
            )
            videos = parse_feed(document, self._settings.channel_title)
        except Exception:
            log.warning("youtube_fetch_failed", channel_id=self._settings.channel_id, exc_info=True)
            last_good = self.cell.last_good()
            return last_good if last_good is not None else []

        self.cell.set(videos)
        log.info("youtube_fetch_complete", video_count=len(videos))
        return videos
