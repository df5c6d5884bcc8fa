"""Route handler for the channel's recent videos."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parishfeeds.models.routes import YouTubeVideosOutput

if TYPE_CHECKING:
    from parishfeeds.state import AppState


async def handle(state: AppState) -> dict:
    """Handle a GET youtube-videos request."""
    log = structlog.get_logger().bind(route="youtube_videos")
    videos = await state.youtube.get_videos()
    log.debug("handler_complete", video_count=len(videos))
    return YouTubeVideosOutput(videos=videos).model_dump(mode="json")
