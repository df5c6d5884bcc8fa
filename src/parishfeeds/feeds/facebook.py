"""Facebook page posts via the Graph API.

Posts are normalised into a flat image list plus engagement counts. The feed
depends on PageTokenResolver for the page id and token; without a credential
it returns an empty list and the site falls back to the embedded page widget.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from parishfeeds.cache import CacheCell
from parishfeeds.errors import ErrorCode, FeedError
from parishfeeds.models.feeds import FacebookPost

if TYPE_CHECKING:
    from parishfeeds.config import FacebookSettings
    from parishfeeds.protocols import FetcherProtocol
    from parishfeeds.resolver import PageTokenResolver

log = structlog.get_logger()

FACEBOOK_TTL_SECONDS = 5 * 60
POSTS_LIMIT = 50
POST_FIELDS = (
    "message,full_picture,created_time,permalink_url,"
    "attachments{media,subattachments,media_type,url,title},"
    "reactions.summary(true).limit(0),shares,comments.summary(true).limit(0)"
)


def _node(value: Any, key: str) -> Any:
    """Dict lookup that tolerates non-dict nodes in the Graph response."""
    return value.get(key) if isinstance(value, dict) else None


def _items(value: Any) -> list:
    """Return the ``data`` list of a Graph edge, or an empty list."""
    data = _node(value, "data")
    return data if isinstance(data, list) else []


def _image_src(node: Any) -> str | None:
    src = _node(_node(_node(node, "media"), "image"), "src")
    return src if isinstance(src, str) and src else None


def _count(node: Any, *path: str) -> int:
    for key in path:
        node = _node(node, key)
    return node if isinstance(node, int) else 0


def flatten_images(raw: dict) -> list[str]:
    """Collect every image URL of a post in display order.

    Subattachments (multi-photo posts) take precedence over the attachment's
    own media. ``full_picture`` is used only when nothing else was found.
    """
    images: list[str] = []
    for attachment in _items(raw.get("attachments")):
        subattachments = _items(_node(attachment, "subattachments"))
        if subattachments:
            images.extend(src for sub in subattachments if (src := _image_src(sub)))
        elif src := _image_src(attachment):
            images.append(src)

    if not images:
        full_picture = raw.get("full_picture")
        if isinstance(full_picture, str) and full_picture:
            images.append(full_picture)
    return images


def normalise_post(raw: dict) -> FacebookPost:
    return FacebookPost(
        id=str(raw.get("id") or ""),
        message=raw.get("message") or "",
        images=flatten_images(raw),
        created_time=raw.get("created_time"),
        permalink_url=raw.get("permalink_url"),
        reactions_count=_count(raw, "reactions", "summary", "total_count"),
        shares_count=_count(raw, "shares", "count"),
        comments_count=_count(raw, "comments", "summary", "total_count"),
    )


class FacebookFeed:
    """Fetches and caches the page's recent posts."""

    def __init__(
        self,
        fetcher: FetcherProtocol,
        resolver: PageTokenResolver,
        settings: FacebookSettings,
        *,
        cell: CacheCell[list[FacebookPost]] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._resolver = resolver
        self._settings = settings
        self.cell = cell if cell is not None else CacheCell(FACEBOOK_TTL_SECONDS)

    async def get_posts(self) -> list[FacebookPost]:
        """Return recent posts, newest first. Never raises."""
        cached = self.cell.get()
        if cached is not None:
            return cached

        credential = await self._resolver.resolve()
        if credential is None:
            return []

        try:
            payload = await self._fetcher.get_json(
                f"{self._settings.graph_url}/{credential.page_id}/posts",
                params={
                    "fields": POST_FIELDS,
                    "limit": str(POSTS_LIMIT),
                    "access_token": credential.access_token,
                },
                timeout=self._settings.timeout_seconds,
            )
            if not isinstance(payload, dict) or not isinstance(payload.get("data", []), list):
                raise FeedError(
                    code=ErrorCode.FEED_MALFORMED,
                    message="Graph API posts response has no data list",
                    suggestion="The Graph API response shape may have changed.",
                    recoverable=True,
                )
            posts = [
                normalise_post(raw)
                for raw in payload.get("data", [])[:POSTS_LIMIT]
                if isinstance(raw, dict)
            ]
        except Exception:
            log.warning("facebook_fetch_failed", page_id=credential.page_id, exc_info=True)
            last_good = self.cell.last_good()
            return last_good if last_good is not None else []

        self.cell.set(posts)
        log.info("facebook_fetch_complete", page_id=credential.page_id, post_count=len(posts))
        return posts
