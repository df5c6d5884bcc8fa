"""Route handler for Facebook page posts.

The page slug is always returned, even with no posts, so the site can render
the embedded page widget as a fallback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parishfeeds.models.routes import FacebookPostsOutput

if TYPE_CHECKING:
    from parishfeeds.state import AppState

NO_TOKEN = "no_token"


async def handle(state: AppState) -> dict:
    """Handle a GET facebook-posts request."""
    log = structlog.get_logger().bind(route="facebook_posts")

    if not state.resolver.configured:
        log.debug("facebook_disabled", reason=NO_TOKEN)
        output = FacebookPostsOutput(
            error=NO_TOKEN,
            posts=[],
            page_slug=state.resolver.last_known_slug,
        )
        return output.model_dump(mode="json")

    posts = await state.facebook.get_posts()
    credential = state.resolver.credential
    slug = credential.slug if credential is not None else state.resolver.last_known_slug
    log.debug("handler_complete", post_count=len(posts), page_slug=slug)
    return FacebookPostsOutput(posts=posts, page_slug=slug).model_dump(mode="json")
