"""Route handler for the verse of the week.

An admin-set manual verse takes precedence. It is read straight from the
settings store on every request and never touches the verse feed or its
cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parishfeeds.feeds.verse import manual_verse
from parishfeeds.models.routes import WeeklyVerseOutput
from parishfeeds.store import MANUAL_VERSE_SOURCE_KEY, MANUAL_VERSE_TEXT_KEY

if TYPE_CHECKING:
    from parishfeeds.state import AppState


async def handle(state: AppState) -> dict:
    """Handle a GET weekly-verse request."""
    log = structlog.get_logger().bind(route="weekly_verse")

    manual_text = await state.store.get(MANUAL_VERSE_TEXT_KEY)
    if manual_text:
        manual_source = await state.store.get(MANUAL_VERSE_SOURCE_KEY)
        log.debug("manual_verse_served")
        output = WeeklyVerseOutput(verse=manual_verse(manual_text, manual_source))
        return output.model_dump(mode="json")

    verse = await state.verse.get_verse()
    return WeeklyVerseOutput(verse=verse).model_dump(mode="json")
