"""Route handlers for the admin-managed manual verse override.

Writes are gated by the admin middleware in transport.py; these handlers
only validate and persist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from parishfeeds.errors import ErrorCode, FeedError
from parishfeeds.models.routes import ManualVerseInput, ManualVerseOutput
from parishfeeds.store import (
    MANUAL_VERSE_PREFIX,
    MANUAL_VERSE_SOURCE_KEY,
    MANUAL_VERSE_TEXT_KEY,
)

if TYPE_CHECKING:
    from parishfeeds.state import AppState


async def get_override(state: AppState) -> dict:
    """Return the stored override; empty values are reported as null."""
    stored = dict(await state.store.get_all_by_prefix(MANUAL_VERSE_PREFIX))
    output = ManualVerseOutput(
        text=stored.get(MANUAL_VERSE_TEXT_KEY) or None,
        source=stored.get(MANUAL_VERSE_SOURCE_KEY) or None,
    )
    return output.model_dump(mode="json")


async def set_override(text: object, source: object, state: AppState) -> dict:
    log = structlog.get_logger().bind(route="manual_verse")

    try:
        validated = ManualVerseInput(text=text, source=source or "")
    except ValidationError as exc:
        raise FeedError(
            code=ErrorCode.INVALID_INPUT,
            message="text required",
            suggestion="Provide a non-empty verse text (max 5000 chars) and optional source.",
            recoverable=False,
        ) from exc

    await state.store.set(MANUAL_VERSE_TEXT_KEY, validated.text)
    await state.store.set(MANUAL_VERSE_SOURCE_KEY, validated.source)
    log.info("manual_verse_set", source=validated.source)
    return {"ok": True}


async def clear_override(state: AppState) -> dict:
    log = structlog.get_logger().bind(route="manual_verse")
    await state.store.set(MANUAL_VERSE_TEXT_KEY, "")
    await state.store.set(MANUAL_VERSE_SOURCE_KEY, "")
    log.info("manual_verse_cleared")
    return {"ok": True}
