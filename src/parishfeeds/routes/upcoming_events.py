"""Route handler for upcoming calendar events.

Receives AppState and returns a structured dict. No Starlette imports;
server.py handles the HTTP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parishfeeds.models.routes import UpcomingEventsOutput

if TYPE_CHECKING:
    from parishfeeds.state import AppState


async def handle(state: AppState) -> dict:
    """Handle a GET upcoming-events request."""
    log = structlog.get_logger().bind(route="upcoming_events")
    events = await state.calendar.get_upcoming()
    log.debug("handler_complete", event_count=len(events))
    return UpcomingEventsOutput(events=events).model_dump(mode="json")
