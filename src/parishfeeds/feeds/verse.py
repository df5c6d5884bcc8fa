"""Verse of the week from the verse provider's open API.

The provider publishes several periods at once (week, month, year and two
extra readings), each behind an ``is_<period>`` flag. A manual override set
by an admin takes precedence; that check lives in the route handler so the
override never passes through this feed's cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from parishfeeds.cache import CacheCell
from parishfeeds.errors import ErrorCode, FeedError
from parishfeeds.models.feeds import VerseOfWeek

if TYPE_CHECKING:
    from parishfeeds.config import VerseSettings
    from parishfeeds.protocols import FetcherProtocol

log = structlog.get_logger()

VERSE_TTL_SECONDS = 60 * 60
MANUAL_VERSE_NAME = "Ręczny wpis"

# period → (flag, text key, source key) in the provider payload
PERIODS: dict[str, tuple[str, str, str]] = {
    "week": ("is_week", "week", "week_s"),
    "month": ("is_month", "month", "month_s"),
    "year": ("is_year", "year", "year_s"),
    "first": ("is_first", "first", "first_s"),
    "second": ("is_second", "second", "second_s"),
}


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def project_periods(payload: dict) -> VerseOfWeek:
    """Build a VerseOfWeek from a provider payload with ``status == "ok"``.

    A false flag nulls both the text and the source of its period, even when
    the provider still sent values for them.
    """
    fields: dict[str, Any] = {}
    for period, (flag, text_key, source_key) in PERIODS.items():
        enabled = bool(payload.get(flag))
        fields[f"{period}_text"] = _text(payload.get(text_key)) if enabled else None
        fields[f"{period}_source"] = _text(payload.get(source_key)) if enabled else None
    return VerseOfWeek(
        **fields,
        name=str(payload.get("name") or ""),
        date=str(payload.get("date") or ""),
    )


def manual_verse(text: str, source: str | None) -> VerseOfWeek:
    """Shape an admin override like a provider verse."""
    return VerseOfWeek(
        week_text=text,
        week_source=source or "",
        name=MANUAL_VERSE_NAME,
        date="",
        is_manual=True,
    )


class VerseFeed:
    """Fetches and caches the provider's verse of the week."""

    def __init__(
        self,
        fetcher: FetcherProtocol,
        settings: VerseSettings,
        *,
        cell: CacheCell[VerseOfWeek] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self.cell = cell if cell is not None else CacheCell(VERSE_TTL_SECONDS)

    async def get_verse(self) -> VerseOfWeek | None:
        """Return the current verse, or ``None`` if disabled or never fetched."""
        cached = self.cell.get()
        if cached is not None:
            return cached

        if not self._settings.api_key:
            return None

        try:
            payload = await self._fetcher.post_json(
                self._settings.url,
                {"key": self._settings.api_key},
                timeout=self._settings.timeout_seconds,
            )
            if not isinstance(payload, dict) or payload.get("status") != "ok":
                status = payload.get("status") if isinstance(payload, dict) else None
                error = payload.get("error") if isinstance(payload, dict) else None
                raise FeedError(
                    code=ErrorCode.FEED_MALFORMED,
                    message=f"Verse provider status {status!r}: {error}",
                    suggestion="Check the verse provider API key.",
                    recoverable=True,
                )
            verse = project_periods(payload)
        except Exception:
            log.warning("verse_fetch_failed", exc_info=True)
            return self.cell.last_good()

        self.cell.set(verse)
        log.info("verse_fetch_complete", week_text=(verse.week_text or "")[:60])
        return verse
