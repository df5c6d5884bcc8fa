"""Upcoming events from a public iCal feed.

The feed is parsed with icalendar and recurring events are expanded with
dateutil over a fixed forward horizon. All comparisons happen in naive local
wall-clock time in the configured timezone, which is also what the site
displays. One malformed event never hides the rest of the calendar.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import structlog
from dateutil.rrule import rruleset, rrulestr
from icalendar import Calendar, vRecur

from parishfeeds.cache import CacheCell
from parishfeeds.classifier import DEFAULT_LABEL, classify_event
from parishfeeds.models.feeds import CalendarEvent

if TYPE_CHECKING:
    from collections.abc import Callable

    from icalendar.cal import Component

    from parishfeeds.config import CalendarSettings
    from parishfeeds.protocols import FetcherProtocol

log = structlog.get_logger()

CALENDAR_TTL_SECONDS = 30 * 60
HORIZON_DAYS = 90
MAX_EVENTS = 6


def to_local_naive(value: date | datetime, tz: ZoneInfo) -> datetime:
    """Convert an iCal DTSTART value to naive local wall-clock time.

    Aware datetimes are converted into ``tz``; floating times are taken as
    already local; all-day dates become local midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).replace(tzinfo=None)
        return value
    return datetime.combine(value, time())


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _excluded_dates(component: Component, tz: ZoneInfo) -> list[datetime]:
    excluded: list[datetime] = []
    for exdate in _as_list(component.get("exdate")):
        for entry in getattr(exdate, "dts", []):
            excluded.append(to_local_naive(entry.dt, tz))
    return excluded


def _overridden_instances(calendar: Calendar, tz: ZoneInfo) -> dict[str, list[datetime]]:
    """Map UID → instances replaced by a separate RECURRENCE-ID component."""
    overridden: dict[str, list[datetime]] = {}
    for component in calendar.walk("VEVENT"):
        recurrence_id = component.get("recurrence-id")
        if recurrence_id is None:
            continue
        uid = str(component.get("uid", ""))
        try:
            instance = to_local_naive(recurrence_id.dt, tz)
        except Exception:
            log.warning("calendar_recurrence_id_skipped", uid=uid, exc_info=True)
            continue
        overridden.setdefault(uid, []).append(instance)
    return overridden


def _local_rule(rrule: vRecur, tz: ZoneInfo) -> str:
    """Serialise an RRULE with UNTIL moved into naive local time."""
    rule = vRecur(rrule)
    if "UNTIL" in rule:
        rule["UNTIL"] = [to_local_naive(until, tz) for until in _as_list(rule["UNTIL"])]
    return rule.to_ical().decode()


def expand_occurrences(
    component: Component,
    start: datetime,
    window_start: datetime,
    window_end: datetime,
    tz: ZoneInfo,
    skip: list[datetime] | None = None,
) -> list[datetime]:
    """Expand every RRULE of ``component`` within ``[window_start, window_end]``.

    EXDATEs and the instances in ``skip`` are left out. Raises whatever
    dateutil raises for a rule it cannot interpret.
    """
    rules = rruleset()
    for rrule in _as_list(component.get("rrule")):
        rules.rrule(rrulestr(_local_rule(rrule, tz), dtstart=start, ignoretz=True))
    for excluded in [*_excluded_dates(component, tz), *(skip or [])]:
        rules.exdate(excluded)
    return rules.between(window_start, window_end, inc=True)


class CalendarFeed:
    """Fetches the iCal document and keeps the nearest upcoming occurrences."""

    def __init__(
        self,
        fetcher: FetcherProtocol,
        settings: CalendarSettings,
        *,
        cell: CacheCell[list[CalendarEvent]] | None = None,
        classifier: Callable[[str], str] = classify_event,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self._tz = ZoneInfo(settings.timezone)
        self._classifier = classifier
        self._now = now if now is not None else (lambda: datetime.now(self._tz))
        self.cell = cell if cell is not None else CacheCell(CALENDAR_TTL_SECONDS)

    async def get_upcoming(self) -> list[CalendarEvent]:
        """Return at most MAX_EVENTS upcoming occurrences. Never raises."""
        cached = self.cell.get()
        if cached is not None:
            return cached

        if not self._settings.ical_url:
            log.debug("calendar_disabled", reason="no_ical_url")
            return []

        try:
            document = await self._fetcher.get_text(
                self._settings.ical_url,
                timeout=self._settings.timeout_seconds,
            )
            upcoming = self.upcoming_from_ical(document)
        except Exception:
            log.warning("calendar_fetch_failed", exc_info=True)
            last_good = self.cell.last_good()
            return last_good if last_good is not None else []

        events = upcoming[:MAX_EVENTS]
        self.cell.set(events)
        log.info("calendar_fetch_complete", upcoming=len(upcoming), returned=len(events))
        return events

    def upcoming_from_ical(self, document: str | bytes) -> list[CalendarEvent]:
        """Parse ``document`` into every occurrence inside the horizon, sorted."""
        calendar = Calendar.from_ical(document)

        today = self._now().astimezone(self._tz).replace(tzinfo=None)
        today = today.replace(hour=0, minute=0, second=0, microsecond=0)
        horizon_end = today + timedelta(days=HORIZON_DAYS)
        overridden = _overridden_instances(calendar, self._tz)

        upcoming: list[CalendarEvent] = []
        for component in calendar.walk("VEVENT"):
            try:
                occurrences = self._occurrences(component, today, horizon_end, overridden)
            except Exception:
                log.warning(
                    "calendar_component_skipped",
                    uid=str(component.get("uid", "")),
                    summary=str(component.get("summary", "")),
                    exc_info=True,
                )
                continue
            upcoming.extend(self._event(component, occurrence) for occurrence in occurrences)

        upcoming.sort(key=lambda event: (event.date, event.time))
        return upcoming

    def _occurrences(
        self,
        component: Component,
        today: datetime,
        horizon_end: datetime,
        overridden: dict[str, list[datetime]],
    ) -> list[datetime]:
        """Start times of ``component`` inside the horizon.

        Raises on a broken DTSTART or a rule dateutil cannot interpret; the
        caller skips the component.
        """
        raw_start = component.get("dtstart")
        if raw_start is None:
            return []
        start = to_local_naive(raw_start.dt, self._tz)

        if component.get("rrule") is not None:
            return expand_occurrences(
                component,
                start,
                today,
                horizon_end,
                self._tz,
                skip=overridden.get(str(component.get("uid", ""))),
            )
        if today <= start <= horizon_end:
            return [start]
        return []

    def _event(self, component: Component, occurrence: datetime) -> CalendarEvent:
        title = str(component.get("summary") or "") or DEFAULT_LABEL
        return CalendarEvent(
            title=title,
            date=occurrence.date(),
            time=occurrence.strftime("%H:%M"),
            type=self._classifier(str(component.get("summary") or "")),
            location=str(component.get("location") or ""),
        )
