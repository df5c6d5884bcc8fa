"""Unit tests for parishfeeds.feeds.calendar."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

import httpx
import pytest
import respx

import parishfeeds.feeds.calendar as calendar_module
from parishfeeds.cache import CacheCell
from parishfeeds.feeds.calendar import (
    CALENDAR_TTL_SECONDS,
    MAX_EVENTS,
    CalendarFeed,
    to_local_naive,
)
from tests.helpers import ICAL_URL, NOW, WARSAW, make_ical, make_settings

if TYPE_CHECKING:
    from parishfeeds.fetcher import HttpFetcher
    from tests.helpers import FakeClock

WEEKLY_SERVICE = """
UID:weekly-service@parish
SUMMARY:Nabożeństwo czwartkowe
LOCATION:Kościół
DTSTART;TZID=Europe/Warsaw:20261001T100000
DTEND;TZID=Europe/Warsaw:20261001T110000
RRULE:FREQ=WEEKLY
"""


def _feed(fetcher: HttpFetcher, clock: FakeClock | None = None) -> CalendarFeed:
    cell = CacheCell(CALENDAR_TTL_SECONDS, clock=clock) if clock is not None else None
    return CalendarFeed(fetcher, make_settings().calendar, cell=cell, now=lambda: NOW)


def _when(events: list) -> list[tuple[date, str]]:
    return [(event.date, event.time) for event in events]


# ---------------------------------------------------------------------------
# to_local_naive
# ---------------------------------------------------------------------------


class TestToLocalNaive:
    def test_aware_converted_to_local(self) -> None:
        value = datetime.fromisoformat("2026-07-01T08:00:00+00:00")
        assert to_local_naive(value, WARSAW) == datetime(2026, 7, 1, 10, 0)

    def test_floating_kept(self) -> None:
        assert to_local_naive(datetime(2026, 7, 1, 8, 0), WARSAW) == datetime(2026, 7, 1, 8, 0)

    def test_all_day_is_midnight(self) -> None:
        assert to_local_naive(date(2026, 7, 1), WARSAW) == datetime(2026, 7, 1, 0, 0)


# ---------------------------------------------------------------------------
# upcoming_from_ical
# ---------------------------------------------------------------------------


class TestUpcomingFromIcal:
    def test_weekly_rule_expands_from_today(self, fetcher: HttpFetcher) -> None:
        events = _feed(fetcher).upcoming_from_ical(make_ical(WEEKLY_SERVICE))

        # Thursdays from 2026-10-22 up to the horizon end on 2027-01-17
        assert len(events) == 13
        assert _when(events[:3]) == [
            (date(2026, 10, 22), "10:00"),
            (date(2026, 10, 29), "10:00"),
            (date(2026, 11, 5), "10:00"),
        ]
        assert events[-1].date == date(2027, 1, 14)
        assert events[0].title == "Nabożeństwo czwartkowe"
        assert events[0].type == "Nabożeństwo"
        assert events[0].location == "Kościół"

    def test_wall_clock_time_survives_dst_change(self, fetcher: HttpFetcher) -> None:
        """Warsaw leaves summer time on 2026-10-25; the service stays at 10:00."""
        events = _feed(fetcher).upcoming_from_ical(make_ical(WEEKLY_SERVICE))
        assert {event.time for event in events} == {"10:00"}

    def test_horizon_bounds(self, fetcher: HttpFetcher) -> None:
        document = make_ical(
            "UID:past\nSUMMARY:Wczoraj\nDTSTART;TZID=Europe/Warsaw:20261018T180000",
            "UID:this-morning\nSUMMARY:Dziś rano\nDTSTART;TZID=Europe/Warsaw:20261019T080000",
            "UID:last-day\nSUMMARY:Ostatni dzień\nDTSTART;VALUE=DATE:20270117",
            "UID:too-far\nSUMMARY:Za daleko\nDTSTART;TZID=Europe/Warsaw:20270117T090000",
        )
        events = _feed(fetcher).upcoming_from_ical(document)

        assert [event.title for event in events] == ["Dziś rano", "Ostatni dzień"]

    def test_utc_event_shown_in_local_time(self, fetcher: HttpFetcher) -> None:
        document = make_ical("UID:utc\nSUMMARY:Koncert\nDTSTART:20261105T170000Z")
        (event,) = _feed(fetcher).upcoming_from_ical(document)

        assert (event.date, event.time) == (date(2026, 11, 5), "18:00")
        assert event.type == "Koncert"

    def test_all_day_event(self, fetcher: HttpFetcher) -> None:
        document = make_ical("UID:allday\nSUMMARY:Zjazd\nDTSTART;VALUE=DATE:20261110")
        (event,) = _feed(fetcher).upcoming_from_ical(document)

        assert (event.date, event.time) == (date(2026, 11, 10), "00:00")
        assert event.type == "Konferencja"

    def test_missing_summary_uses_default_label(self, fetcher: HttpFetcher) -> None:
        document = make_ical("UID:anon\nDTSTART;TZID=Europe/Warsaw:20261020T120000")
        (event,) = _feed(fetcher).upcoming_from_ical(document)

        assert event.title == "Wydarzenie"
        assert event.type == "Wydarzenie"
        assert event.location == ""

    def test_exdate_removes_occurrence(self, fetcher: HttpFetcher) -> None:
        event = WEEKLY_SERVICE.strip() + "\nEXDATE;TZID=Europe/Warsaw:20261022T100000"
        events = _feed(fetcher).upcoming_from_ical(make_ical(event))

        assert events[0].date == date(2026, 10, 29)

    def test_until_in_utc(self, fetcher: HttpFetcher) -> None:
        event = WEEKLY_SERVICE.replace("FREQ=WEEKLY", "FREQ=WEEKLY;UNTIL=20261105T090000Z")
        events = _feed(fetcher).upcoming_from_ical(make_ical(event))

        assert _when(events) == [
            (date(2026, 10, 22), "10:00"),
            (date(2026, 10, 29), "10:00"),
            (date(2026, 11, 5), "10:00"),
        ]

    def test_recurrence_override_replaces_instance(self, fetcher: HttpFetcher) -> None:
        moved = """
UID:weekly-service@parish
RECURRENCE-ID;TZID=Europe/Warsaw:20261022T100000
SUMMARY:Nabożeństwo czwartkowe
DTSTART;TZID=Europe/Warsaw:20261022T180000
"""
        events = _feed(fetcher).upcoming_from_ical(make_ical(WEEKLY_SERVICE, moved))

        assert _when(events[:2]) == [
            (date(2026, 10, 22), "18:00"),
            (date(2026, 10, 29), "10:00"),
        ]

    def test_sorted_across_events(self, fetcher: HttpFetcher) -> None:
        document = make_ical(
            "UID:b\nSUMMARY:Koncert\nDTSTART;TZID=Europe/Warsaw:20261021T190000",
            "UID:a\nSUMMARY:Spotkanie\nDTSTART;TZID=Europe/Warsaw:20261021T090000",
            "UID:c\nSUMMARY:Studium\nDTSTART;TZID=Europe/Warsaw:20261020T200000",
        )
        events = _feed(fetcher).upcoming_from_ical(document)

        assert [event.title for event in events] == ["Studium", "Spotkanie", "Koncert"]

    def test_broken_rule_does_not_hide_other_events(
        self, fetcher: HttpFetcher, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original = calendar_module.expand_occurrences

        def flaky(component, *args, **kwargs):
            if str(component.get("summary")) == "Zepsuta seria":
                raise ValueError("unsupported rule")
            return original(component, *args, **kwargs)

        monkeypatch.setattr(calendar_module, "expand_occurrences", flaky)
        broken = WEEKLY_SERVICE.replace("Nabożeństwo czwartkowe", "Zepsuta seria").replace(
            "weekly-service@parish", "broken@parish"
        )
        document = make_ical(
            broken,
            WEEKLY_SERVICE,
            "UID:single\nSUMMARY:Koncert\nDTSTART;TZID=Europe/Warsaw:20261020T190000",
        )
        events = _feed(fetcher).upcoming_from_ical(document)

        titles = {event.title for event in events}
        assert titles == {"Nabożeństwo czwartkowe", "Koncert"}
        assert events[0].title == "Koncert"

    @pytest.mark.parametrize(
        "broken",
        [
            "UID:bad-start\nSUMMARY:Zepsuty start\nDTSTART:notadate\nRRULE:FREQ=WEEKLY",
            "UID:bad-single\nSUMMARY:Zepsuty start\nDTSTART:notadate",
            "UID:bad-rule\nSUMMARY:Zepsuta seria\n"
            "DTSTART;TZID=Europe/Warsaw:20261001T100000\nRRULE:FREQ=SOMETIMES",
        ],
    )
    def test_malformed_component_is_skipped(self, broken: str, fetcher: HttpFetcher) -> None:
        document = make_ical(
            broken,
            "UID:good\nSUMMARY:Koncert\nDTSTART;TZID=Europe/Warsaw:20261020T190000",
        )
        events = _feed(fetcher).upcoming_from_ical(document)

        assert [event.title for event in events] == ["Koncert"]


# ---------------------------------------------------------------------------
# CalendarFeed.get_upcoming
# ---------------------------------------------------------------------------


class TestGetUpcoming:
    @respx.mock
    async def test_capped_and_cached(self, fetcher: HttpFetcher, clock: FakeClock) -> None:
        route = respx.get(ICAL_URL).mock(
            return_value=httpx.Response(200, text=make_ical(WEEKLY_SERVICE))
        )
        feed = _feed(fetcher, clock)

        first = await feed.get_upcoming()
        clock.advance(CALENDAR_TTL_SECONDS - 1)
        second = await feed.get_upcoming()

        assert len(first) == MAX_EVENTS
        assert first[0].date == date(2026, 10, 22)
        assert first[-1].date == date(2026, 11, 26)
        assert second is first
        assert route.call_count == 1
        assert feed.cell.last_good() == first

    @respx.mock
    async def test_failure_returns_last_good(self, fetcher: HttpFetcher, clock: FakeClock) -> None:
        respx.get(ICAL_URL).mock(
            side_effect=[
                httpx.Response(200, text=make_ical(WEEKLY_SERVICE)),
                httpx.Response(404),
                httpx.ReadTimeout("slow"),
            ]
        )
        feed = _feed(fetcher, clock)
        first = await feed.get_upcoming()

        for _ in range(2):
            clock.advance(CALENDAR_TTL_SECONDS)
            assert await feed.get_upcoming() is first

    @respx.mock
    async def test_unparseable_document_with_empty_cache(
        self, fetcher: HttpFetcher, clock: FakeClock
    ) -> None:
        respx.get(ICAL_URL).mock(return_value=httpx.Response(200, text="not a calendar"))
        assert await _feed(fetcher, clock).get_upcoming() == []

    @respx.mock
    async def test_empty_calendar_is_cached(self, fetcher: HttpFetcher, clock: FakeClock) -> None:
        route = respx.get(ICAL_URL).mock(return_value=httpx.Response(200, text=make_ical()))
        feed = _feed(fetcher, clock)

        assert await feed.get_upcoming() == []
        assert await feed.get_upcoming() == []
        assert route.call_count == 1

    async def test_no_url_disables_feed(self, fetcher: HttpFetcher) -> None:
        feed = CalendarFeed(
            fetcher, make_settings(calendar={"ical_url": ""}).calendar, now=lambda: NOW
        )
        assert await feed.get_upcoming() == []
