"""ICS calendar generation from feed records."""

from __future__ import annotations

from datetime import timedelta

from icalendar import Calendar, Event

from owlcal.builder import FeedRecord, RenderedEvent

# Used when a match has no end time in the schedule
DEFAULT_MATCH_LENGTH = timedelta(hours=1)


def create_feed_calendar(feed: FeedRecord) -> Calendar:
    """Create an ICS calendar for a built feed."""
    cal = Calendar()
    cal.add("prodid", f"-//{feed.name}//{feed.domain}//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", feed.name)
    # Refresh interval hint for calendar clients
    cal.add("x-published-ttl", f"PT{feed.ttl_seconds}S")
    cal.add("refresh-interval", timedelta(seconds=feed.ttl_seconds), parameters={"VALUE": "DURATION"})

    for rendered in feed.events:
        cal.add_component(_create_event(feed, rendered))

    return cal


def _create_event(feed: FeedRecord, rendered: RenderedEvent) -> Event:
    event = Event()
    event.add("uid", f"{rendered.sequence_id}@{feed.domain}")
    event.add("sequence", rendered.sequence_id)
    event.add("summary", rendered.summary)
    event.add("description", rendered.description)
    event.add("dtstart", rendered.start)
    event.add("dtend", rendered.end or rendered.start + DEFAULT_MATCH_LENGTH)
    if rendered.location:
        event.add("location", rendered.location)
    return event


def feed_to_ics(feed: FeedRecord) -> bytes:
    return create_feed_calendar(feed).to_ical()


def validate_ics(data: bytes) -> bool:
    """Basic validation that ICS data is well-formed."""
    text = data.decode("utf-8", errors="replace")
    return text.startswith("BEGIN:VCALENDAR") and "END:VCALENDAR" in text
