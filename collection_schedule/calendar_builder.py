"""
This module renders collection events as an iCalendar feed.

It uses the icalendar library to build the feed.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Sequence
from urllib.parse import urlparse

from icalendar import Alarm, Calendar, Event

from .day_resolver import COLLECTION_WINDOW
from .models import CollectionEvent, Instruction

# Get a logger instance for this module
logger = logging.getLogger(__name__)

PRODUCT_ID = "-//redbridge-ics//EN"
UID_DOMAIN = "redbridge-ics"
REMINDERS = (timedelta(hours=11), timedelta(minutes=30))
BULLET = "• "

_slug_separator = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _slug_separator.sub("-", value.lower()).strip("-") or "collection"


def title_case(value: str) -> str:
    words = value.split()
    if not words:
        return "Collection"
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def event_uid(event: CollectionEvent) -> str:
    """Stable identifier for a stream's collection on a given date."""
    return f"{slugify(str(event.type))}-{event.date.strftime('%Y%m%d')}@{UID_DOMAIN}"


def _is_missed_collection(instruction: Instruction, link: str) -> bool:
    return "missed" in instruction.text.lower() or "missed" in urlparse(link).path.lower()


def _bullets(lines: Iterable[str]) -> List[str]:
    return [f"{BULLET}{line}" for line in lines]


def build_description(event: CollectionEvent) -> str:
    """
    Assembles the event description from the harvested instructions and note.

    Sections are INSTRUCTIONS, MISSED COLLECTION, LINKS and NOTE; empty ones
    are left out.
    """
    if event.instructions:
        instruction_lines = [instruction.text for instruction in event.instructions]
    else:
        instruction_lines = [
            f"Place bins out by {event.date.strftime('%H:%M')} on collection day."
        ]

    missed: List[str] = []
    other: List[str] = []
    for instruction in event.instructions:
        for link in instruction.links:
            target = missed if _is_missed_collection(instruction, link) else other
            if link not in target:
                target.append(link)

    note_lines = [line.strip() for line in event.note.splitlines() if line.strip()]

    sections = [("INSTRUCTIONS", instruction_lines), ("MISSED COLLECTION", missed), ("LINKS", other), ("NOTE", note_lines)]
    blocks = [
        "\n".join([heading] + _bullets(lines)) for heading, lines in sections if lines
    ]
    return "\n\n".join(blocks)


class CalendarBuilder:
    """Transforms scraped collections into an .ics payload."""

    def __init__(
        self,
        name: str = "",
        description: str = "",
        timezone_name: str = "",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.name = name
        self.description = description
        self.timezone_name = timezone_name
        self.clock = clock

    def build(self, events: Sequence[CollectionEvent]) -> bytes:
        """
        Creates the iCalendar document for the given events.

        Returns:
            The serialized calendar, CRLF line endings, UTF-8 encoded.
        """
        cal = Calendar()
        cal.add("prodid", PRODUCT_ID)
        cal.add("version", "2.0")
        cal.add("calscale", "GREGORIAN")
        cal.add("method", "PUBLISH")
        if self.name:
            cal.add("x-wr-calname", self.name)
        if self.description:
            cal.add("x-wr-caldesc", self.description)
        if self.timezone_name:
            cal.add("x-wr-timezone", self.timezone_name)

        stamp = self.clock().astimezone(timezone.utc)
        for event in events:
            cal.add_component(self._build_event(event, stamp))

        logger.debug(f"Built calendar with {len(events)} events.")
        return cal.to_ical()

    def _build_event(self, event: CollectionEvent, stamp: datetime) -> Event:
        summary = f"Bin: {title_case(str(event.type))}"
        start = event.date.astimezone(timezone.utc)

        vevent = Event()
        vevent.add("uid", event_uid(event))
        vevent.add("dtstamp", stamp)
        vevent.add("dtstart", start)
        vevent.add("dtend", start + COLLECTION_WINDOW)
        vevent.add("summary", summary)
        vevent.add("description", build_description(event))
        vevent.add("categories", [str(event.type)])

        for lead in REMINDERS:
            alarm = Alarm()
            alarm.add("action", "DISPLAY")
            alarm.add("description", summary)
            alarm.add("trigger", -lead)
            vevent.add_component(alarm)
        return vevent
