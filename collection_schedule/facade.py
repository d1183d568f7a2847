"""
This module defines the central facade for the collection schedule application.
"""

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import requests

from .cache import CollectionCache, ScrapeGate
from .calendar_builder import CalendarBuilder
from .config import Settings
from .context import ScrapeContext
from .day_resolver import days_between, next_day, today, tomorrow
from .exceptions import InvalidTimeError
from .extractor import extract_streams
from .models import CollectionEvent
from .normalizer import normalize
from .services.schedule_service import ScheduleService
from .services.session_service import SessionService

logger = logging.getLogger(__name__)

_rfc3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)


def parse_rfc3339(text: str) -> datetime:
    """
    Parses an RFC 3339 date-time. The UTC offset is required.

    Raises:
        ValueError: If the text is not an RFC 3339 date-time.
    """
    match = _rfc3339.fullmatch(text)
    if match is None:
        raise ValueError(f"not an RFC 3339 date-time: {text!r}")
    day, clock, fraction, zulu, sign, offset_hours, offset_minutes = match.groups()

    parsed = datetime.strptime(f"{day}T{clock}", "%Y-%m-%dT%H:%M:%S")
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    if zulu:
        return parsed.replace(tzinfo=timezone.utc)

    if int(offset_hours) > 23 or int(offset_minutes) > 59:
        raise ValueError(f"invalid UTC offset: {text!r}")
    offset = timedelta(hours=int(offset_hours), minutes=int(offset_minutes))
    return parsed.replace(tzinfo=timezone(-offset if sign == "-" else offset))


class CollectionsFacade:
    """
    The central entry point for the collection schedule application.
    It orchestrates the scrape, the cache and the calendar builder.
    """

    def __init__(
        self,
        settings: Settings,
        session_service: SessionService,
        schedule_service: ScheduleService,
        calendar_builder: CalendarBuilder,
        cache: Optional[CollectionCache] = None,
        gate: Optional[ScrapeGate] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self.session_service = session_service
        self.schedule_service = schedule_service
        self.calendar_builder = calendar_builder
        self.cache = cache if cache is not None else CollectionCache()
        self.gate = gate if gate is not None else ScrapeGate()
        self.session_factory = session_factory
        self.clock = clock
        self.tz = settings.tzinfo

    def fetch_collections(self, ctx: Optional[ScrapeContext] = None) -> List[CollectionEvent]:
        """
        Scrapes the council site for upcoming collections.

        The workflow is:
        1. Seed the address session.
        2. Pause briefly, then download the schedule page.
        3. Extract each stream's entries and normalize them into events.

        Returns:
            Collection events sorted by date.

        Raises:
            SessionError: If the address handshake fails.
            FetchError: If the schedule download fails.
            ParsingError: If the page cannot be parsed.
            NoCollectionsError: If the page holds no collection dates.
            ContextCancelledError, DeadlineExceededError: If the context ends.
        """
        ctx = ctx or ScrapeContext(timeout=self.settings.scrape_budget)
        with self.session_factory() as session:
            self.session_service.acquire(ctx, session)
            self.schedule_service.courtesy_pause(ctx)
            body = self.schedule_service.fetch(ctx, session)

        extractions = extract_streams(body, self.settings.base_url)
        reference = self.clock().astimezone(self.tz).date()
        events = normalize(extractions, self.tz, self.settings.start_hour, reference)
        ctx.check()
        return events

    def collections(
        self, ctx: Optional[ScrapeContext] = None, force_refresh: bool = False
    ) -> List[CollectionEvent]:
        """
        Returns cached collections, scraping when the cache is cold or expired.

        Concurrent misses share a single scrape. Only successful scrapes are
        cached.
        """
        if not force_refresh:
            cached = self.cache.get(self.settings.cache_ttl)
            if cached is not None:
                logger.info(f"Cache hit ({len(cached)} items).")
                return cached

        ctx = ctx or ScrapeContext(timeout=self.settings.scrape_budget)
        generation = self.cache.generation
        return self.gate.run(
            generation, lambda: self._scrape_and_store(ctx, force_refresh), ctx
        )

    def _scrape_and_store(
        self, ctx: ScrapeContext, force_refresh: bool = False
    ) -> List[CollectionEvent]:
        if not force_refresh:
            # Another request may have stored a result since our miss.
            cached = self.cache.get(self.settings.cache_ttl)
            if cached is not None:
                logger.info(f"Cache filled by another scrape ({len(cached)} items).")
                return cached

        start = time.monotonic()
        logger.info("Scrape start.")
        events = self.fetch_collections(ctx)
        ctx.check()
        self.cache.set(events)
        logger.info(
            f"Scrape complete ({len(events)} items, took {time.monotonic() - start:.2f}s)."
        )
        return events

    def calendar(self, ctx: Optional[ScrapeContext] = None, force_refresh: bool = False) -> bytes:
        """Returns the iCalendar feed of the current collections."""
        return self.calendar_builder.build(self.collections(ctx, force_refresh=force_refresh))

    # --- Day lookups ---

    def resolve_now(self, value: Optional[str] = None) -> datetime:
        """
        Parses an RFC 3339 'now' override, or returns the current time.

        Raises:
            InvalidTimeError: If the override cannot be parsed.
        """
        text = (value or "").strip()
        if not text:
            return self.clock().astimezone(self.tz)
        try:
            parsed = parse_rfc3339(text)
        except ValueError as e:
            raise InvalidTimeError(f"invalid now: {e}") from e
        return parsed.astimezone(self.tz)

    def next_collection(self, now: datetime, ctx: Optional[ScrapeContext] = None) -> Optional[Dict]:
        """The next collection day as {date, days, types}, or None if there is none."""
        day = next_day(now, self.collections(ctx), self.tz)
        if day is None:
            return None
        return {
            "date": day.date.astimezone(self.tz).strftime("%Y-%m-%d"),
            "days": days_between(now, day.date, self.tz),
            "types": day.types,
        }

    def collection_types(self, now: datetime, ctx: Optional[ScrapeContext] = None) -> Dict:
        events = self.collections(ctx)
        return {
            "today": today(now, events, self.tz),
            "tomorrow": tomorrow(now, events, self.tz),
        }

    def is_today(self, now: datetime, ctx: Optional[ScrapeContext] = None) -> Dict:
        types = today(now, self.collections(ctx), self.tz)
        return {"today": bool(types), "types": types}

    def is_tomorrow(self, now: datetime, ctx: Optional[ScrapeContext] = None) -> Dict:
        types = tomorrow(now, self.collections(ctx), self.tz)
        return {"tomorrow": bool(types), "types": types}
