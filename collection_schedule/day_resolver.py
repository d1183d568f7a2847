"""
This module answers "today / tomorrow / next" questions about a list of collections.

Every function is pure: the current time, the events and the timezone are all
passed in.
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .models import CollectionEvent, DaySummary

# A collection still counts as "today" until this long after it starts.
COLLECTION_WINDOW = timedelta(hours=1)


def local_date(moment: datetime, tz: ZoneInfo) -> date:
    return moment.astimezone(tz).date()


def group_by_day(events: Sequence[CollectionEvent], tz: ZoneInfo) -> List[DaySummary]:
    """
    Buckets events by local calendar date.

    Returns:
        Day summaries sorted by date; each lists its streams in first-seen order.
    """
    days: Dict[date, DaySummary] = {}
    for event in sorted(events, key=lambda e: e.date):
        key = local_date(event.date, tz)
        summary = days.get(key)
        if summary is None:
            summary = days[key] = DaySummary(date=event.date)
        name = str(event.type)
        if name not in summary.types:
            summary.types.append(name)
    return [days[key] for key in sorted(days)]


def today(now: datetime, events: Sequence[CollectionEvent], tz: ZoneInfo) -> List[str]:
    """Streams collected today, until an hour after the collection starts."""
    current = local_date(now, tz)
    for day in group_by_day(events, tz):
        if local_date(day.date, tz) == current and now < day.date + COLLECTION_WINDOW:
            return list(day.types)
    return []


def tomorrow(now: datetime, events: Sequence[CollectionEvent], tz: ZoneInfo) -> List[str]:
    """Streams collected on the calendar day after now, whatever the time."""
    target = local_date(now, tz) + timedelta(days=1)
    for day in group_by_day(events, tz):
        if local_date(day.date, tz) == target:
            return list(day.types)
    return []


def next_day(
    now: datetime, events: Sequence[CollectionEvent], tz: ZoneInfo
) -> Optional[DaySummary]:
    """
    Finds the next collection day.

    A day qualifies when it starts after now, or when it is today and its
    collection window has not yet elapsed.
    """
    current = local_date(now, tz)
    for day in group_by_day(events, tz):
        if day.date > now:
            return day
        if local_date(day.date, tz) == current and now < day.date + COLLECTION_WINDOW:
            return day
    return None


def days_between(now: datetime, then: datetime, tz: ZoneInfo) -> int:
    """Whole calendar days from now's date to then's date, ignoring the time of day."""
    return (local_date(then, tz) - local_date(now, tz)).days
