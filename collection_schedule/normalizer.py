"""
This module turns raw stream extractions into dated, de-duplicated collection events.
"""
import logging
import re
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Sequence, Tuple
from zoneinfo import ZoneInfo

from .exceptions import NoCollectionsError
from .extractor import normalize_spaces
from .models import CollectionEvent, StreamExtraction, WasteType

# Get a logger instance for this module
logger = logging.getLogger(__name__)

_digits = re.compile(r"\d+")
_year = re.compile(r"\b(\d{4})\b")
_date_formats = ("%d %B %Y", "%d %b %Y")


def parse_collection_date(
    day_text: str,
    month_text: str,
    tz: ZoneInfo,
    start_hour: int,
    reference: date,
) -> datetime:
    """
    Parses the day and month text of an entry into a collection time.

    The page omits the year on most entries. When the month text carries no
    year, the year that places the date closest to the reference date is used,
    so a January entry seen in December lands in the following year.

    Args:
        day_text: Text holding the day of month, e.g. "2" or "Tue 2".
        month_text: Text holding the month name, optionally followed by a year.
        tz: Timezone the collection takes place in.
        start_hour: Hour of day collections start.
        reference: Date the schedule was read on.

    Returns:
        A timezone-aware datetime at start_hour on the collection date.

    Raises:
        ValueError: If the texts do not form a valid date.
    """
    day_match = _digits.search(day_text)
    if not day_match:
        raise ValueError(f"invalid day: {day_text!r}")
    month_clean = normalize_spaces(month_text)
    if not month_clean:
        raise ValueError("invalid month")

    year_match = _year.search(month_clean)
    if year_match:
        years: Tuple[int, ...] = (int(year_match.group(1)),)
        month_clean = normalize_spaces(_year.sub("", month_clean))
    else:
        years = (reference.year, reference.year - 1, reference.year + 1)

    candidates = []
    for year in years:
        parsed = _parse_day_month_year(f"{day_match.group(0)} {month_clean} {year}")
        if parsed is not None:
            candidates.append(parsed)
    if not candidates:
        raise ValueError(f"unparseable date: {day_text!r} {month_text!r}")

    chosen = min(candidates, key=lambda d: abs((d - reference).days))
    return datetime(chosen.year, chosen.month, chosen.day, start_hour, 0, 0, tzinfo=tz)


def _parse_day_month_year(value: str):
    for fmt in _date_formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def normalize(
    extractions: Sequence[StreamExtraction],
    tz: ZoneInfo,
    start_hour: int,
    reference: date,
) -> List[CollectionEvent]:
    """
    Builds the sorted list of collection events for one scrape.

    Args:
        extractions: Per-stream extractor output, in stream table order.
        tz: Timezone the collections take place in.
        start_hour: Hour of day collections start.
        reference: Date the schedule was read on, used to infer missing years.

    Returns:
        Events unique per (date, stream), sorted by date.

    Raises:
        NoCollectionsError: If no stream produced a dated entry.
    """
    results: List[CollectionEvent] = []
    seen: Dict[Tuple[str, WasteType], int] = {}
    added_per_stream: Dict[WasteType, int] = {}

    for extraction in extractions:
        added = 0
        for entry in extraction.entries:
            try:
                when = parse_collection_date(
                    entry.day_text, entry.month_text, tz, start_hour, reference
                )
            except ValueError as e:
                logger.debug(f"Skipping {extraction.waste_type} entry: {e}")
                continue

            key = (when.isoformat(), extraction.waste_type)
            index = seen.get(key)
            if index is not None:
                results[index] = _merge(results[index], entry.note, extraction.instructions)
                continue

            seen[key] = len(results)
            results.append(
                CollectionEvent(
                    date=when,
                    type=extraction.waste_type,
                    instructions=extraction.instructions,
                    note=entry.note,
                )
            )
            added += 1
        added_per_stream[extraction.waste_type] = added

    results = propagate_garden_notice(results, extractions, added_per_stream)

    if not results:
        raise NoCollectionsError("no collections found in schedule")

    # sorted() is stable, so same-day events keep stream table order.
    return sorted(results, key=lambda event: event.date)


def _merge(existing: CollectionEvent, note: str, instructions) -> CollectionEvent:
    changes = {}
    if note and not existing.note:
        changes["note"] = note
    if instructions and not existing.instructions:
        changes["instructions"] = instructions
    return replace(existing, **changes) if changes else existing


def propagate_garden_notice(
    events: List[CollectionEvent],
    extractions: Sequence[StreamExtraction],
    added_per_stream: Dict[WasteType, int],
) -> List[CollectionEvent]:
    """
    Copies a paused garden service notice onto the other streams' events.

    Applies only when the garden container was on the page, produced no dated
    entries and carried a notice.
    """
    notice = ""
    for extraction in extractions:
        if extraction.waste_type != WasteType.GARDEN_WASTE:
            continue
        if added_per_stream.get(extraction.waste_type, 0) == 0 and extraction.notice:
            notice = extraction.notice
    if not notice:
        return events

    logger.info(f"Garden waste has no dates; adding its notice to other collections: {notice}")
    return [
        event
        if event.type == WasteType.GARDEN_WASTE
        else replace(event, note=append_note(event.note, notice))
        for event in events
    ]


def append_note(existing: str, extra: str) -> str:
    existing = existing.strip()
    extra = extra.strip()
    if not extra:
        return existing
    if not existing:
        return extra
    if extra in existing:
        return existing
    return f"{existing}\n{extra}"
