"""
This module provides functionality for extracting collection entries from the schedule page.

It uses BeautifulSoup CSS selectors; each waste stream is described by one
StreamRule in STREAM_RULES.
"""
import logging
import re
from typing import List, Sequence, Tuple, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .exceptions import NoCollectionsError, ParsingError
from .models import Instruction, RawEntry, StreamExtraction, StreamRule, WasteType

# Get a logger instance for this module
logger = logging.getLogger(__name__)

SCHEDULE_CONTAINER_SELECTOR = ".your-collection-schedule-container"
DETAIL_SELECTOR = ".collectionDetail"
INSTRUCTION_SELECTOR = "p.instructions"
NOTE_SELECTOR = ".asterisk-note"
ENTRY_SELECTOR = ".collectionDates-container .garden-collection-postdate"

STREAM_RULES: Tuple[StreamRule, ...] = (
    StreamRule(".refuse-container", ENTRY_SELECTOR, ".refuse-garden-collection-day-numeric", ".refuse-collection-month", WasteType.REFUSE),
    StreamRule(".recycle-container", ENTRY_SELECTOR, ".recycling-garden-collection-day-numeric", ".recycling-collection-month", WasteType.RECYCLING),
    StreamRule(".garden-container", ENTRY_SELECTOR, ".garden-collection-day-numeric", ".garden-collection-month", WasteType.GARDEN_WASTE, notice_selector=".collectionDates-container .upcoming-dates"),
    StreamRule(".foodwasteCollectionDay", ENTRY_SELECTOR, ".food-garden-collection-day-numeric", ".food-collection-month", WasteType.FOOD_WASTE),
)

_whitespace = re.compile(r"\s+")


def normalize_spaces(value: str) -> str:
    return _whitespace.sub(" ", value).strip()


def extract_streams(
    body: Union[bytes, str],
    base_url: str,
    rules: Sequence[StreamRule] = STREAM_RULES,
) -> List[StreamExtraction]:
    """
    Pulls the raw collection entries of every configured stream out of the page.

    Streams whose container is missing are skipped; some are seasonal.

    Args:
        body: The schedule page markup.
        base_url: Origin used to make relative links absolute.
        rules: The stream rules to apply, in order.

    Returns:
        One StreamExtraction per stream container found, in rule order.

    Raises:
        ParsingError: If the markup cannot be parsed at all.
        NoCollectionsError: If the page has no schedule container.
    """
    try:
        soup = BeautifulSoup(body, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParsingError(f"Failed to parse schedule page: {e}") from e

    container = soup.select_one(SCHEDULE_CONTAINER_SELECTOR)
    if container is None:
        raise NoCollectionsError("no collections found in schedule")

    extractions = []
    for rule in rules:
        blocks = container.select(rule.container_selector)
        if not blocks:
            logger.debug(f"No container for {rule.waste_type}; skipping stream.")
            continue
        extractions.append(_extract_stream(blocks, rule, base_url))
    return extractions


def _extract_stream(blocks: List[Tag], rule: StreamRule, base_url: str) -> StreamExtraction:
    """
    Collects one stream's instructions, notice and entries.

    A stream can be split over several matching blocks. Entries are read from
    all of them; instructions and the notice come from the first block that
    has them.
    """
    extraction = StreamExtraction(waste_type=rule.waste_type)
    for block in blocks:
        if not extraction.instructions:
            extraction.instructions = extract_instructions(block, base_url)
        if rule.notice_selector and not extraction.notice:
            notice = block.select_one(rule.notice_selector)
            if notice is not None:
                extraction.notice = normalize_spaces(notice.get_text(" "))

        for entry in block.select(rule.entry_selector):
            day = entry.select_one(rule.day_selector)
            month = entry.select_one(rule.month_selector)
            day_text = day.get_text().strip() if day is not None else ""
            month_text = month.get_text().strip() if month is not None else ""
            if not day_text or not month_text:
                logger.debug(f"Skipping {rule.waste_type} entry without a day or month.")
                continue
            extraction.entries.append(
                RawEntry(day_text=day_text, month_text=month_text, note=extract_note(entry, rule))
            )
    return extraction


def extract_instructions(block: Tag, base_url: str) -> Tuple[Instruction, ...]:
    """Reads the guidance paragraphs of a stream's detail block."""
    detail = block.select_one(DETAIL_SELECTOR)
    if detail is None:
        return ()

    instructions = []
    for paragraph in detail.select(INSTRUCTION_SELECTOR):
        text = normalize_spaces(paragraph.get_text(" ", strip=True))
        if not text:
            continue
        instructions.append(Instruction(text=text, links=extract_links(paragraph, base_url)))
    return tuple(instructions)


def extract_links(paragraph: Tag, base_url: str) -> Tuple[str, ...]:
    links = []
    for anchor in paragraph.select("a[href]"):
        href = anchor.get("href", "").strip()
        if not href:
            continue
        resolved = urljoin(base_url + "/", href)
        if resolved not in links:
            links.append(resolved)
    return tuple(links)


def extract_note(entry: Tag, rule: StreamRule) -> str:
    """Joins an entry's footnotes, leaving out nodes that hold the date itself."""
    notes = []
    for node in entry.select(NOTE_SELECTOR):
        if node.css.match(rule.day_selector) or node.css.match(rule.month_selector):
            continue
        classes = " ".join(node.get("class", []))
        if "collection-day" in classes or "collection-month" in classes:
            continue
        text = normalize_spaces(node.get_text(" "))
        if text:
            notes.append(text)
    return " ".join(notes)
