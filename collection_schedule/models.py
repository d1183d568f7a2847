"""
This module defines the data models for the collection schedule scraper.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class WasteType(str, Enum):
    """A waste stream collected by the council."""

    REFUSE = "Refuse"
    RECYCLING = "Recycling"
    GARDEN_WASTE = "Garden Waste"
    FOOD_WASTE = "Food Waste"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Instruction:
    """A single guidance line and the absolute links found inside it."""

    text: str
    links: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CollectionEvent:
    """Represents a single waste collection slot."""

    date: datetime
    type: WasteType
    instructions: Tuple[Instruction, ...] = ()
    note: str = ""


@dataclass
class DaySummary:
    """The streams collected on one calendar date."""

    date: datetime
    types: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StreamRule:
    """Selectors used to pull one waste stream out of the schedule page."""

    container_selector: str
    entry_selector: str
    day_selector: str
    month_selector: str
    waste_type: WasteType
    notice_selector: Optional[str] = None


@dataclass(frozen=True)
class RawEntry:
    """Day and month text of one dated entry, with its footnote."""

    day_text: str
    month_text: str
    note: str = ""


@dataclass
class StreamExtraction:
    """Everything the extractor found for one stream's container."""

    waste_type: WasteType
    instructions: Tuple[Instruction, ...] = ()
    notice: str = ""
    entries: List[RawEntry] = field(default_factory=list)


@dataclass(frozen=True)
class CacheEntry:
    """The most recent scrape result and the monotonic time it was stored."""

    events: Tuple[CollectionEvent, ...]
    fetched_at: float
