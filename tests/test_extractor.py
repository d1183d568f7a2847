"""
Unit tests for extracting stream entries from the schedule page.
"""
import pytest

from collection_schedule.exceptions import NoCollectionsError
from collection_schedule.extractor import extract_streams
from collection_schedule.models import RawEntry, WasteType

BASE_URL = "https://my.redbridge.gov.uk"


@pytest.fixture
def extractions(schedule_html):
    return {e.waste_type: e for e in extract_streams(schedule_html, BASE_URL)}


def test_extracts_every_stream_present(extractions):
    assert set(extractions) == {
        WasteType.REFUSE,
        WasteType.RECYCLING,
        WasteType.GARDEN_WASTE,
        WasteType.FOOD_WASTE,
    }


def test_entries_missing_day_or_month_are_skipped(extractions):
    refuse = extractions[WasteType.REFUSE]

    assert [(e.day_text, e.month_text) for e in refuse.entries] == [
        ("2", "December 2025"),
        ("9*", "December 2025"),
    ]


def test_entry_note_excludes_date_fields(extractions):
    refuse = extractions[WasteType.REFUSE]

    assert refuse.entries[0].note == ""
    assert refuse.entries[1].note == "*Collection moved due to bank holiday."


def test_instructions_are_harvested_once_per_stream(extractions):
    refuse = extractions[WasteType.REFUSE]

    assert [i.text for i in refuse.instructions][0] == "Put your black bin out by 6am."
    assert len(refuse.instructions) == 2


def test_relative_links_are_resolved_and_deduplicated(extractions):
    missed = extractions[WasteType.REFUSE].instructions[1]

    assert missed.text.startswith("Missed collection?")
    assert missed.links == ("https://my.redbridge.gov.uk/MissedCollection/refuse",)


def test_absolute_links_are_kept(extractions):
    recycling = extractions[WasteType.RECYCLING]

    assert recycling.instructions[1].links == (
        "https://www.redbridge.gov.uk/recycling/what-goes-in",
    )


def test_garden_notice_is_captured(extractions):
    garden = extractions[WasteType.GARDEN_WASTE]

    assert garden.entries == []
    assert garden.instructions == ()
    assert garden.notice == "Garden waste collections are paused until March."
    assert extractions[WasteType.REFUSE].notice == ""


def test_duplicate_entries_are_left_for_the_normalizer(extractions):
    food = extractions[WasteType.FOOD_WASTE]

    assert food.entries[1:] == [
        RawEntry("9", "December 2025", ""),
        RawEntry("9", "December 2025", "Use your kerbside caddy."),
    ]


def test_missing_stream_container_is_skipped():
    html = """
    <div class="your-collection-schedule-container">
      <div class="recycle-container">
        <div class="collectionDates-container">
          <div class="garden-collection-postdate">
            <span class="recycling-garden-collection-day-numeric">3</span>
            <span class="recycling-collection-month">December</span>
          </div>
        </div>
      </div>
    </div>
    """

    extractions = extract_streams(html, BASE_URL)

    assert [e.waste_type for e in extractions] == [WasteType.RECYCLING]
    assert extractions[0].entries == [RawEntry("3", "December", "")]


def test_stream_split_over_several_blocks_reads_every_block():
    html = """
    <div class="your-collection-schedule-container">
      <div class="refuse-container">
        <div class="collectionDates-container">
          <div class="garden-collection-postdate">
            <span class="refuse-garden-collection-day-numeric">2</span>
            <span class="refuse-collection-month">December</span>
          </div>
        </div>
      </div>
      <div class="refuse-container">
        <div class="collectionDetail">
          <p class="instructions">Put your black bin out by 6am.</p>
        </div>
        <div class="collectionDates-container">
          <div class="garden-collection-postdate">
            <span class="refuse-garden-collection-day-numeric">16</span>
            <span class="refuse-collection-month">December</span>
          </div>
        </div>
      </div>
    </div>
    """

    extractions = extract_streams(html, BASE_URL)

    assert len(extractions) == 1
    refuse = extractions[0]
    assert refuse.entries == [RawEntry("2", "December", ""), RawEntry("16", "December", "")]
    assert [i.text for i in refuse.instructions] == ["Put your black bin out by 6am."]


def test_missing_schedule_container_raises_no_collections():
    with pytest.raises(NoCollectionsError):
        extract_streams(b"<html><body><p>Please select an address</p></body></html>", BASE_URL)
