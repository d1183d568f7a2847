"""
Unit tests for the Flask application.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from collection_schedule.exceptions import (
    FetchError,
    InvalidTimeError,
    NoCollectionsError,
    ParsingError,
    SessionError,
)
from web.app import app

NOW = datetime(2025, 12, 1, 7, 30, tzinfo=timezone.utc)


@pytest.fixture
def facade():
    mock_facade = MagicMock()
    mock_facade.resolve_now.return_value = NOW
    return mock_facade


@pytest.fixture
def client(facade):
    app.config["TESTING"] = True
    app.config["FACADE"] = facade
    with app.test_client() as client:
        yield client


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_calendar_serves_ics(client, facade):
    # Arrange
    facade.calendar.return_value = b"BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n"

    # Act
    response = client.get("/calendar.ics")

    # Assert
    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/calendar; charset=utf-8"
    assert response.headers["Cache-Control"] == "public, max-age=300"
    assert response.data.startswith(b"BEGIN:VCALENDAR")
    facade.calendar.assert_called_once_with(force_refresh=False)


def test_calendar_refresh_forces_scrape(client, facade):
    facade.calendar.return_value = b"BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n"

    client.get("/calendar.ics?refresh=1")

    facade.calendar.assert_called_once_with(force_refresh=True)


@pytest.mark.parametrize(
    "error, detail",
    [
        (FetchError("fetch schedule: unexpected status 500"), "scrape_failed"),
        (ParsingError("parse schedule: bad markup"), "scrape_failed"),
        (NoCollectionsError("no collections found"), "failed_to_parse_schedule"),
        (SessionError("failed to seed address cookie"), "address_setup_failed"),
    ],
)
def test_calendar_scrape_errors_map_to_bad_gateway(client, facade, error, detail):
    facade.calendar.side_effect = error

    response = client.get("/calendar.ics")

    assert response.status_code == 502
    assert response.get_json() == {"error": detail}


def test_calendar_build_failure(client, facade):
    facade.calendar.side_effect = RuntimeError("boom")

    response = client.get("/calendar.ics")

    assert response.status_code == 500
    assert response.get_json() == {"error": "calendar_failed"}


def test_next_collection(client, facade):
    facade.next_collection.return_value = {"date": "2025-12-02", "days": 1, "types": ["Recycling"]}

    response = client.get("/api/next?now=2025-12-01T07:30:00Z")

    assert response.status_code == 200
    assert response.get_json() == {"date": "2025-12-02", "days": 1, "types": ["Recycling"]}
    facade.resolve_now.assert_called_once_with("2025-12-01T07:30:00Z")
    facade.next_collection.assert_called_once_with(NOW)


def test_next_collection_not_found(client, facade):
    facade.next_collection.return_value = None

    response = client.get("/api/next")

    assert response.status_code == 404
    assert response.get_json() == {"error": "no_upcoming_collections"}


@pytest.mark.parametrize("path", ["/api/next", "/api/types", "/api/is-today", "/api/is-tomorrow"])
def test_invalid_now_is_rejected(client, facade, path):
    facade.resolve_now.side_effect = InvalidTimeError("invalid now: 'soon'")

    response = client.get(f"{path}?now=soon")

    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid_now"}


@pytest.mark.parametrize(
    "path, method",
    [
        ("/api/next", "next_collection"),
        ("/api/types", "collection_types"),
        ("/api/is-today", "is_today"),
        ("/api/is-tomorrow", "is_tomorrow"),
    ],
)
def test_lookups_unavailable_when_scrape_fails(client, facade, path, method):
    getattr(facade, method).side_effect = FetchError("fetch schedule: unexpected status 503")

    response = client.get(path)

    assert response.status_code == 503
    assert response.get_json() == {"error": "unavailable"}


def test_lookups(client, facade):
    facade.collection_types.return_value = {"today": [], "tomorrow": ["Recycling"]}
    facade.is_today.return_value = {"today": False, "types": []}
    facade.is_tomorrow.return_value = {"tomorrow": True, "types": ["Recycling"]}

    assert client.get("/api/types").get_json() == {"today": [], "tomorrow": ["Recycling"]}
    assert client.get("/api/is-today").get_json() == {"today": False, "types": []}
    assert client.get("/api/is-tomorrow").get_json() == {"tomorrow": True, "types": ["Recycling"]}
