"""
Shared fixtures for the test suite.
"""
from pathlib import Path

import pytest

from collection_schedule.config import load_settings

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def settings():
    return load_settings(
        {
            "UPRN": "123",
            "BASE_URL": "https://my.redbridge.gov.uk",
            "USER_AGENT": "test-agent",
            "SCRAPE_TIMEOUT": "1s",
            "CACHE_TTL": "1h",
        }
    )


@pytest.fixture
def schedule_html():
    return (FIXTURES / "schedule.html").read_bytes()
