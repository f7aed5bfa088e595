"""Shared fixtures for calendarsync_lite tests."""

from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import pytest

# Single event, Outlook-style TZID parameters
OUTLOOK_ICS = """BEGIN:VCALENDAR
BEGIN:VEVENT
SUMMARY:Test Event
LOCATION:Test Location
DESCRIPTION:Test Description
DTSTART;TZID=Romance Standard Time:20230801T090000
DTEND;TZID=Romance Standard Time:20230801T100000
END:VEVENT
END:VCALENDAR
"""

# Two calendar objects: the first has a broken content line, the second is fine
MALFORMED_THEN_VALID_ICS = """BEGIN:VCALENDAR
VERSION:2.0
BEGIN:VEVENT
UID:broken-1
SUMMARY:Never seen
THIS LINE HAS NO SEPARATOR
DTSTART:20230801T090000
END:VEVENT
END:VCALENDAR
BEGIN:VCALENDAR
VERSION:2.0
X-WR-CALNAME:Team
BEGIN:VEVENT
UID:good-1
SUMMARY:Standup
DTSTART;TZID=GMT Standard Time:20230802T093000
DTEND;TZID=GMT Standard Time:20230802T094500
END:VEVENT
END:VCALENDAR
"""


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Pipeline tests across modules")


@pytest.fixture
def reference_time() -> datetime:
    """Fixed processing instant used by filter tests."""
    return datetime(2023, 8, 1, 7, 30, tzinfo=timezone.utc)


@pytest.fixture
def outlook_ics() -> str:
    return OUTLOOK_ICS


@pytest.fixture
def malformed_then_valid_ics() -> str:
    return MALFORMED_THEN_VALID_ICS


@pytest.fixture
def make_feed():
    """Build a single-calendar feed from event bodies (lists of content lines)."""

    def _make(*events: list[str], calendar_lines: tuple[str, ...] = ("VERSION:2.0",)) -> str:
        lines = ["BEGIN:VCALENDAR", *calendar_lines]
        for body in events:
            lines.append("BEGIN:VEVENT")
            lines.extend(body)
            lines.append("END:VEVENT")
        lines.append("END:VCALENDAR")
        return "\r\n".join(lines) + "\r\n"

    return _make


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear CALENDARSYNC_* variables so host settings never leak into tests."""
    for name in (
        "CALENDARSYNC_TEST_TIME",
        "CALENDARSYNC_DEBUG",
        "CALENDARSYNC_LOG_LEVEL",
        "CALENDARSYNC_FEED_URL",
        "CALENDARSYNC_CALENDAR_NAME",
        "CALENDARSYNC_CREDENTIALS_PATH",
        "CALENDARSYNC_DATE_ONLY_POLICY",
        "CALENDARSYNC_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
