"""Timezone alias resolution and clock utilities for calendarsync_lite."""

from __future__ import annotations

import datetime
import logging
import os
from collections.abc import Iterable, Mapping
from types import MappingProxyType

logger = logging.getLogger(__name__)

TEST_TIME_ENV_VAR = "CALENDARSYNC_TEST_TIME"

# Windows/Outlook zone labels found in TZID parameters, mapped to IANA identifiers.
# Lookups are exact and case-sensitive.
WINDOWS_ZONE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "Central America Standard Time": "America/Guatemala",
        "Central Europe Standard Time": "Europe/Berlin",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "GMT Standard Time": "Europe/London",
        "Greenwich Standard Time": "Etc/GMT",  # no DST
        "Mountain Standard Time": "America/Denver",
        "Pacific Standard Time": "America/Los_Angeles",
        "Romance Standard Time": "Europe/Paris",
        "SA Pacific Standard Time": "America/Bogota",
        "US Mountain Standard Time": "America/Phoenix",  # Arizona, no DST
        "UTC": "UTC",
        "W. Europe Standard Time": "Europe/Berlin",
    }
)


def resolve_timezone_alias(alias: str | None) -> str | None:
    """Resolve a vendor timezone alias to a canonical IANA identifier.

    Args:
        alias: TZID value such as "Romance Standard Time"

    Returns:
        IANA identifier (e.g. "Europe/Paris") or None when the alias is unknown
    """
    if not alias:
        return None
    return WINDOWS_ZONE_ALIASES.get(alias)


def get_tzid(parameters: Iterable[tuple[str, tuple[str, ...]]]) -> str | None:
    """Return the first TZID value from a property's parameter list, if any."""
    for key, values in parameters:
        if key == "TZID":
            return values[0] if values else None
    return None


def resolve_tzid(parameters: Iterable[tuple[str, tuple[str, ...]]]) -> str | None:
    """Resolve the TZID parameter of a property to a canonical identifier.

    A missing TZID and an unknown alias both resolve to None; no zone is
    ever guessed on the caller's behalf.
    """
    return resolve_timezone_alias(get_tzid(parameters))


def now_local() -> datetime.datetime:
    """Return the current wall-clock time with its local UTC offset.

    Can be overridden for testing via the CALENDARSYNC_TEST_TIME environment
    variable (ISO 8601, e.g. "2023-08-01T08:00:00+02:00"). Naive override
    values are taken as UTC.
    """
    test_time = os.environ.get(TEST_TIME_ENV_VAR)
    if test_time:
        try:
            from dateutil import parser as date_parser

            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is None:
                return dt.replace(tzinfo=datetime.timezone.utc)
            return dt
        except ValueError as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV_VAR, test_time, e)

    return datetime.datetime.now().astimezone()
