"""DateTime normalization for DTSTART/DTEND values - calendarsync_lite.

Fixed-width iCalendar timestamps are turned into either a date-only value
(``YYYYMMDD``) or a date-time anchored to UTC (``YYYYMMDDTHHMMSS``). The
resolved zone identifier is attached as metadata only; wall-clock fields
are never shifted.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from calendarsync_lite.calendar.feed_models import NormalizedDateTime, RawTimestamp
from calendarsync_lite.core.timezone_utils import get_tzid, resolve_timezone_alias

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y%m%dT%H%M%S"
DATETIME_MIN_LENGTH = 15  # YYYYMMDDTHHMMSS
DATE_MIN_LENGTH = 8  # YYYYMMDD

FieldErrorCallback = Callable[[str], None]


def parse_local_datetime(value: str) -> Optional[datetime]:
    """Parse ``YYYYMMDDTHHMMSS`` (optionally followed by ``Z``) as a UTC instant.

    Returns:
        Timezone-aware datetime in UTC, or None when the value does not parse
    """
    text = value[:-1] if value.endswith("Z") else value
    try:
        naive = datetime.strptime(text, DATETIME_FORMAT)
    except ValueError:
        return None
    return naive.replace(tzinfo=timezone.utc)


def format_date_only(value: str) -> str:
    """Reformat the first eight characters as ``YYYY-MM-DD`` without range checks."""
    return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"


class DateTimeNormalizer:
    """Converts RawTimestamp values into NormalizedDateTime."""

    def normalize(
        self,
        raw: RawTimestamp,
        on_field_error: Optional[FieldErrorCallback] = None,
    ) -> NormalizedDateTime:
        """Normalize one start/end value.

        Args:
            raw: Timestamp string plus the property's parameters
            on_field_error: Optional callback receiving a message for each
                value that was present but could not be used

        Returns:
            NormalizedDateTime with at most one of date/dateTime populated
        """
        value = raw.value.strip()
        tzid = get_tzid(raw.parameters)
        time_zone = resolve_timezone_alias(tzid)

        if tzid and time_zone is None:
            self._report(on_field_error, f"Unrecognized timezone alias {tzid!r}")

        if len(value) >= DATETIME_MIN_LENGTH:
            parsed = parse_local_datetime(value)
            if parsed is None:
                self._report(on_field_error, f"Invalid date-time value {value!r}")
            return NormalizedDateTime(date_time=parsed, time_zone=time_zone)

        if len(value) >= DATE_MIN_LENGTH:
            return NormalizedDateTime(date=format_date_only(value), time_zone=time_zone)

        if value:
            self._report(on_field_error, f"Timestamp value {value!r} too short")
        return NormalizedDateTime(time_zone=time_zone)

    @staticmethod
    def _report(callback: Optional[FieldErrorCallback], message: str) -> None:
        logger.debug(message)
        if callback is not None:
            callback(message)
