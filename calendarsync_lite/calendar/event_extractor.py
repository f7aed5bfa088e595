"""Event field extraction from raw VEVENT blocks - calendarsync_lite."""

import logging
from typing import Any, Callable

from calendarsync_lite.calendar.feed_models import (
    ExtractedEvent,
    RawEventBlock,
    RawProperty,
    RawTimestamp,
)

logger = logging.getLogger(__name__)

_Fields = dict[str, Any]


def _set_id(fields: _Fields, prop: RawProperty) -> None:
    fields["id"] = prop.value


def _set_summary(fields: _Fields, prop: RawProperty) -> None:
    fields["summary"] = prop.value or ""


def _set_location(fields: _Fields, prop: RawProperty) -> None:
    fields["location"] = prop.value


def _set_description(fields: _Fields, prop: RawProperty) -> None:
    fields["description"] = prop.value


def _set_start(fields: _Fields, prop: RawProperty) -> None:
    fields["start"] = RawTimestamp(value=prop.value or "", parameters=prop.parameters)


def _set_end(fields: _Fields, prop: RawProperty) -> None:
    fields["end"] = RawTimestamp(value=prop.value or "", parameters=prop.parameters)


def _ignore(fields: _Fields, prop: RawProperty) -> None:
    pass


PROPERTY_HANDLERS: dict[str, Callable[[_Fields, RawProperty], None]] = {
    "UID": _set_id,
    "SUMMARY": _set_summary,
    "LOCATION": _set_location,
    "DESCRIPTION": _set_description,
    "DTSTART": _set_start,
    "DTEND": _set_end,
}


class EventExtractor:
    """Pulls the fields of one event block into an ExtractedEvent.

    Properties are visited once in source order; when a name repeats the
    last occurrence wins. Names without a handler are ignored.
    """

    def extract(self, block: RawEventBlock) -> ExtractedEvent:
        """Extract id, summary, location, description, start and end.

        Args:
            block: Raw properties of one VEVENT

        Returns:
            ExtractedEvent; fields missing from the block keep their defaults
        """
        fields: _Fields = {}
        for prop in block.properties:
            handler = PROPERTY_HANDLERS.get(prop.name, _ignore)
            handler(fields, prop)

        if "start" not in fields:
            logger.debug("Event %s has no DTSTART", fields.get("id"))

        return ExtractedEvent(**fields)
