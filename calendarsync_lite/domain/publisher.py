"""Publisher interface for handing normalized events to a remote calendar.

Authentication and calendar lookup belong to the publisher implementation;
this module only defines the seam and the insert loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from calendarsync_lite.calendar.feed_models import NormalizedEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """Outcome of inserting one event."""

    success: bool
    html_link: Optional[str] = None
    error_message: Optional[str] = None


class CalendarPublisher(Protocol):
    """Accepts one normalized event at a time."""

    async def insert(self, event: NormalizedEvent) -> PublishResult:
        """Insert ``event`` into the target calendar."""
        ...


@dataclass
class RecordingPublisher:
    """In-memory publisher that keeps every inserted event.

    Used for dry runs: nothing leaves the process, each event gets a
    ``memory://`` link built from its position.
    """

    calendar_name: str = "Test"
    inserted: list[NormalizedEvent] = field(default_factory=list)

    async def insert(self, event: NormalizedEvent) -> PublishResult:
        self.inserted.append(event)
        logger.debug("Recorded event for %s: %s", self.calendar_name, event.to_json_dict())
        link = f"memory://{self.calendar_name}/{len(self.inserted)}"
        return PublishResult(success=True, html_link=link)


async def publish_events(
    publisher: CalendarPublisher, events: list[NormalizedEvent]
) -> list[PublishResult]:
    """Insert events one by one in feed order.

    A failing insert is logged and recorded; it does not stop the loop.

    Returns:
        One PublishResult per event, in the same order
    """
    results: list[PublishResult] = []
    for event in events:
        try:
            result = await publisher.insert(event)
        except Exception as e:
            logger.exception("Error creating event %s", event.id)
            result = PublishResult(success=False, error_message=str(e))

        if result.success:
            logger.info("Event created: %s", result.html_link)
        else:
            logger.warning("Error creating event %s: %s", event.id, result.error_message)
        results.append(result)

    return results
