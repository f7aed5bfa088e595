"""Future-event filtering for calendarsync_lite."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum

from calendarsync_lite.calendar.feed_models import Diagnostic, DiagnosticKind, NormalizedEvent
from calendarsync_lite.core.timezone_utils import now_local

logger = logging.getLogger(__name__)

MISSING_START = "missing start"


class DateOnlyPolicy(str, Enum):
    """How events that start on a date without a time of day are treated."""

    RETAIN = "retain"  # always kept
    COMPARE = "compare"  # kept when the date is on or after the reference date


@dataclass(frozen=True)
class FilterDecision:
    """Retain/drop verdict for one event."""

    retain: bool
    reason: str


class FutureEventFilter:
    """Keeps events that start on or after the reference date.

    Comparison is done at date granularity: an event with a date-time start
    earlier today is still retained.
    """

    def __init__(
        self,
        reference: datetime.datetime | None = None,
        date_only_policy: DateOnlyPolicy | str = DateOnlyPolicy.RETAIN,
    ):
        """Initialize future filter.

        Args:
            reference: Processing instant; defaults to the wall clock at construction
            date_only_policy: Policy for date-only starts
        """
        self.reference = reference if reference is not None else now_local()
        self.date_only_policy = DateOnlyPolicy(date_only_policy)

    @property
    def reference_date(self) -> datetime.date:
        return self.reference.date()

    def decide(self, event: NormalizedEvent) -> FilterDecision:
        """Decide whether to keep one event."""
        start = event.start

        if start.date_time is not None:
            if start.date_time.date() >= self.reference_date:
                return FilterDecision(True, "starts on or after reference date")
            return FilterDecision(False, "starts before reference date")

        if start.date is not None:
            if self.date_only_policy is DateOnlyPolicy.RETAIN:
                return FilterDecision(True, "date-only start retained by policy")
            # Lexical comparison; works for unvalidated pass-through dates too
            if start.date >= self.reference_date.isoformat():
                return FilterDecision(True, "date-only start on or after reference date")
            return FilterDecision(False, "date-only start before reference date")

        return FilterDecision(False, MISSING_START)

    def filter_events(
        self, events: list[NormalizedEvent]
    ) -> tuple[list[NormalizedEvent], list[Diagnostic]]:
        """Filter events, preserving order.

        Returns:
            Tuple of (retained events, diagnostics for events without a usable start)
        """
        retained: list[NormalizedEvent] = []
        diagnostics: list[Diagnostic] = []

        for event in events:
            decision = self.decide(event)
            if decision.retain:
                retained.append(event)
                continue

            if decision.reason == MISSING_START:
                message = f"Dropping event {event.id or event.summary!r}: no usable start"
                logger.info(message)
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.FILTER_EXCLUSION,
                        message=message,
                        event_id=event.id,
                    )
                )
            else:
                logger.debug("Skipping past event %s: %s", event.id, decision.reason)

        return retained, diagnostics
