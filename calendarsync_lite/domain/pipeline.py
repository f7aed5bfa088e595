"""Feed normalization pipeline for calendarsync_lite.

Runs the stages in order: parse calendar objects, extract event fields,
normalize start/end, filter past events. Non-fatal problems are collected
as diagnostics next to the event output instead of aborting the run.

Usage:
    normalizer = FeedNormalizer(date_only_policy="retain")
    result = normalizer.normalize(feed_bytes)
    print(events_to_json(result.events))
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Optional

from pydantic import TypeAdapter

from calendarsync_lite.calendar.datetime_normalizer import DateTimeNormalizer
from calendarsync_lite.calendar.event_extractor import EventExtractor
from calendarsync_lite.calendar.feed_fetcher import FeedFetcher
from calendarsync_lite.calendar.feed_models import (
    Diagnostic,
    DiagnosticKind,
    NormalizedEvent,
    RawEventBlock,
)
from calendarsync_lite.calendar.feed_parser import FeedParser, FeedSource
from calendarsync_lite.config_loader import Config
from calendarsync_lite.domain.future_filter import DateOnlyPolicy, FutureEventFilter
from calendarsync_lite.domain.publisher import CalendarPublisher, PublishResult, publish_events

logger = logging.getLogger(__name__)

_EVENT_LIST_ADAPTER = TypeAdapter(list[NormalizedEvent])


@dataclass
class FeedNormalizationResult:
    """Normalized events plus everything noticed on the way."""

    events: list[NormalizedEvent] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    # Statistics
    calendars_parsed: int = 0
    calendars_failed: int = 0
    events_seen: int = 0
    events_dropped: int = 0

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        """Return diagnostics of one kind, in the order they were recorded."""
        return [d for d in self.diagnostics if d.kind == kind]


class FeedNormalizer:
    """Turns raw feed content into an ordered list of NormalizedEvent."""

    def __init__(
        self,
        date_only_policy: DateOnlyPolicy | str = DateOnlyPolicy.RETAIN,
        parser: Optional[FeedParser] = None,
    ) -> None:
        self.date_only_policy = DateOnlyPolicy(date_only_policy)
        self.parser = parser or FeedParser()
        self.extractor = EventExtractor()
        self.datetime_normalizer = DateTimeNormalizer()

    def normalize_block(
        self,
        block: RawEventBlock,
        calendar_index: Optional[int] = None,
        diagnostics: Optional[list[Diagnostic]] = None,
    ) -> NormalizedEvent:
        """Extract and normalize one event block."""
        extracted = self.extractor.extract(block)

        def on_field_error(message: str) -> None:
            if diagnostics is not None:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.FIELD_PARSE_FAILURE,
                        message=message,
                        calendar_index=calendar_index,
                        event_id=extracted.id,
                    )
                )

        return NormalizedEvent(
            id=extracted.id,
            summary=extracted.summary,
            location=extracted.location,
            description=extracted.description,
            start=self.datetime_normalizer.normalize(extracted.start, on_field_error),
            end=self.datetime_normalizer.normalize(extracted.end, on_field_error),
        )

    def normalize(
        self,
        source: FeedSource,
        reference: Optional[datetime.datetime] = None,
    ) -> FeedNormalizationResult:
        """Run the whole pipeline over one feed.

        Args:
            source: Feed content (bytes, str or file object)
            reference: Processing instant for the future filter (defaults to now)

        Returns:
            FeedNormalizationResult with retained events in feed order
        """
        result = FeedNormalizationResult()
        event_filter = FutureEventFilter(reference, self.date_only_policy)
        normalized: list[NormalizedEvent] = []

        for parsed in self.parser.iter_calendars(source):
            if parsed.calendar is None:
                result.calendars_failed += 1
                result.diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.BLOCK_PARSE_FAILURE,
                        message=f"Error parsing calendar (line {parsed.line_number}): {parsed.error}",
                        calendar_index=parsed.index,
                    )
                )
                continue

            result.calendars_parsed += 1
            calendar_name = parsed.calendar.get_property("X-WR-CALNAME")
            logger.debug(
                "Normalizing %d events from calendar %d (%s)",
                len(parsed.calendar.events),
                parsed.index,
                calendar_name or "unnamed",
            )
            for block in parsed.calendar.events:
                result.events_seen += 1
                normalized.append(self.normalize_block(block, parsed.index, result.diagnostics))

        retained, exclusions = event_filter.filter_events(normalized)
        result.events = retained
        result.events_dropped = len(normalized) - len(retained)
        result.diagnostics.extend(exclusions)

        logger.info(
            "Normalized %d of %d events (%d calendars parsed, %d failed)",
            len(result.events),
            result.events_seen,
            result.calendars_parsed,
            result.calendars_failed,
        )
        return result


def events_to_json(events: list[NormalizedEvent], indent: Optional[int] = 2) -> str:
    """Serialize events as an ordered JSON array with absent fields omitted."""
    data = _EVENT_LIST_ADAPTER.dump_json(events, indent=indent, by_alias=True, exclude_none=True)
    return data.decode("utf-8")


@dataclass
class SyncReport:
    """Result of a fetch-normalize-publish run."""

    normalization: FeedNormalizationResult
    publish_results: list[PublishResult] = field(default_factory=list)

    @property
    def events(self) -> list[NormalizedEvent]:
        return self.normalization.events


async def sync_feed(
    config: Config,
    fetcher: Optional[FeedFetcher] = None,
    publisher: Optional[CalendarPublisher] = None,
    reference: Optional[datetime.datetime] = None,
) -> SyncReport:
    """Fetch the configured feed, normalize it and optionally publish it.

    Transport failures propagate to the caller; everything after the fetch
    is reported through the returned diagnostics.
    """
    if fetcher is None:
        async with FeedFetcher(request_timeout=config.request_timeout) as owned:
            content = await owned.fetch(config.feed_url)
    else:
        content = await fetcher.fetch(config.feed_url)

    normalizer = FeedNormalizer(date_only_policy=config.date_only_policy)
    normalization = normalizer.normalize(content, reference)

    report = SyncReport(normalization=normalization)
    if publisher is not None:
        report.publish_results = await publish_events(publisher, normalization.events)
    return report
