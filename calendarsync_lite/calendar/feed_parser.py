"""Streaming iCalendar feed parser - calendarsync_lite.

Splits a feed into calendar objects, event blocks and properties. Content
lines are tokenized with icalendar's ``Contentline``; component structure,
line unfolding and error recovery are handled here so that one malformed
calendar object never hides the objects that follow it.
"""

import codecs
import logging
from collections.abc import Iterable, Iterator
from typing import BinaryIO, Optional, TextIO, Union

from icalendar.parser import Contentline

from calendarsync_lite.calendar.feed_models import (
    CalendarParseResult,
    RawCalendar,
    RawEventBlock,
    RawProperty,
)
from calendarsync_lite.core.exceptions import FeedContentTooLargeError

logger = logging.getLogger(__name__)

# Size validation constants
MAX_FEED_SIZE_BYTES = 50 * 1024 * 1024  # 50MB limit
FEED_SIZE_WARNING_BYTES = 10 * 1024 * 1024  # 10MB warning threshold

DEFAULT_CHUNK_SIZE = 8192  # 8KB chunks for stream reading
DEFAULT_DECODE_ERRORS = "replace"  # UTF-8 decode error handling

FeedSource = Union[bytes, bytearray, str, BinaryIO, TextIO]


def tokenize_line(line: str) -> RawProperty:
    """Split one unfolded content line into name, parameters and value.

    Parameter names are upper-cased and a repeated name keeps its last value.
    Backslash escapes in the value (comma, semicolon, newline) are decoded.

    Args:
        line: Content line such as ``DTSTART;TZID=Romance Standard Time:20230801T090000``

    Returns:
        RawProperty with parameter values split on unquoted commas

    Raises:
        ValueError: If the line is not a valid content line
    """
    name, params, value = Contentline(line).parts()
    parameters = tuple(
        (key, tuple(values) if isinstance(values, list) else (values,))
        for key, values in params.items()
    )
    return RawProperty(name=name, value=value or None, parameters=parameters)


class _CalendarBuilder:
    """Accumulates one VCALENDAR object while its lines are being read."""

    def __init__(self, index: int, start_line: int) -> None:
        self.index = index
        self.start_line = start_line
        self.properties: list[RawProperty] = []
        self.events: list[RawEventBlock] = []
        self.stack: list[str] = []  # components open inside VCALENDAR
        self._event_stack: list[list[RawProperty]] = []
        self.error: Optional[str] = None
        self.error_line: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def fail(self, line_number: int, message: str) -> None:
        # Keep the first error; later ones are usually consequences of it
        if self.error is None:
            self.error = message
            self.error_line = line_number

    def begin(self, component: str) -> None:
        self.stack.append(component)
        if component == "VEVENT":
            self._event_stack.append([])

    def end(self) -> None:
        component = self.stack.pop()
        if component == "VEVENT":
            properties = self._event_stack.pop()
            self.events.append(RawEventBlock(properties=tuple(properties)))

    def add_property(self, prop: RawProperty) -> None:
        if not self.stack:
            self.properties.append(prop)
        elif self.stack[-1] == "VEVENT":
            self._event_stack[-1].append(prop)
        # Properties of VALARM, VTIMEZONE and other components are not needed

    def finish(self) -> CalendarParseResult:
        if self.error is not None:
            return CalendarParseResult(
                index=self.index, error=self.error, line_number=self.error_line
            )
        calendar = RawCalendar(
            index=self.index,
            properties=tuple(self.properties),
            events=tuple(self.events),
        )
        return CalendarParseResult(index=self.index, calendar=calendar)


class FeedParser:
    """Lazy parser turning raw feed bytes into calendar objects.

    Each calendar object is yielded as soon as its END:VCALENDAR line has
    been read, either as a parsed RawCalendar or as a failure carrying the
    reason and line number.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_size_bytes: int = MAX_FEED_SIZE_BYTES,
    ) -> None:
        """Initialize feed parser.

        Args:
            chunk_size: Size of chunks read from file-like sources
            max_size_bytes: Content above this size raises FeedContentTooLargeError
        """
        self.chunk_size = chunk_size
        self.max_size_bytes = max_size_bytes

    def iter_calendars(self, source: FeedSource) -> Iterator[CalendarParseResult]:
        """Parse a feed, yielding one result per calendar object.

        Args:
            source: Feed content as bytes, str, or a binary/text file object

        Yields:
            CalendarParseResult for every BEGIN:VCALENDAR found, in feed order

        Raises:
            FeedContentTooLargeError: If the content exceeds ``max_size_bytes``
        """
        builder: Optional[_CalendarBuilder] = None
        next_index = 0

        for line_number, line in self._iter_unfolded_lines(self._iter_text_chunks(source)):
            try:
                prop = tokenize_line(line)
            except ValueError as e:
                if builder is None:
                    logger.debug("Ignoring invalid line %d outside calendar object", line_number)
                else:
                    builder.fail(line_number, f"Invalid content line: {e}")
                continue

            keyword = prop.name.upper()
            component = (prop.value or "").strip().upper()

            if keyword == "BEGIN" and component == "VCALENDAR":
                if builder is not None:
                    builder.fail(line_number, "Calendar object not terminated before BEGIN:VCALENDAR")
                    yield self._finish(builder)
                builder = _CalendarBuilder(next_index, line_number)
                next_index += 1
                continue

            if builder is None:
                logger.debug("Ignoring line %d outside calendar object: %s", line_number, prop.name)
                continue

            if keyword == "END" and component == "VCALENDAR":
                if builder.stack:
                    builder.fail(
                        line_number,
                        f"END:VCALENDAR while {builder.stack[-1]} is still open",
                    )
                yield self._finish(builder)
                builder = None
                continue

            if builder.failed:
                continue

            if keyword == "BEGIN":
                builder.begin(component)
            elif keyword == "END":
                if builder.stack and builder.stack[-1] == component:
                    builder.end()
                else:
                    open_component = builder.stack[-1] if builder.stack else "VCALENDAR"
                    builder.fail(
                        line_number,
                        f"END:{component} does not match open component {open_component}",
                    )
            else:
                builder.add_property(prop)

        if builder is not None:
            builder.fail(builder.start_line, "Unexpected end of input inside calendar object")
            yield self._finish(builder)

    def iter_events(self, source: FeedSource) -> Iterator[RawEventBlock]:
        """Yield the event blocks of every well-formed calendar object."""
        for result in self.iter_calendars(source):
            if result.calendar is not None:
                yield from result.calendar.events

    def _finish(self, builder: _CalendarBuilder) -> CalendarParseResult:
        result = builder.finish()
        if result.success:
            logger.debug(
                "Parsed calendar object %d with %d events",
                result.index,
                len(result.calendar.events) if result.calendar else 0,
            )
        else:
            logger.warning(
                "Error parsing calendar object %d (line %s): %s",
                result.index,
                result.line_number,
                result.error,
            )
        return result

    def _check_size(self, size_bytes: int) -> None:
        if size_bytes > self.max_size_bytes:
            raise FeedContentTooLargeError(
                f"Feed content too large: {size_bytes} bytes (limit: {self.max_size_bytes})"
            )

    def _iter_text_chunks(self, source: FeedSource) -> Iterator[str]:
        """Yield decoded text from any supported source, enforcing the size limit."""
        if isinstance(source, (bytes, bytearray)):
            self._check_size(len(source))
            if len(source) > FEED_SIZE_WARNING_BYTES:
                logger.warning("Large feed detected: %d bytes", len(source))
            yield bytes(source).decode("utf-8-sig", errors=DEFAULT_DECODE_ERRORS)
            return

        if isinstance(source, str):
            size_bytes = len(source.encode("utf-8"))
            self._check_size(size_bytes)
            if size_bytes > FEED_SIZE_WARNING_BYTES:
                logger.warning("Large feed detected: %d bytes", size_bytes)
            yield source.lstrip("\ufeff")
            return

        decoder = codecs.getincrementaldecoder("utf-8-sig")(errors=DEFAULT_DECODE_ERRORS)
        total = 0
        warned = False
        while True:
            chunk = source.read(self.chunk_size)
            if not chunk:
                break
            if isinstance(chunk, bytes):
                total += len(chunk)
                text = decoder.decode(chunk)
            else:
                total += len(chunk.encode("utf-8"))
                text = chunk
            self._check_size(total)
            if total > FEED_SIZE_WARNING_BYTES and not warned:
                logger.warning("Large feed detected: more than %d bytes", FEED_SIZE_WARNING_BYTES)
                warned = True
            if text:
                yield text
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail

    @staticmethod
    def _iter_unfolded_lines(chunks: Iterable[str]) -> Iterator[tuple[int, str]]:
        """Join folded lines, yielding (first physical line number, logical line)."""
        buffer = ""
        physical = 0
        pending: Optional[str] = None
        pending_line = 0
        first = True

        def physical_lines() -> Iterator[str]:
            nonlocal buffer
            for chunk in chunks:
                buffer += chunk
                *complete, buffer = buffer.split("\n")
                yield from complete
            if buffer:
                yield buffer

        for raw in physical_lines():
            physical += 1
            line = raw.rstrip("\r")
            if first:
                line = line.lstrip("\ufeff")
                first = False
            if not line:
                continue
            if line[0] in " \t" and pending is not None:
                pending += line[1:]
                continue
            if pending is not None:
                yield pending_line, pending
            pending = line
            pending_line = physical

        if pending is not None:
            yield pending_line, pending
