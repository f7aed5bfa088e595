"""Unit tests for calendarsync_lite.calendar.feed_parser."""

import io
import logging

import pytest

from calendarsync_lite.calendar import feed_parser
from calendarsync_lite.calendar.feed_parser import FeedParser, tokenize_line
from calendarsync_lite.core.exceptions import FeedContentTooLargeError
from calendarsync_lite.core.timezone_utils import get_tzid

pytestmark = pytest.mark.unit


@pytest.fixture
def parser() -> FeedParser:
    return FeedParser()


class TestTokenizeLine:
    """Content line tokenization."""

    def test_simple_property(self):
        prop = tokenize_line("SUMMARY:Team sync")

        assert prop.name == "SUMMARY"
        assert prop.value == "Team sync"
        assert prop.parameters == ()

    def test_parameter_with_spaces(self):
        prop = tokenize_line("DTSTART;TZID=Romance Standard Time:20230801T090000")

        assert prop.name == "DTSTART"
        assert prop.value == "20230801T090000"
        assert prop.parameters == (("TZID", ("Romance Standard Time",)),)
        assert get_tzid(prop.parameters) == "Romance Standard Time"

    def test_parameter_values_split_on_comma(self):
        prop = tokenize_line("ATTENDEE;MEMBER=a@example.com,b@example.com;ROLE=CHAIR:mailto:c@example.com")

        params = dict(prop.parameters)
        assert params["MEMBER"] == ("a@example.com", "b@example.com")
        assert params["ROLE"] == ("CHAIR",)
        assert [key for key, _ in prop.parameters] == ["MEMBER", "ROLE"]

    def test_value_keeps_text_after_first_colon(self):
        prop = tokenize_line("DESCRIPTION:Join at https://meet.example.com/abc")

        assert prop.value == "Join at https://meet.example.com/abc"

    def test_quoted_parameter_colon_is_not_value_separator(self):
        prop = tokenize_line('DESCRIPTION;ALTREP="cid:part1@example.org":Agenda')

        assert prop.value == "Agenda"
        assert dict(prop.parameters)["ALTREP"] == ("cid:part1@example.org",)

    def test_empty_value_becomes_none(self):
        prop = tokenize_line("LOCATION:")

        assert prop.value is None

    def test_missing_separator_raises(self):
        with pytest.raises(ValueError):
            tokenize_line("NOT A CONTENT LINE")

    def test_parameter_names_are_upper_cased(self):
        prop = tokenize_line("DTSTART;tzid=Romance Standard Time:20230801T090000")

        assert prop.parameters == (("TZID", ("Romance Standard Time",)),)

    def test_repeated_parameter_keeps_last_occurrence(self):
        prop = tokenize_line("DTSTART;TZID=Romance Standard Time;TZID=UTC:20230801T090000")

        assert prop.parameters == (("TZID", ("UTC",)),)
        assert get_tzid(prop.parameters) == "UTC"

    def test_text_escapes_are_decoded(self):
        prop = tokenize_line(r"DESCRIPTION:a\, b\; c\n d")

        assert prop.value == "a, b; c\n d"


class TestIterCalendars:
    """Calendar object splitting and error recovery."""

    def test_single_calendar_with_event(self, parser, outlook_ics):
        results = list(parser.iter_calendars(outlook_ics.encode("utf-8")))

        assert len(results) == 1
        assert results[0].success is True
        events = results[0].calendar.events
        assert len(events) == 1
        names = [p.name for p in events[0].properties]
        assert names == ["SUMMARY", "LOCATION", "DESCRIPTION", "DTSTART", "DTEND"]

    def test_malformed_calendar_skipped_and_next_parsed(
        self, parser, malformed_then_valid_ics, caplog
    ):
        with caplog.at_level(logging.WARNING):
            results = list(parser.iter_calendars(malformed_then_valid_ics))

        assert [r.success for r in results] == [False, True]
        assert results[0].error is not None
        assert results[0].line_number == 6
        assert results[0].calendar is None
        assert results[1].calendar.get_property("X-WR-CALNAME") == "Team"
        assert len(results[1].calendar.events) == 1
        assert "Error parsing calendar object 0" in caplog.text

    def test_unterminated_calendar_fails(self, parser):
        feed = "BEGIN:VCALENDAR\nBEGIN:VEVENT\nSUMMARY:Open\nEND:VEVENT\n"

        results = list(parser.iter_calendars(feed))

        assert len(results) == 1
        assert results[0].success is False
        assert "end of input" in results[0].error

    def test_mismatched_end_fails(self, parser):
        feed = "BEGIN:VCALENDAR\nBEGIN:VEVENT\nSUMMARY:x\nEND:VTODO\nEND:VCALENDAR\n"

        results = list(parser.iter_calendars(feed))

        assert results[0].success is False
        assert "END:VTODO" in results[0].error

    def test_begin_vcalendar_inside_open_calendar(self, parser):
        feed = (
            "BEGIN:VCALENDAR\nBEGIN:VEVENT\nUID:a\n"
            "BEGIN:VCALENDAR\nBEGIN:VEVENT\nUID:b\nEND:VEVENT\nEND:VCALENDAR\n"
        )

        results = list(parser.iter_calendars(feed))

        assert [r.success for r in results] == [False, True]
        assert results[1].calendar.events[0].properties[0].value == "b"

    def test_lines_outside_calendar_are_ignored(self, parser):
        feed = "garbage line\nSUMMARY:stray\nBEGIN:VCALENDAR\nEND:VCALENDAR\n"

        results = list(parser.iter_calendars(feed))

        assert len(results) == 1
        assert results[0].success is True
        assert results[0].calendar.events == ()

    def test_alarm_properties_do_not_leak_into_event(self, parser, make_feed):
        feed = make_feed(
            [
                "UID:with-alarm",
                "DESCRIPTION:Event description",
                "BEGIN:VALARM",
                "ACTION:DISPLAY",
                "DESCRIPTION:Reminder",
                "END:VALARM",
            ]
        )

        block = next(parser.iter_events(feed))

        descriptions = [p.value for p in block.properties if p.name == "DESCRIPTION"]
        assert descriptions == ["Event description"]

    def test_timezone_components_are_skipped(self, parser, make_feed):
        feed = make_feed(
            ["UID:1", "DTSTART;TZID=Custom:20300101T100000"],
            calendar_lines=(
                "VERSION:2.0",
                "BEGIN:VTIMEZONE",
                "TZID:Custom",
                "BEGIN:STANDARD",
                "DTSTART:16010101T030000",
                "END:STANDARD",
                "END:VTIMEZONE",
            ),
        )

        results = list(parser.iter_calendars(feed))

        calendar = results[0].calendar
        assert [p.name for p in calendar.properties] == ["VERSION"]
        assert len(calendar.events) == 1

    def test_folded_lines_are_unfolded(self, parser):
        feed = (
            "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\n"
            "DESCRIPTION:This is a long\r\n  description\r\n\t continued\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )

        block = next(parser.iter_events(feed))

        assert block.properties[0].value == "This is a long description continued"

    def test_multiple_calendars_keep_order(self, parser, make_feed):
        feed = make_feed(["UID:first"]) + make_feed(["UID:second"])

        uids = [b.properties[0].value for b in parser.iter_events(feed)]

        assert uids == ["first", "second"]

    def test_iter_calendars_is_lazy(self, parser, make_feed):
        feed = make_feed(["UID:first"]) + "BEGIN:VCALENDAR\nBEGIN:VEVENT\n"

        iterator = parser.iter_calendars(feed)
        first = next(iterator)

        assert first.success is True
        assert first.index == 0


class TestSources:
    """Supported input types and limits."""

    def test_binary_stream_small_chunks(self, outlook_ics):
        parser = FeedParser(chunk_size=7)

        results = list(parser.iter_calendars(io.BytesIO(outlook_ics.encode("utf-8"))))

        assert results[0].success is True
        assert len(results[0].calendar.events[0].properties) == 5

    def test_multibyte_characters_across_chunks(self, make_feed):
        parser = FeedParser(chunk_size=3)
        feed = make_feed(["SUMMARY:Réunion à Zürich"]).encode("utf-8")

        block = next(parser.iter_events(io.BytesIO(feed)))

        assert block.properties[0].value == "Réunion à Zürich"

    def test_text_stream(self, parser, outlook_ics):
        results = list(parser.iter_calendars(io.StringIO(outlook_ics)))

        assert results[0].success is True

    def test_utf8_bom_is_dropped(self, parser, outlook_ics):
        data = b"\xef\xbb\xbf" + outlook_ics.encode("utf-8")

        results = list(parser.iter_calendars(data))

        assert results[0].success is True

    def test_invalid_utf8_is_replaced(self, parser):
        data = b"BEGIN:VCALENDAR\nBEGIN:VEVENT\nSUMMARY:caf\xe9\nEND:VEVENT\nEND:VCALENDAR\n"

        block = next(parser.iter_events(data))

        assert block.properties[0].value == "caf\ufffd"

    def test_content_too_large_raises(self, outlook_ics):
        parser = FeedParser(max_size_bytes=10)

        with pytest.raises(FeedContentTooLargeError):
            list(parser.iter_calendars(outlook_ics.encode("utf-8")))

    def test_empty_feed_yields_nothing(self, parser):
        assert list(parser.iter_calendars(b"")) == []

    def test_large_bytes_feed_logs_warning(self, parser, outlook_ics, monkeypatch, caplog):
        monkeypatch.setattr(feed_parser, "FEED_SIZE_WARNING_BYTES", 10)

        with caplog.at_level(logging.WARNING):
            results = list(parser.iter_calendars(outlook_ics.encode("utf-8")))

        assert results[0].success is True
        assert "Large feed detected" in caplog.text

    def test_large_stream_warns_once(self, outlook_ics, monkeypatch, caplog):
        monkeypatch.setattr(feed_parser, "FEED_SIZE_WARNING_BYTES", 10)
        parser = FeedParser(chunk_size=16)

        with caplog.at_level(logging.WARNING):
            list(parser.iter_calendars(io.BytesIO(outlook_ics.encode("utf-8"))))

        warnings = [r for r in caplog.records if "Large feed detected" in r.getMessage()]
        assert len(warnings) == 1

    def test_feed_below_warning_threshold_is_quiet(self, parser, outlook_ics, caplog):
        with caplog.at_level(logging.WARNING):
            list(parser.iter_calendars(outlook_ics))

        assert "Large feed detected" not in caplog.text
