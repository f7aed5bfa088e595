"""Data models for feed parsing and normalization - calendarsync_lite."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

# Ordered (name, values) pairs as they appear on a content line
ParameterList = tuple[tuple[str, tuple[str, ...]], ...]


class RawProperty(BaseModel):
    """A single tokenized content line: NAME;PARAM=V1,V2:VALUE."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Property name, case preserved")
    value: Optional[str] = Field(default=None, description="Text after the value separator")
    parameters: ParameterList = Field(default=(), description="Ordered parameter list")


class RawEventBlock(BaseModel):
    """Properties of one VEVENT in source order."""

    model_config = ConfigDict(frozen=True)

    properties: tuple[RawProperty, ...] = ()


class RawCalendar(BaseModel):
    """One VCALENDAR object from the feed."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., description="Zero-based position of the object in the feed")
    properties: tuple[RawProperty, ...] = Field(
        default=(), description="Calendar-level properties (PRODID, X-WR-CALNAME, ...)"
    )
    events: tuple[RawEventBlock, ...] = ()

    def get_property(self, name: str) -> Optional[str]:
        """Return the value of the last calendar-level property called ``name``."""
        value = None
        for prop in self.properties:
            if prop.name == name:
                value = prop.value
        return value


class CalendarParseResult(BaseModel):
    """Outcome of parsing one calendar object: either a calendar or an error."""

    model_config = ConfigDict(frozen=True)

    index: int
    calendar: Optional[RawCalendar] = None
    error: Optional[str] = None
    line_number: Optional[int] = Field(default=None, description="1-based line of the failure")

    @property
    def success(self) -> bool:
        """True when the calendar object parsed cleanly."""
        return self.calendar is not None


class RawTimestamp(BaseModel):
    """Raw DTSTART/DTEND payload carried from extraction to normalization."""

    model_config = ConfigDict(frozen=True)

    value: str = ""
    parameters: ParameterList = ()


class ExtractedEvent(BaseModel):
    """Event fields pulled from a block, timestamps not yet normalized."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    summary: str = ""
    location: Optional[str] = None
    description: Optional[str] = None
    start: RawTimestamp = Field(default_factory=RawTimestamp)
    end: RawTimestamp = Field(default_factory=RawTimestamp)


class NormalizedDateTime(BaseModel):
    """Start or end of a normalized event.

    At most one of ``date`` and ``date_time`` is populated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: Optional[str] = Field(default=None, description="YYYY-MM-DD for date-only values")
    date_time: Optional[datetime] = Field(
        default=None, alias="dateTime", description="Instant anchored to UTC"
    )
    time_zone: Optional[str] = Field(
        default=None, alias="timeZone", description="Canonical IANA zone identifier"
    )

    @model_validator(mode="after")
    def _check_single_value(self) -> "NormalizedDateTime":
        if self.date is not None and self.date_time is not None:
            raise ValueError("date and dateTime are mutually exclusive")
        return self

    @field_serializer("date_time", when_used="unless-none")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    @property
    def is_empty(self) -> bool:
        """True when neither a date nor a date-time could be produced."""
        return self.date is None and self.date_time is None


class NormalizedEvent(BaseModel):
    """Canonical event record handed to publishers and serializers."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="UID of the source event")
    summary: str = Field(default="", description="Event title, empty when absent")
    location: Optional[str] = None
    description: Optional[str] = None
    start: NormalizedDateTime = Field(default_factory=NormalizedDateTime)
    end: NormalizedDateTime = Field(default_factory=NormalizedDateTime)

    def to_json_dict(self) -> dict[str, Any]:
        """Return the output shape: camelCase keys, absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DiagnosticKind(str, Enum):
    """Non-fatal conditions reported while normalizing a feed."""

    BLOCK_PARSE_FAILURE = "block_parse_failure"
    FIELD_PARSE_FAILURE = "field_parse_failure"
    FILTER_EXCLUSION = "filter_exclusion"


class Diagnostic(BaseModel):
    """A non-fatal problem noticed while processing the feed."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    kind: DiagnosticKind
    message: str
    calendar_index: Optional[int] = None
    event_id: Optional[str] = None
