"""
Timestamp parsing, normalisation and formatting utilities.

Record timestamps are kept as text in the form ``YYYY-MM-DDTHH:MM:SS``
(optionally followed by ``Z`` or a UTC offset). Exports render them in
full ISO form in UTC.
"""

import re
from datetime import datetime

import pytz
from dateutil import parser

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SPACE_AFTER_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})\s+(?=\d)")
_SPACE_BEFORE_TIME = re.compile(r" (?=\d{2}:\d{2}:\d{2})")
_TIMESTAMP_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_FILENAME_UNSAFE = re.compile(r"[:.]+")


def make_timezone_aware(
    dt: datetime, timezone_str: str = "UTC", assume_local: bool = False
) -> datetime:
    """
    Make a datetime object timezone-aware.

    Args:
        dt: Datetime object (may be naive or aware).
        timezone_str: Timezone string (e.g., "Australia/Sydney").
        assume_local: If True and dt is naive, assume it's in timezone_str.

    Returns:
        Timezone-aware datetime object.
    """
    tz = pytz.timezone(timezone_str)

    if dt.tzinfo is None:
        if assume_local:
            return tz.localize(dt)
        else:
            return pytz.utc.localize(dt).astimezone(tz)
    else:
        return dt.astimezone(tz)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 date or date-time string.

    The date must be written out in full as YYYY-MM-DD. A space may stand
    in for the "T" separator. Text such as "12", "Monday" or "01/02/2025"
    is rejected rather than completed from the current date.

    Args:
        value: Timestamp text, e.g. "2025-01-21 23:05:42.123".

    Returns:
        Parsed datetime (naive unless the text carries a zone).

    Raises:
        ValueError: If the text cannot be parsed.
    """
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    if not _ISO_DATE.match(text):
        raise ValueError(f"Unparseable timestamp: {value!r}")

    try:
        return parser.isoparse(_SPACE_AFTER_DATE.sub(r"\1T", text, count=1))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Unparseable timestamp: {value!r}") from e


def round_timestamp_to_second(value: str) -> str:
    """
    Parse a timestamp and drop its fractional seconds.

    Args:
        value: Timestamp text, e.g. "2025-01-21 23:05:42.123".

    Returns:
        "YYYY-MM-DDTHH:MM:SS", with "Z" or an offset when the input had a zone.

    Raises:
        ValueError: If the text cannot be parsed.
    """
    dt = parse_timestamp(value).replace(microsecond=0)

    rendered = dt.isoformat(timespec="seconds")
    if rendered.endswith("+00:00"):
        rendered = rendered[: -len("+00:00")] + "Z"
    return rendered


def normalise_timestamp(value: str, to_iso: bool = False, timezone_str: str = "UTC") -> str:
    """
    Normalise a timestamp string to use the 'T' separator.

    Accepts "2025-01-21T23:05:42", "2025-01-21 23:05:42" and
    "2025-01-21T23:05:42Z".

    Args:
        value: The timestamp string to normalise.
        to_iso: If True, convert to UTC and render as "YYYY-MM-DDTHH:MM:SS.mmmZ".
        timezone_str: Zone assumed for naive timestamps when converting to UTC.

    Returns:
        Normalised timestamp string.
    """
    result = value.strip()

    if "T" not in result:
        result = _SPACE_BEFORE_TIME.sub("T", result, count=1)

    if to_iso:
        dt = make_timezone_aware(parse_timestamp(result), timezone_str, assume_local=True)
        dt = dt.astimezone(pytz.utc)
        result = dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"

    return result


def is_valid_timestamp(value: str) -> bool:
    """Check that a normalised timestamp is well formed and parseable."""
    if not _TIMESTAMP_SHAPE.match(value):
        return False

    try:
        parse_timestamp(value)
    except ValueError:
        return False

    return True


def format_timestamp_for_display(value: str) -> str:
    """
    Format a timestamp as "YYYY-MM-DD HH:MM:SS".

    Text that cannot be parsed is returned unchanged.
    """
    try:
        return parse_timestamp(value).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def format_timestamp_for_filename(dt: datetime) -> str:
    """Format a datetime as "YYYY-MM-DDTHH-MM-SS"."""
    return dt.strftime("%Y-%m-%dT%H-%M-%S")


def format_timestamp_for_filename_with_underscore(dt: datetime) -> str:
    """Format a datetime as "YYYY-MM-DD_HH-MM-SS", as used by older files."""
    return dt.strftime("%Y-%m-%d_%H-%M-%S")


def filename_safe_timestamp(timestamp: str) -> str:
    """Replace every run of ':' or '.' in a timestamp with '-'."""
    return _FILENAME_UNSAFE.sub("-", timestamp)


def date_part(timestamp: str) -> str:
    """Return the "YYYY-MM-DD" part of a timestamp."""
    return timestamp.split("T")[0]
