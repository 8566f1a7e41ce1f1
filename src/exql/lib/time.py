"""Date and time functions (``time`` namespace).

Timestamps are Unix seconds held as numbers; calendar functions work in
UTC. Layouts are either a named layout (RFC3339, RFC1123, Kitchen, ...)
or a pattern built from the tokens YYYY, YY, MM, DD, HH, mm, ss and SSS,
e.g. ``'YYYY-MM-DD HH:mm:ss'``.
"""

import calendar
import math
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param
from exql.lib.conversion import to_number, to_string

registry = FunctionRegistry(FunctionCategory.TIME)

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

ISO_LAYOUTS = frozenset({"RFC3339", "ISO8601", "RFC3339Nano"})

NAMED_LAYOUTS = {
    "RFC822": "%d %b %y %H:%M %Z",
    "RFC850": "%A, %d-%b-%y %H:%M:%S %Z",
    "RFC1123": "%a, %d %b %Y %H:%M:%S %Z",
    "RFC1123Z": "%a, %d %b %Y %H:%M:%S %z",
    "Kitchen": "%I:%M%p",
    "Stamp": "%b %d %H:%M:%S",
    "StampMilli": "%b %d %H:%M:%S.SSS",
}

LAYOUT_TOKENS = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
    "%": "%%",
}

_TOKEN_PATTERN = re.compile(r"YYYY|YY|MM|DD|HH|mm|ss|SSS|%")


def _strftime_layout(layout: str, moment: datetime | None = None) -> str:
    """Translate a layout into a strptime/strftime pattern.

    SSS becomes ``%f`` for parsing, or the literal milliseconds of
    ``moment`` when formatting.
    """
    millis = "%f" if moment is None else f"{moment.microsecond // 1000:03d}"
    if layout in NAMED_LAYOUTS:
        return NAMED_LAYOUTS[layout].replace("SSS", millis)

    def replace(match: re.Match) -> str:
        token = match.group(0)
        return millis if token == "SSS" else LAYOUT_TOKENS[token]

    return _TOKEN_PATTERN.sub(replace, layout)


def _moment(name: str, timestamp: Any) -> datetime:
    seconds = to_number(name, timestamp)
    if not math.isfinite(seconds):
        raise FunctionError(f"{name}: timestamp must be finite")
    try:
        return datetime.fromtimestamp(math.floor(seconds), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise FunctionError(f"{name}: timestamp out of range: {e}") from e


def _unix(moment: datetime) -> float:
    return float(math.floor(moment.timestamp()))


def _layout_arg(name: str, layout: tuple) -> str:
    return to_string(name, layout[0]) if layout else "RFC3339"


def _parse(text: str, layout: str) -> datetime:
    """Parse ``text``; raises ValueError when it does not match ``layout``."""
    if layout in ISO_LAYOUTS:
        if "T" not in text:
            raise ValueError("missing 'T' separator")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
        if moment.tzinfo is None:
            raise ValueError("missing time zone offset")
        return moment
    moment = datetime.strptime(text, _strftime_layout(layout))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _zone(name: str, zone_name: Any) -> ZoneInfo | None:
    zone_name = to_string(name, zone_name)
    if zone_name in ("", "UTC"):
        return None
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise FunctionError(f"{name}: invalid timezone '{zone_name}'") from e


# -----------------------------------------------------------------------------
# Current time
# -----------------------------------------------------------------------------


@registry.function("time_now", "Current Unix time in seconds", [], "number")
def _time_now() -> float:
    return float(int(time.time()))


@registry.function("time_now_millis", "Current Unix time in milliseconds", [], "number")
def _time_now_millis() -> float:
    return float(time.time_ns() // 1_000_000)


@registry.function("time_now_nanos", "Current Unix time in nanoseconds", [], "number")
def _time_now_nanos() -> float:
    return float(time.time_ns())


# -----------------------------------------------------------------------------
# Parsing and formatting
# -----------------------------------------------------------------------------


@registry.function(
    "time_parse",
    "Parses a time string into a Unix timestamp (default layout RFC3339; zone-less input is UTC)",
    [param("text", "string"), optional("layout", "string")],
    "number",
    examples=["time.time_parse('2024-01-15T10:30:00Z')", "time.time_parse('15/01/2024', 'DD/MM/YYYY')"],
)
def _time_parse(text: Any, *layout: Any) -> float:
    text = to_string("time_parse", text)
    layout_name = _layout_arg("time_parse", layout)
    try:
        return _unix(_parse(text, layout_name))
    except ValueError as e:
        raise FunctionError(
            f"time_parse: failed to parse time '{text}' with layout '{layout_name}': {e}"
        ) from e


@registry.function(
    "time_format",
    "Formats a Unix timestamp in UTC (default layout RFC3339)",
    [param("timestamp", "number"), optional("layout", "string")],
    "string",
    examples=["time.time_format(0, 'YYYY-MM-DD') == '1970-01-01'"],
)
def _time_format(timestamp: Any, *layout: Any) -> str:
    moment = _moment("time_format", timestamp)
    layout_name = _layout_arg("time_format", layout)
    if layout_name in ISO_LAYOUTS:
        return moment.strftime("%Y-%m-%dT%H:%M:%SZ")
    return moment.strftime(_strftime_layout(layout_name, moment))


@registry.function(
    "time_validate",
    "True when the text parses with the layout",
    [param("text", "string"), optional("layout", "string")],
    "boolean",
)
def _time_validate(text: Any, *layout: Any) -> bool:
    text = to_string("time_validate", text)
    try:
        _parse(text, _layout_arg("time_validate", layout))
    except ValueError:
        return False
    return True


# -----------------------------------------------------------------------------
# Arithmetic
# -----------------------------------------------------------------------------


def _adder(name: str, unit: int, description: str) -> None:
    def add(timestamp: Any, amount: Any) -> float:
        return to_number(name, timestamp) + to_number(name, amount) * unit

    registry.function(name, description, [param("timestamp", "number"), param("amount", "number")], "number")(add)


def _differ(name: str, unit: int, description: str) -> None:
    def diff(first: Any, second: Any) -> float:
        return (to_number(name, first) - to_number(name, second)) / unit

    registry.function(name, description, [param("first", "number"), param("second", "number")], "number")(diff)


_adder("time_add", 1, "Adds seconds to a timestamp")
_adder("time_add_days", SECONDS_PER_DAY, "Adds days to a timestamp")
_adder("time_add_hours", SECONDS_PER_HOUR, "Adds hours to a timestamp")
_adder("time_add_minutes", SECONDS_PER_MINUTE, "Adds minutes to a timestamp")
_differ("time_diff", 1, "Difference first - second in seconds")
_differ("time_diff_days", SECONDS_PER_DAY, "Difference first - second in days")
_differ("time_diff_hours", SECONDS_PER_HOUR, "Difference first - second in hours")
_differ("time_diff_minutes", SECONDS_PER_MINUTE, "Difference first - second in minutes")


# -----------------------------------------------------------------------------
# Components
# -----------------------------------------------------------------------------


def _component(name: str, description: str, extract: Any) -> None:
    def component(timestamp: Any) -> float:
        return float(extract(_moment(name, timestamp)))

    registry.function(name, description, [param("timestamp", "number")], "number")(component)


_component("time_year", "Year (UTC)", lambda m: m.year)
_component("time_month", "Month 1-12 (UTC)", lambda m: m.month)
_component("time_day", "Day of month (UTC)", lambda m: m.day)
_component("time_hour", "Hour 0-23 (UTC)", lambda m: m.hour)
_component("time_minute", "Minute 0-59 (UTC)", lambda m: m.minute)
_component("time_second", "Second 0-59 (UTC)", lambda m: m.second)
_component("time_weekday", "Day of week, 0 is Sunday (UTC)", lambda m: m.isoweekday() % 7)
_component("time_yearday", "Day of year 1-366 (UTC)", lambda m: m.timetuple().tm_yday)
_component("time_week", "ISO week number (UTC)", lambda m: m.isocalendar()[1])
_component(
    "time_days_in_month",
    "Number of days in the timestamp's month",
    lambda m: calendar.monthrange(m.year, m.month)[1],
)


# -----------------------------------------------------------------------------
# Boundaries
# -----------------------------------------------------------------------------


@registry.function("time_start_of_day", "Midnight UTC of the timestamp's day", [param("timestamp", "number")], "number")
def _time_start_of_day(timestamp: Any) -> float:
    moment = _moment("time_start_of_day", timestamp)
    return _unix(moment.replace(hour=0, minute=0, second=0))


@registry.function("time_end_of_day", "Last second (23:59:59 UTC) of the timestamp's day", [param("timestamp", "number")], "number")
def _time_end_of_day(timestamp: Any) -> float:
    moment = _moment("time_end_of_day", timestamp)
    return _unix(moment.replace(hour=23, minute=59, second=59))


@registry.function("time_start_of_week", "Midnight UTC of the week's Monday", [param("timestamp", "number")], "number")
def _time_start_of_week(timestamp: Any) -> float:
    moment = _moment("time_start_of_week", timestamp)
    monday = moment - timedelta(days=moment.weekday())
    return _unix(monday.replace(hour=0, minute=0, second=0))


@registry.function("time_start_of_month", "Midnight UTC of the month's first day", [param("timestamp", "number")], "number")
def _time_start_of_month(timestamp: Any) -> float:
    moment = _moment("time_start_of_month", timestamp)
    return _unix(moment.replace(day=1, hour=0, minute=0, second=0))


@registry.function("time_start_of_year", "Midnight UTC of January 1st", [param("timestamp", "number")], "number")
def _time_start_of_year(timestamp: Any) -> float:
    moment = _moment("time_start_of_year", timestamp)
    return _unix(moment.replace(month=1, day=1, hour=0, minute=0, second=0))


# -----------------------------------------------------------------------------
# Calendar
# -----------------------------------------------------------------------------


@registry.function("time_is_weekend", "True on Saturday and Sunday (UTC)", [param("timestamp", "number")], "boolean")
def _time_is_weekend(timestamp: Any) -> bool:
    return _moment("time_is_weekend", timestamp).weekday() >= 5


@registry.function("time_is_leap_year", "True when the timestamp's year is a leap year", [param("timestamp", "number")], "boolean")
def _time_is_leap_year(timestamp: Any) -> bool:
    return calendar.isleap(_moment("time_is_leap_year", timestamp).year)


@registry.function(
    "time_age",
    "Whole years between birth and now (or the given timestamp)",
    [param("birth", "number"), optional("now", "number")],
    "number",
    examples=["time.time_age(user.birthdate) >= 18"],
)
def _time_age(birth: Any, *now: Any) -> float:
    born = _moment("time_age", birth)
    current = _moment("time_age", now[0]) if now else datetime.now(timezone.utc)
    years = current.year - born.year
    if (current.month, current.day) < (born.month, born.day):
        years -= 1
    return float(years)


# -----------------------------------------------------------------------------
# Time zones
# -----------------------------------------------------------------------------


@registry.function(
    "time_to_timezone",
    "Shifts a UTC timestamp to the wall-clock time of an IANA zone",
    [param("timestamp", "number"), param("zone", "string")],
    "number",
    examples=["time.time_hour(time.time_to_timezone(ts, 'America/New_York'))"],
)
def _time_to_timezone(timestamp: Any, zone: Any) -> float:
    moment = _moment("time_to_timezone", timestamp)
    tz = _zone("time_to_timezone", zone)
    if tz is None:
        return to_number("time_to_timezone", timestamp)
    return _unix(moment) + moment.astimezone(tz).utcoffset().total_seconds()


@registry.function(
    "time_from_timezone",
    "Reads a timestamp as wall-clock time in an IANA zone and returns the UTC timestamp",
    [param("timestamp", "number"), param("zone", "string")],
    "number",
)
def _time_from_timezone(timestamp: Any, zone: Any) -> float:
    moment = _moment("time_from_timezone", timestamp)
    tz = _zone("time_from_timezone", zone)
    if tz is None:
        return to_number("time_from_timezone", timestamp)
    local = moment.replace(tzinfo=tz)
    return _unix(local)


@registry.function(
    "time_range",
    "Timestamps from start to end inclusive, step seconds apart",
    [param("start", "number"), param("end", "number"), param("step", "number")],
    "list",
)
def _time_range(start: Any, end: Any, step: Any) -> list:
    first = to_number("time_range", start)
    last = to_number("time_range", end)
    increment = to_number("time_range", step)
    if not increment > 0:
        raise FunctionError("time_range: step must be positive")
    if first > last:
        raise FunctionError("time_range: start must be less than or equal to end")
    result = []
    current = first
    while current <= last:
        result.append(current)
        current += increment
    return result
