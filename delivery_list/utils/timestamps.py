import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Literal, Mapping, Optional

NO_START_TIME = "No start time"
INVALID_DATE = "Invalid date"
NO_DEADLINE = "No deadline"
INVALID_DEADLINE = "Invalid deadline"

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_absent(value: Any) -> bool:
    """
    True for the scalars that mean "no timestamp": None, False, empty string, 0 and NaN.
    Containers are never absent, so an empty mapping is an invalid timestamp instead.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or math.isnan(value)
    return False


@dataclass(frozen=True)
class TimestampValue:
    """
    A timestamp as delivered by the source API: either a bare scalar
    (ISO string or epoch milliseconds) or a mapping wrapping it under 'value'.
    """
    kind: Literal["scalar", "wrapped"]
    raw: Any

    @classmethod
    def from_raw(cls, raw: Any) -> "TimestampValue":
        if isinstance(raw, Mapping):
            return cls(kind="wrapped", raw=raw)
        return cls(kind="scalar", raw=raw)

    def unwrap(self) -> Any:
        """Returns the scalar to parse. A wrapper with an empty value stays unparseable."""
        if self.kind == "wrapped":
            value = self.raw.get("value")
            return self.raw if is_absent(value) else value
        return self.raw

    def to_datetime(self, tz: tzinfo) -> Optional[datetime]:
        """Parses the unwrapped scalar into an aware datetime, or None when invalid."""
        return parse_timestamp(self.unwrap(), tz)


def parse_timestamp(value: Any, tz: tzinfo) -> Optional[datetime]:
    """
    Parses a scalar timestamp.

    Numbers are epoch milliseconds. Strings are ISO 8601; a date-only string is
    UTC midnight and a date-time without offset is read in `tz`.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return _EPOCH + timedelta(milliseconds=value)
        except OverflowError:
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc if _DATE_ONLY_RE.match(text) else tz)
        return parsed

    return None


def to_epoch_ms(value: datetime) -> int:
    return (value - _EPOCH) // timedelta(milliseconds=1)


def format_locale(value: datetime, tz: tzinfo) -> str:
    """Formats a datetime the way an en-US locale renders a date-time, e.g. '1/1/2024, 12:00:00 AM'."""
    local = value.astimezone(tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local.minute:02d}:{local.second:02d} {meridiem}"


def format_timestamp(timestamp: Any, tz: tzinfo = timezone.utc) -> str:
    """Human-readable start time, or a sentinel when absent or unparseable."""
    if is_absent(timestamp):
        return NO_START_TIME

    parsed = TimestampValue.from_raw(timestamp).to_datetime(tz)
    if parsed is None:
        return INVALID_DATE

    try:
        return format_locale(parsed, tz)
    except (OverflowError, ValueError):
        return INVALID_DATE


def calculate_deadline(delivery_timestamp: Any, start_timestamp: Any, tz: tzinfo = timezone.utc) -> str:
    """
    Time between start and delivery as "<days> days <hours> hrs left".

    Negative spans are reported as they are: both counts go negative, with the
    hour remainder taking the sign of the span.
    """
    if is_absent(delivery_timestamp) or is_absent(start_timestamp):
        return NO_DEADLINE

    delivery_time = TimestampValue.from_raw(delivery_timestamp).to_datetime(tz)
    start_time = TimestampValue.from_raw(start_timestamp).to_datetime(tz)
    if delivery_time is None or start_time is None:
        return INVALID_DEADLINE

    time_diff = to_epoch_ms(delivery_time) - to_epoch_ms(start_time)
    days_left = math.floor(time_diff / MS_PER_DAY)
    hours_left = math.floor(math.fmod(time_diff, MS_PER_DAY) / MS_PER_HOUR)
    return f"{days_left} days {hours_left} hrs left"
