import datetime as dt
import os
import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_SOURCE_URL = "https://server-pass-1.onrender.com/api/data"

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


class ConfigurationError(ValueError):
    """Raised when the service cannot be configured from its environment."""


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """
    Resolves a timezone name into a tzinfo.

    Accepts "UTC" (and the empty string), "local", IANA names such as
    "Europe/Berlin" and fixed offsets such as "+02:00".
    """
    tz_name = (name or "").strip()
    if tz_name.lower() in {"", "utc", "z", "gmt"}:
        return dt.timezone.utc
    if tz_name.lower() == "local":
        return dt.datetime.now().astimezone().tzinfo

    m = _OFFSET_RE.match(tz_name)
    if m:
        sign = 1 if m.group(1) == "+" else -1
        hh, mm = int(m.group(2)), int(m.group(3))
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset '{tz_name}'.")
        offset = dt.timedelta(hours=hh, minutes=mm)
        return dt.timezone(sign * offset)

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{tz_name}'.") from e


class Settings(BaseModel):
    """Runtime configuration of the delivery list service."""
    source_url: str = Field(DEFAULT_SOURCE_URL, description="Remote endpoint returning grouped delivery records.")
    visible_count: int = Field(..., gt=0, description="Number of filtered deliveries rendered at once.")
    display_timezone: str = Field("UTC", description="Timezone used for human-readable timestamps.")
    source_timeout: float = Field(5.0, gt=0, description="Timeout in seconds for the source request.")

    @field_validator('display_timezone')
    @classmethod
    def timezone_must_resolve(cls, v):
        resolve_tz(v)
        return v

    @property
    def tzinfo(self) -> dt.tzinfo:
        return resolve_tz(self.display_timezone)

    @classmethod
    def from_env(cls) -> "Settings":
        """Builds settings from environment variables. VISIBLE_COUNT has no default."""
        visible_count = os.getenv("VISIBLE_COUNT")
        if not visible_count:
            raise ConfigurationError("VISIBLE_COUNT must be set to the number of deliveries to render.")

        values = {
            "source_url": os.getenv("DELIVERIES_SOURCE_URL", DEFAULT_SOURCE_URL),
            "visible_count": visible_count,
            "display_timezone": os.getenv("DISPLAY_TIMEZONE", "UTC"),
            "source_timeout": os.getenv("SOURCE_TIMEOUT_SECONDS", "5.0"),
        }
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
