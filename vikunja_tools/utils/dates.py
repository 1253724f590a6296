"""Date helpers for the Vikunja wire format (YYYY-MM-DDTHH:mm:ss.sssZ)."""

import re
from datetime import datetime, timezone
from typing import Any, Optional

WIRE_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")
WIRE_DATE_EXAMPLE = "2025-10-30T04:05:22.422Z"

# Vikunja encodes "no date" as Go's zero time
_ZERO_DATE_PREFIX = "0001-01-01"


def format_date(value: datetime) -> str:
    """Format a datetime in the wire format, converting to UTC first."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def current_timestamp() -> str:
    """Current time in the wire format."""
    return format_date(datetime.now(timezone.utc))


def parse_remote_date(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 date returned by Vikunja; zero time becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")
    if value.startswith(_ZERO_DATE_PREFIX):
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
