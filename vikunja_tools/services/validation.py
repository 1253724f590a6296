"""Input guards. Every function either returns normally or raises ValidationError."""

import re
from datetime import datetime
from typing import Any, Optional

from vikunja_tools.models.relation import RELATION_KIND_ALIASES, RelationKind
from vikunja_tools.models.repeat import RepeatConfiguration, RepeatMode, RepeatUnit
from vikunja_tools.utils.dates import WIRE_DATE_EXAMPLE, WIRE_DATE_PATTERN, current_timestamp, format_date
from vikunja_tools.utils.errors import ValidationError

__all__ = [
    "validate_id",
    "validate_date",
    "validate_relation_kind",
    "require_field",
    "validate_priority",
    "validate_hex_color",
    "convert_repeat_configuration",
    "format_date",
    "current_timestamp",
]

HEX_COLOR_PATTERN = re.compile(r"^#?[0-9a-fA-F]{6}$")

SECONDS_PER_DAY = 24 * 60 * 60
REPEAT_UNIT_SECONDS = {
    RepeatUnit.DAY: SECONDS_PER_DAY,
    RepeatUnit.WEEK: 7 * SECONDS_PER_DAY,
    RepeatUnit.YEAR: 365 * SECONDS_PER_DAY,
}
# Monthly repeats ignore repeat_after remotely; still sent as an approximation
APPROXIMATE_MONTH_SECONDS = 30 * SECONDS_PER_DAY


def validate_id(value: Any, field_name: str = "id") -> int:
    """Require a positive integer identifier."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(
            f"{field_name} must be a positive integer. Example: {field_name}=42. Received: {value!r}",
            details={"field": field_name, "value": repr(value)},
        )
    return value


def validate_date(value: Any, field_name: str) -> str:
    """Require the exact wire format AND a real calendar date/time.

    "2025-13-30T04:05:22.422Z" matches the pattern but is rejected.
    """
    if not isinstance(value, str) or not WIRE_DATE_PATTERN.match(value):
        raise ValidationError(
            f"{field_name} must be in ISO 8601 format with milliseconds: YYYY-MM-DDTHH:mm:ss.sssZ. "
            f"Example: {WIRE_DATE_EXAMPLE}. Received: {value}",
            details={"field": field_name, "value": value, "example": WIRE_DATE_EXAMPLE},
        )
    try:
        datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ")
    except ValueError:
        raise ValidationError(
            f"{field_name} must be a valid date. Example: {WIRE_DATE_EXAMPLE}. Received: {value}",
            details={"field": field_name, "value": value, "example": WIRE_DATE_EXAMPLE},
        )
    return value


def validate_relation_kind(value: Any) -> RelationKind:
    """Resolve a relation kind from the closed vocabulary (wire names or aliases)."""
    if isinstance(value, RelationKind):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in RELATION_KIND_ALIASES:
            return RELATION_KIND_ALIASES[normalized]
        try:
            return RelationKind(normalized)
        except ValueError:
            pass
    accepted = sorted({kind.value for kind in RelationKind} | set(RELATION_KIND_ALIASES))
    raise ValidationError(
        f"Invalid relation kind: {value!r}. Accepted values: {', '.join(accepted)}. "
        f"Example: relationKind='subtask'",
        details={"field": "relationKind", "value": value, "accepted": accepted},
    )


def require_field(
    value: Any,
    field_name: str,
    operation: Optional[str] = None,
    example: Optional[str] = None,
) -> Any:
    """Reject an absent value for an operation that mandates it."""
    if value is None or (isinstance(value, str) and not value.strip()):
        where = f" for {operation}" if operation else ""
        message = f"{field_name} is required{where}"
        if example:
            message += f". Example: {example}"
        raise ValidationError(message, details={"field": field_name, "operation": operation})
    return value


def validate_priority(value: Any) -> int:
    """Priority must be an integer from 0 (unset) to 5 (do now)."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 5:
        raise ValidationError(
            f"priority must be an integer between 0 and 5. Example: priority=3. Received: {value!r}",
            details={"field": "priority", "value": repr(value)},
        )
    return value


def validate_hex_color(value: Any, field_name: str = "hexColor") -> str:
    """Accept RRGGBB with or without a leading '#'; returns it without the '#'."""
    if not isinstance(value, str) or not HEX_COLOR_PATTERN.match(value):
        raise ValidationError(
            f"{field_name} must be a 6-digit hex color. Example: {field_name}='#e8445a'. Received: {value!r}",
            details={"field": field_name, "value": value},
        )
    return value.lstrip("#").lower()


def convert_repeat_configuration(
    repeat_after: Optional[int] = None,
    repeat_unit: Optional[str] = None,
) -> RepeatConfiguration:
    """Translate (count, unit) into Vikunja's (seconds, mode flag).

    Examples:
        (2, "week") -> repeat_after=1209600, repeat_mode=DEFAULT
        (1, "month") -> repeat_mode=MONTHLY; the interval is ignored remotely
        (3600, None) -> the value is already seconds
    """
    unit: Optional[RepeatUnit] = None
    if repeat_unit is not None:
        try:
            unit = RepeatUnit(repeat_unit)
        except ValueError:
            raise ValidationError(
                f"repeatMode must be one of: day, week, month, year. "
                f"Example: repeatAfter=2, repeatMode='week'. Received: {repeat_unit!r}",
                details={"field": "repeatMode", "value": repeat_unit},
            )
    if repeat_after is not None and (
        isinstance(repeat_after, bool) or not isinstance(repeat_after, int) or repeat_after < 0
    ):
        raise ValidationError(
            f"repeatAfter must be a non-negative integer. Example: repeatAfter=2. Received: {repeat_after!r}",
            details={"field": "repeatAfter", "value": repr(repeat_after)},
        )

    if unit is RepeatUnit.MONTH:
        config = RepeatConfiguration(repeat_mode=RepeatMode.MONTHLY)
        if repeat_after is not None:
            config.repeat_after = repeat_after * APPROXIMATE_MONTH_SECONDS
        return config

    if repeat_after is None:
        return RepeatConfiguration()

    multiplier = REPEAT_UNIT_SECONDS.get(unit, 1) if unit else 1
    return RepeatConfiguration(repeat_after=repeat_after * multiplier, repeat_mode=RepeatMode.DEFAULT)
