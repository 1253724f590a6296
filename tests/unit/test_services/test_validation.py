"""Tests for input guards."""

import pytest

from vikunja_tools.models.relation import RelationKind
from vikunja_tools.models.repeat import RepeatMode
from vikunja_tools.services.validation import (
    convert_repeat_configuration,
    require_field,
    validate_date,
    validate_hex_color,
    validate_id,
    validate_priority,
    validate_relation_kind,
)
from vikunja_tools.utils.errors import ValidationError


@pytest.mark.unit
@pytest.mark.parametrize("value", [1, 42, 10**9])
def test_validate_id_accepts_positive_integers(value):
    assert validate_id(value) == value


@pytest.mark.unit
@pytest.mark.parametrize("value", [0, -1, 1.5, "12", None, True])
def test_validate_id_rejects_everything_else(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_id(value, "projectId")
    assert "projectId must be a positive integer" in exc_info.value.message
    assert exc_info.value.details["field"] == "projectId"


@pytest.mark.unit
def test_validate_date_accepts_wire_format():
    assert validate_date("2025-10-30T04:05:22.422Z", "dueDate") == "2025-10-30T04:05:22.422Z"


@pytest.mark.unit
@pytest.mark.parametrize("value", [
    "2025-10-30T04:05:22Z",         # missing milliseconds
    "2025-10-30",                   # wrong shape
    "2025-10-30T04:05:22.42Z",      # two fractional digits
    "2025-10-30T04:05:22.422+00:00",
    "2025-10-30 04:05:22.422Z",
])
def test_validate_date_rejects_wrong_shape(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_date(value, "dueDate")
    message = exc_info.value.message
    assert "dueDate" in message
    assert "2025-10-30T04:05:22.422Z" in message


@pytest.mark.unit
@pytest.mark.parametrize("value", [
    "2025-13-30T04:05:22.422Z",
    "2025-02-30T04:05:22.422Z",
    "2025-10-30T25:05:22.422Z",
    "2025-10-30T04:61:22.422Z",
])
def test_validate_date_rejects_impossible_calendar_values(value):
    with pytest.raises(ValidationError, match="must be a valid date"):
        validate_date(value, "dueDate")


@pytest.mark.unit
def test_validate_date_accepts_leap_day():
    assert validate_date("2024-02-29T00:00:00.000Z", "dueDate")


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    ("subtask", RelationKind.SUBTASK),
    ("parenttask", RelationKind.PARENTTASK),
    ("parent", RelationKind.PARENTTASK),
    ("duplicate-of", RelationKind.DUPLICATEOF),
    ("copied-from", RelationKind.COPIEDFROM),
    ("copied-to", RelationKind.COPIEDTO),
    ("Blocking", RelationKind.BLOCKING),
    ("unknown", RelationKind.UNKNOWN),
])
def test_validate_relation_kind_accepts_vocabulary(value, expected):
    assert validate_relation_kind(value) is expected


@pytest.mark.unit
@pytest.mark.parametrize("value", ["child", "blocks", "", None, 3])
def test_validate_relation_kind_rejects_unknown(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_relation_kind(value)
    assert "subtask" in exc_info.value.details["accepted"]
    assert "Example" in exc_info.value.message


@pytest.mark.unit
def test_require_field_passes_value_through():
    assert require_field("Buy milk", "title", "create") == "Buy milk"
    assert require_field(0, "priority") == 0


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "   "])
def test_require_field_rejects_absent_values(value):
    with pytest.raises(ValidationError) as exc_info:
        require_field(value, "title", "create", example='{"title": "Buy milk"}')
    assert exc_info.value.message == 'title is required for create. Example: {"title": "Buy milk"}'


@pytest.mark.unit
def test_validate_priority_range():
    assert validate_priority(0) == 0
    assert validate_priority(5) == 5
    for bad in (-1, 6, "3", True):
        with pytest.raises(ValidationError):
            validate_priority(bad)


@pytest.mark.unit
def test_validate_hex_color_normalizes():
    assert validate_hex_color("#E8445A") == "e8445a"
    assert validate_hex_color("1973ff") == "1973ff"
    with pytest.raises(ValidationError):
        validate_hex_color("#12345")
    with pytest.raises(ValidationError):
        validate_hex_color("red")


@pytest.mark.unit
def test_repeat_weeks_convert_to_seconds():
    config = convert_repeat_configuration(2, "week")
    assert config.repeat_after == 1209600
    assert config.repeat_mode == RepeatMode.DEFAULT


@pytest.mark.unit
def test_repeat_month_uses_monthly_mode_regardless_of_interval():
    config = convert_repeat_configuration(1, "month")
    assert config.repeat_mode == RepeatMode.MONTHLY
    assert convert_repeat_configuration(6, "month").repeat_mode == RepeatMode.MONTHLY
    assert convert_repeat_configuration(None, "month").to_payload() == {"repeat_mode": 1}


@pytest.mark.unit
@pytest.mark.parametrize("unit,seconds", [("day", 86400), ("week", 604800), ("year", 31536000)])
def test_repeat_unit_multipliers(unit, seconds):
    assert convert_repeat_configuration(3, unit).repeat_after == 3 * seconds


@pytest.mark.unit
def test_repeat_without_unit_is_already_seconds():
    assert convert_repeat_configuration(3600).to_payload() == {"repeat_after": 3600, "repeat_mode": 0}


@pytest.mark.unit
def test_repeat_without_anything_is_empty():
    assert convert_repeat_configuration().to_payload() == {}


@pytest.mark.unit
def test_repeat_rejects_unknown_unit():
    with pytest.raises(ValidationError, match="repeatMode"):
        convert_repeat_configuration(1, "fortnight")
