"""Tests for structured logging helpers."""

import logging

import pytest

from vikunja_tools.utils.logging import (
    correlation_context,
    get_correlation_id,
    get_structured_logger,
    log_timing,
    mask_sensitive_data,
    mask_token,
)


@pytest.mark.unit
def test_correlation_context_sets_and_resets():
    assert get_correlation_id() is None
    with correlation_context() as correlation_id:
        assert correlation_id.startswith("tool_")
        assert get_correlation_id() == correlation_id
        with correlation_context("inner") as inner:
            assert get_correlation_id() == inner
        assert get_correlation_id() == correlation_id
    assert get_correlation_id() is None


@pytest.mark.unit
def test_mask_token():
    assert mask_token("tk_abcdef123456") == "tk_a...3456"
    assert mask_token("short") == "***"
    assert mask_token(None) == ""


@pytest.mark.unit
def test_mask_sensitive_data():
    text = "Authorization: Bearer abc.def for ada@example.com with tk_9f8e7d6c"
    masked = mask_sensitive_data(text)

    assert "abc.def" not in masked
    assert "ada@example.com" not in masked
    assert "tk_9f8e7d6c" not in masked
    assert "[REDACTED_TOKEN]" in masked


@pytest.mark.unit
def test_structured_fields_become_record_attributes(caplog):
    logger = get_structured_logger("vikunja_tools.test")

    with caplog.at_level(logging.INFO, logger="vikunja_tools.test"):
        with correlation_context("tool_abc"):
            logger.info("Task created", task_id=5, note="token tk_1234567890")

    record = caplog.records[-1]
    assert record.getMessage() == "Task created"
    assert record.task_id == 5
    assert record.correlation_id == "tool_abc"
    assert record.note == "token [REDACTED_TOKEN]"


@pytest.mark.unit
def test_log_timing_reports_duration(caplog):
    logger = get_structured_logger("vikunja_tools.test")

    with caplog.at_level(logging.DEBUG, logger="vikunja_tools.test"):
        with log_timing("list tasks", logger, tool="vikunja_tasks"):
            pass

    completed = [r for r in caplog.records if r.getMessage() == "Completed list tasks"]
    assert len(completed) == 1
    assert completed[0].tool == "vikunja_tasks"
    assert completed[0].processing_time_ms >= 0
