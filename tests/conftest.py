"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import AsyncMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("VIKUNJA_URL", "https://vikunja.test/api/v1")
os.environ.setdefault("VIKUNJA_API_TOKEN", "tk_testtoken1234567890")
os.environ.setdefault("LOG_FORMAT", "text")

from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.error_classifier import is_authentication_error
from vikunja_tools.services.resilience import CircuitBreaker, RetryPolicy
from vikunja_tools.services.saved_filters import InMemorySavedFilters, SavedFilter
from vikunja_tools.services.vikunja_client import VikunjaClient
from tests.utils.factories import create_project, create_task


@pytest.fixture
def mock_client():
    """Remote service double; every API method is an AsyncMock."""
    client = AsyncMock(spec=VikunjaClient)
    client.delete_task.return_value = None
    client.set_task_labels.return_value = None
    client.assign_users.return_value = None
    client.unassign_user.return_value = None
    client.create_task_relation.return_value = None
    client.delete_task_relation.return_value = None
    return client


@pytest.fixture
def retry_policy():
    """Authentication-aware retry policy without real delays."""
    return RetryPolicy(
        max_retries=3,
        initial_delay=0,
        max_delay=0,
        backoff_factor=2,
        should_retry=is_authentication_error,
    )


@pytest.fixture
def saved_filters():
    return InMemorySavedFilters([
        SavedFilter(id="urgent", name="Urgent", filter="priority >= 4 && done = false"),
        SavedFilter(id="mine-in-3", name="Project 3 open", filter="done = false", project_id=3),
    ])


@pytest.fixture
def context(mock_client, retry_policy, saved_filters):
    """ToolContext around the mocked remote service."""
    return ToolContext(
        client=mock_client,
        retry_policy=retry_policy,
        breaker=CircuitBreaker(failure_threshold=100, reset_timeout=30),
        saved_filters=saved_filters,
    )


@pytest.fixture
def sample_task():
    """Task 123 with two assignees and one label."""
    return create_task(
        id=123,
        title="Write quarterly report",
        priority=3,
        project_id=1,
        assignees=[{"id": 7, "username": "ada"}, {"id": 8, "username": "grace"}],
        labels=[{"id": 1, "title": "work"}],
    )


@pytest.fixture
def sample_projects():
    return [
        create_project(id=1, title="Work"),
        create_project(id=2, title="Inbox"),
        create_project(id=3, title="Personal"),
    ]


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2025-10-30 04:05:22.422") as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
