"""Tests for get-task and delete-task."""

import pytest

from vikunja_tools.models.operations import DeleteTaskArgs, GetTaskArgs
from vikunja_tools.services.task_service import delete_task, get_task
from vikunja_tools.utils.errors import ConnectivityError, NotFoundError, ValidationError
from tests.utils.assertions import assert_success
from tests.utils.helpers import api_error, connection_refused


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_task(context, mock_client, sample_task):
    mock_client.get_task.return_value = sample_task

    response = await get_task(context, GetTaskArgs(subcommand="get", id=123))

    assert_success(response, "get-task")
    assert response.data["task"]["id"] == 123
    assert response.data["task"]["due_date"] is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_missing_task(context, mock_client):
    mock_client.get_task.side_effect = api_error(404, "The task does not exist.")

    with pytest.raises(NotFoundError) as exc_info:
        await get_task(context, GetTaskArgs(subcommand="get", id=999))

    assert exc_info.value.message == "Task with ID 999 not found"
    assert exc_info.value.details["task_id"] == 999


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("task_id", [None, 0, -4])
async def test_get_rejects_bad_ids(context, mock_client, task_id):
    with pytest.raises(ValidationError):
        await get_task(context, GetTaskArgs(subcommand="get", id=task_id))
    mock_client.get_task.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_includes_title(context, mock_client, sample_task):
    mock_client.get_task.return_value = sample_task

    response = await delete_task(context, DeleteTaskArgs(subcommand="delete", id=123))

    assert_success(response, "delete-task")
    assert response.message == 'Task "Write quarterly report" (ID 123) deleted successfully'
    assert response.data == {"deleted_task_id": 123, "title": "Write quarterly report"}
    assert response.metadata["already_deleted"] is False
    mock_client.delete_task.assert_awaited_once_with(123)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_survives_failed_prefetch(context, mock_client):
    mock_client.get_task.side_effect = connection_refused()

    response = await delete_task(context, DeleteTaskArgs(subcommand="delete", id=123))

    assert response.message == "Task 123 deleted successfully"
    assert "title" not in response.data
    mock_client.delete_task.assert_awaited_once_with(123)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_deleting_a_deleted_task_succeeds(context, mock_client):
    mock_client.get_task.side_effect = api_error(404, "The task does not exist.")
    mock_client.delete_task.side_effect = api_error(404, "The task does not exist.")

    response = await delete_task(context, DeleteTaskArgs(subcommand="delete", id=123))

    assert response.success is True
    assert response.metadata["already_deleted"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_failure_propagates(context, mock_client, sample_task):
    mock_client.get_task.return_value = sample_task
    mock_client.delete_task.side_effect = connection_refused()

    with pytest.raises(ConnectivityError):
        await delete_task(context, DeleteTaskArgs(subcommand="delete", id=123))
