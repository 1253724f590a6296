"""Tests for list-tasks evaluation paths."""

import pytest

from vikunja_tools.models.filtering import EvaluationPath, FilterRequest
from vikunja_tools.models.operations import ListTasksArgs
from vikunja_tools.services.saved_filters import SavedFilter
from vikunja_tools.services.task_filtering import build_request, filter_tasks, list_tasks, parse_sort, sort_tasks
from vikunja_tools.utils.errors import (
    AuthenticationError,
    ConnectivityError,
    FilterSyntaxError,
    NotFoundError,
    ValidationError,
)
from tests.utils.assertions import assert_success
from tests.utils.factories import create_task
from tests.utils.helpers import api_error, connection_refused


@pytest.fixture
def page_of_tasks():
    return [
        create_task(id=1, title="Pay rent", priority=5, done=False),
        create_task(id=2, title="Write report", priority=3, done=True),
        create_task(id=3, title="Plan trip", priority=1, done=False),
        create_task(id=4, title="Pay taxes", priority=4, done=False),
    ]


def _list(**kwargs) -> ListTasksArgs:
    return ListTasksArgs.model_validate({"subcommand": "list", **kwargs})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_no_filter_lists_page(context, mock_client, page_of_tasks):
    mock_client.list_tasks.return_value = page_of_tasks

    response = await list_tasks(context, _list(page=2, perPage=10))

    assert_success(response, "list-tasks")
    assert response.message == "Found 4 tasks"
    params = mock_client.list_tasks.await_args.args[0]
    assert params["page"] == 2
    assert params["per_page"] == 10
    assert "filter" not in params
    assert response.metadata["evaluation_path"] is None
    assert response.metadata["results_complete"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_server_side_filter_is_authoritative(context, mock_client, page_of_tasks):
    mock_client.list_tasks.return_value = page_of_tasks[:1]

    response = await list_tasks(context, _list(filter="priority >= 5"))

    params = mock_client.list_tasks.await_args.args[0]
    assert params["filter"] == "priority >= 5"
    assert mock_client.list_tasks.await_count == 1
    assert response.message == "Found 1 task (filtered server-side)"
    assert response.metadata["evaluation_path"] == "server"
    assert response.metadata["server_side_filtering_attempted"] is True
    assert response.metadata["server_side_filtering_used"] is True
    assert response.metadata["results_complete"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejected_filter_falls_back_to_client(context, mock_client, page_of_tasks):
    mock_client.list_tasks.side_effect = [api_error(400, "Invalid filter expression"), page_of_tasks]

    response = await list_tasks(context, _list(filter="done = false && priority >= 3"))

    assert mock_client.list_tasks.await_count == 2
    fallback_params = mock_client.list_tasks.await_args_list[1].args[0]
    assert "filter" not in fallback_params
    assert [task["id"] for task in response.data["tasks"]] == [1, 4]
    assert response.message == "Found 2 tasks (filtered client-side - server-side fallback)"
    assert response.metadata["evaluation_path"] == "client_fallback"
    assert response.metadata["server_side_filtering_attempted"] is True
    assert response.metadata["server_side_filtering_used"] is False
    assert response.metadata["results_complete"] is False
    assert "Invalid filter expression" in response.metadata["fallback_reason"]


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("failure,expected", [
    (connection_refused(), ConnectivityError),
    (api_error(401, "expired"), AuthenticationError),
])
async def test_transport_and_auth_failures_never_fall_back(context, mock_client, failure, expected):
    mock_client.list_tasks.side_effect = failure

    with pytest.raises(expected):
        await list_tasks(context, _list(filter="done = false"))

    assert mock_client.list_tasks.await_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_text_fields_are_filtered_client_side(context, mock_client, page_of_tasks):
    mock_client.list_tasks.return_value = page_of_tasks

    response = await list_tasks(context, _list(filter="title like pay", sort="priority"))

    params = mock_client.list_tasks.await_args.args[0]
    assert "filter" not in params
    assert "sort_by" not in params
    assert [task["id"] for task in response.data["tasks"]] == [4, 1]
    assert response.message == "Found 2 tasks (filtered client-side)"
    assert response.metadata["evaluation_path"] == "client"
    assert response.metadata["server_side_filtering_attempted"] is False
    assert response.metadata["results_complete"] is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_done_is_folded_into_the_expression(context, mock_client):
    mock_client.list_tasks.return_value = []

    await list_tasks(context, _list(filter="priority >= 3 || priority = 0", done=False))

    params = mock_client.list_tasks.await_args.args[0]
    assert params["filter"] == "(priority >= 3 || priority = 0) && done = false"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_done_alone_becomes_a_filter(context, mock_client):
    mock_client.list_tasks.return_value = []

    await list_tasks(context, _list(done=True))

    assert mock_client.list_tasks.await_args.args[0]["filter"] == "done = true"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_saved_filter_is_resolved(context, mock_client):
    mock_client.list_project_tasks.return_value = []

    response = await list_tasks(context, _list(filterId="mine-in-3"))

    project_id, params = mock_client.list_project_tasks.await_args.args
    assert project_id == 3
    assert params["filter"] == "done = false"
    assert response.metadata["filter_id"] == "mine-in-3"
    mock_client.list_tasks.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_saved_filter(context, mock_client):
    with pytest.raises(NotFoundError, match="Saved filter 'nope' not found"):
        await list_tasks(context, _list(filterId="nope"))
    assert mock_client.method_calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_filter_and_filter_id_are_exclusive(context, mock_client):
    with pytest.raises(ValidationError, match="either filter or filterId"):
        await list_tasks(context, _list(filter="done = false", filterId="urgent"))
    assert mock_client.method_calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unparseable_expression_rejected_by_server_raises_syntax_error(context, mock_client):
    mock_client.list_tasks.side_effect = api_error(400, "Invalid filter expression")

    with pytest.raises(FilterSyntaxError) as exc_info:
        await list_tasks(context, _list(filter="priority >>= 3"))

    # nothing to fall back to, so no unfiltered fetch
    assert mock_client.list_tasks.await_count == 1
    assert mock_client.list_tasks.await_args.args[0]["filter"] == "priority >>= 3"
    assert exc_info.value.details["filter"] == "priority >>= 3"
    assert exc_info.value.__cause__ is not None


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("expression", ["reminders > now", "bucket_id = 3", "labels ?= 4"])
async def test_server_only_expressions_are_sent_to_server(context, mock_client, page_of_tasks, expression):
    mock_client.list_tasks.return_value = page_of_tasks[:2]

    response = await list_tasks(context, _list(filter=expression))

    assert mock_client.list_tasks.await_args.args[0]["filter"] == expression
    assert mock_client.list_tasks.await_count == 1
    assert [task["id"] for task in response.data["tasks"]] == [1, 2]
    assert response.metadata["evaluation_path"] == "server"
    assert response.metadata["server_side_filtering_used"] is True
    assert response.metadata["results_complete"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unparseable_expression_still_propagates_connectivity(context, mock_client):
    mock_client.list_tasks.side_effect = connection_refused()

    with pytest.raises(ConnectivityError):
        await list_tasks(context, _list(filter="reminders > now"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_project_listing_uses_project_endpoint(context, mock_client, page_of_tasks):
    mock_client.list_project_tasks.return_value = page_of_tasks

    await list_tasks(context, _list(projectId=7, sort="dueDate:desc,priority"))

    project_id, params = mock_client.list_project_tasks.await_args.args
    assert project_id == 7
    assert params["sort_by"] == ["due_date", "priority"]
    assert params["order_by"] == ["desc", "asc"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_page_size_defaults_from_config(context):
    request = await build_request(context, _list())
    assert request.model_dump() == FilterRequest(page=1, per_page=50).model_dump()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fallback_applies_to_project_listing(context, mock_client, page_of_tasks):
    mock_client.list_project_tasks.side_effect = [api_error(500, "filter failed"), page_of_tasks]

    result = await filter_tasks(context, FilterRequest(filter="priority < 3", project_id=9))

    assert [task.id for task in result.tasks] == [3]
    assert result.metadata.evaluation_path is EvaluationPath.CLIENT_FALLBACK


@pytest.mark.unit
def test_parse_sort():
    assert parse_sort("dueDate:desc, priority") == [("due_date", True), ("priority", False)]
    assert parse_sort(None) == []


@pytest.mark.unit
@pytest.mark.parametrize("sort", ["colour", "priority:sideways", "labels"])
def test_parse_sort_rejects_unknown(sort):
    with pytest.raises(ValidationError):
        parse_sort(sort)


@pytest.mark.unit
def test_sort_puts_missing_values_last():
    tasks = [
        create_task(id=1, due_date="2025-11-02T00:00:00Z", priority=1),
        create_task(id=2, priority=5),
        create_task(id=3, due_date="2025-11-01T00:00:00Z", priority=1),
    ]
    assert [t.id for t in sort_tasks(tasks, [("due_date", False)])] == [3, 1, 2]
    assert [t.id for t in sort_tasks(tasks, [("priority", True), ("id", False)])] == [2, 1, 3]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_saved_filters_can_be_added_per_context(context, mock_client):
    await context.saved_filters.save(SavedFilter(id="overdue", filter="dueDate < now && done = false"))
    mock_client.list_tasks.return_value = []

    await list_tasks(context, _list(filterId="overdue"))

    assert mock_client.list_tasks.await_args.args[0]["filter"] == "dueDate < now && done = false"
    assert [saved.id for saved in await context.saved_filters.list()] == ["urgent", "mine-in-3", "overdue"]
