"""Tests for the vikunja_projects operations."""

import pytest

from vikunja_tools.models.operations import (
    ArchiveProjectArgs,
    CreateProjectArgs,
    DeleteProjectArgs,
    GetProjectArgs,
    ListProjectsArgs,
    UnarchiveProjectArgs,
    UpdateProjectArgs,
)
from vikunja_tools.services.project_service import (
    archive_project,
    create_project,
    delete_project,
    get_project,
    list_projects,
    unarchive_project,
    update_project,
)
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from tests.utils.assertions import assert_success
from tests.utils.factories import create_project as make_project
from tests.utils.helpers import api_error


@pytest.fixture
def groceries():
    return make_project(id=6, title="Groceries", description="Weekly shop", hex_color="1973ff")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_projects(context, mock_client, sample_projects):
    mock_client.get_projects.return_value = sample_projects

    response = await list_projects(context, ListProjectsArgs(subcommand="list"))

    assert_success(response, "list-projects")
    assert [p["title"] for p in response.data["projects"]] == ["Work", "Inbox", "Personal"]
    assert mock_client.get_projects.await_args.args[0]["is_archived"] is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_projects_including_archived(context, mock_client):
    mock_client.get_projects.return_value = []

    response = await list_projects(context, ListProjectsArgs.model_validate({"subcommand": "list", "includeArchived": True}))

    assert mock_client.get_projects.await_args.args[0]["is_archived"] == "true"
    assert response.message == "Retrieved 0 projects"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_project(context, mock_client, groceries):
    mock_client.get_project.return_value = groceries

    response = await get_project(context, GetProjectArgs(subcommand="get", id=6))

    assert response.message == 'Retrieved project "Groceries"'


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_missing_project(context, mock_client):
    mock_client.get_project.side_effect = api_error(404, "The project does not exist.")

    with pytest.raises(NotFoundError, match="Project with ID 6 not found"):
        await get_project(context, GetProjectArgs(subcommand="get", id=6))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_project(context, mock_client, groceries):
    mock_client.create_project.return_value = groceries

    response = await create_project(
        context, CreateProjectArgs(subcommand="create", title="Groceries", description="Weekly shop")
    )

    assert_success(response, "create-project")
    mock_client.create_project.assert_awaited_once_with({"title": "Groceries", "description": "Weekly shop"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_project_requires_title(context, mock_client):
    with pytest.raises(ValidationError) as exc_info:
        await create_project(context, CreateProjectArgs(subcommand="create"))

    assert exc_info.value.details["field"] == "title"
    assert mock_client.method_calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_project_sends_full_object(context, mock_client, groceries):
    mock_client.get_project.return_value = groceries
    mock_client.update_project.return_value = groceries.model_copy(update={"hex_color": "00ff00"})

    response = await update_project(
        context, UpdateProjectArgs.model_validate({"subcommand": "update", "id": 6, "hexColor": "00FF00"})
    )

    project_id, payload = mock_client.update_project.await_args.args
    assert project_id == 6
    assert payload["hex_color"] == "00ff00"
    assert payload["title"] == "Groceries"
    assert payload["is_archived"] is False
    assert response.metadata["affected_fields"] == ["hex_color"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_project_requires_a_field(context, mock_client):
    with pytest.raises(ValidationError):
        await update_project(context, UpdateProjectArgs(subcommand="update", id=6))
    assert mock_client.method_calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_project(context, mock_client):
    response = await delete_project(context, DeleteProjectArgs(subcommand="delete", id=6))

    mock_client.delete_project.assert_awaited_once_with(6)
    assert response.data == {"deleted_project_id": 6}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_archive_project(context, mock_client, groceries):
    mock_client.get_project.return_value = groceries
    mock_client.update_project.return_value = groceries.model_copy(update={"is_archived": True})

    response = await archive_project(context, ArchiveProjectArgs(subcommand="archive", id=6))

    assert_success(response, "archive-project")
    assert mock_client.update_project.await_args.args[1]["is_archived"] is True
    assert response.message == 'Project "Groceries" archived successfully'
    assert response.metadata["affected_fields"] == ["is_archived"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unarchive_already_active_project_is_a_no_op(context, mock_client, groceries):
    mock_client.get_project.return_value = groceries

    response = await unarchive_project(context, UnarchiveProjectArgs(subcommand="unarchive", id=6))

    mock_client.update_project.assert_not_awaited()
    assert response.message == 'Project "Groceries" is already unarchived'
    assert response.metadata["affected_fields"] == []
