"""Project list/get/create/update/delete/archive/unarchive."""

from typing import Any

from vikunja_tools.models.operations import (
    ArchiveProjectArgs,
    CreateProjectArgs,
    DeleteProjectArgs,
    GetProjectArgs,
    ListProjectsArgs,
    UnarchiveProjectArgs,
    UpdateProjectArgs,
)
from vikunja_tools.models.project import Project
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.validation import require_field, validate_hex_color, validate_id
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

PROJECT_FIELDS = ("title", "description", "hex_color")


def _require_project_id(value: Any, operation: str) -> int:
    require_field(value, "id", operation, example=f'{{"subcommand": "{operation}", "id": 1}}')
    return validate_id(value, "id")


async def _fetch_project(context: ToolContext, project_id: int) -> Project:
    try:
        return await context.call(lambda: context.client.get_project(project_id), f"Get project {project_id}")
    except NotFoundError as e:
        raise NotFoundError(f"Project with ID {project_id} not found", details={"project_id": project_id}) from e


async def _replace_project(context: ToolContext, current: Project, updates: dict[str, Any]) -> Project:
    """Full-object update: the fetched project with updates merged in."""
    payload = {**current.model_dump(), **updates}
    return await context.call(
        lambda: context.client.update_project(current.id, payload), f"Update project {current.id}"
    )


async def list_projects(context: ToolContext, args: ListProjectsArgs) -> ToolResponse:
    """List projects, archived ones only when asked for."""
    params = {
        "page": args.page,
        "per_page": args.per_page or VikunjaConfig.DEFAULT_PAGE_SIZE,
        "s": args.search,
        "is_archived": "true" if args.include_archived else None,
    }
    projects = await context.call(lambda: context.client.get_projects(params), "List projects")
    return success_response(
        "list-projects",
        f"Retrieved {len(projects)} project{'s' if len(projects) != 1 else ''}",
        {"projects": [project.model_dump() for project in projects]},
        {"count": len(projects), "include_archived": args.include_archived, "page": args.page},
    )


async def get_project(context: ToolContext, args: GetProjectArgs) -> ToolResponse:
    """Fetch one project by id."""
    project_id = _require_project_id(args.id, "get")
    project = await _fetch_project(context, project_id)
    return success_response("get-project", f'Retrieved project "{project.title}"', {"project": project.model_dump()})


async def create_project(context: ToolContext, args: CreateProjectArgs) -> ToolResponse:
    """Create a project; title is required."""
    title = require_field(args.title, "title", "create", example='{"subcommand": "create", "title": "Groceries"}')
    payload: dict[str, Any] = {"title": title}
    if args.description is not None:
        payload["description"] = args.description
    if args.hex_color is not None:
        payload["hex_color"] = validate_hex_color(args.hex_color)

    project = await context.call(lambda: context.client.create_project(payload), "Create project")
    logger.info("Project created", project_id=project.id)
    return success_response(
        "create-project",
        f'Project "{project.title}" created successfully',
        {"project": project.model_dump()},
        {"affected_fields": list(payload)},
    )


async def update_project(context: ToolContext, args: UpdateProjectArgs) -> ToolResponse:
    """Change the given project fields; at least one must be provided."""
    project_id = _require_project_id(args.id, "update")
    updates = {name: getattr(args, name) for name in PROJECT_FIELDS if name in args.provided_fields()}
    if not updates:
        raise ValidationError(
            "At least one field to update is required: title, description or hexColor. "
            f'Example: {{"subcommand": "update", "id": {project_id}, "title": "Renamed"}}',
            details={"field": "title"},
        )
    if "title" in updates:
        require_field(updates["title"], "title", "update")
    if updates.get("hex_color") is not None:
        updates["hex_color"] = validate_hex_color(updates["hex_color"])

    current = await _fetch_project(context, project_id)
    project = await _replace_project(context, current, updates)
    return success_response(
        "update-project",
        f'Project "{project.title}" updated successfully',
        {"project": project.model_dump()},
        {"affected_fields": [name for name, value in updates.items() if getattr(current, name) != value]},
    )


async def delete_project(context: ToolContext, args: DeleteProjectArgs) -> ToolResponse:
    """Delete a project and, remotely, every task in it."""
    project_id = _require_project_id(args.id, "delete")
    try:
        await context.call(lambda: context.client.delete_project(project_id), f"Delete project {project_id}")
    except NotFoundError as e:
        raise NotFoundError(f"Project with ID {project_id} not found", details={"project_id": project_id}) from e
    logger.info("Project deleted", project_id=project_id)
    return success_response(
        "delete-project", f"Project {project_id} deleted successfully", {"deleted_project_id": project_id}
    )


async def _set_archived(context: ToolContext, project_id: int, archived: bool, operation: str) -> ToolResponse:
    current = await _fetch_project(context, project_id)
    verb = "archived" if archived else "unarchived"
    if current.is_archived == archived:
        return success_response(
            operation,
            f'Project "{current.title}" is already {verb}',
            {"project": current.model_dump()},
            {"affected_fields": []},
        )
    project = await _replace_project(context, current, {"is_archived": archived})
    logger.info(f"Project {verb}", project_id=project_id)
    return success_response(
        operation,
        f'Project "{project.title}" {verb} successfully',
        {"project": project.model_dump()},
        {"affected_fields": ["is_archived"]},
    )


async def archive_project(context: ToolContext, args: ArchiveProjectArgs) -> ToolResponse:
    """Archive a project."""
    return await _set_archived(context, _require_project_id(args.id, "archive"), True, "archive-project")


async def unarchive_project(context: ToolContext, args: UnarchiveProjectArgs) -> ToolResponse:
    """Restore an archived project."""
    return await _set_archived(context, _require_project_id(args.id, "unarchive"), False, "unarchive-project")
