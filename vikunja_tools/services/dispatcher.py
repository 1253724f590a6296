"""Tool dispatch: parse the argument union, run the handler, build the envelope."""

from typing import Any, Awaitable, Callable, Union, get_args

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from vikunja_tools.models import operations as ops
from vikunja_tools.models.responses import ErrorResponse, ToolResponse
from vikunja_tools.services import (
    label_service,
    project_hierarchy,
    project_service,
    task_assignees,
    task_bulk,
    task_comments,
    task_filtering,
    task_labels,
    task_relations,
    task_reminders,
    task_service,
)
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.error_classifier import classify_error
from vikunja_tools.utils.errors import ValidationError, VikunjaToolsError
from vikunja_tools.utils.logging import correlation_context, get_structured_logger, log_timing
from vikunja_tools.utils.responses import error_response

logger = get_structured_logger(__name__)

Handler = Callable[[ToolContext, Any], Awaitable[ToolResponse]]

TASK_HANDLERS: dict[type, Handler] = {
    ops.CreateTaskArgs: task_service.create_task,
    ops.GetTaskArgs: task_service.get_task,
    ops.UpdateTaskArgs: task_service.update_task,
    ops.DeleteTaskArgs: task_service.delete_task,
    ops.ListTasksArgs: task_filtering.list_tasks,
    ops.RelateTasksArgs: task_relations.relate,
    ops.UnrelateTasksArgs: task_relations.unrelate,
    ops.ListRelationsArgs: task_relations.list_relations,
    ops.ApplyLabelArgs: task_labels.apply_labels,
    ops.RemoveLabelArgs: task_labels.remove_labels,
    ops.ListTaskLabelsArgs: task_labels.list_task_labels,
    ops.AssignUsersArgs: task_assignees.assign_users,
    ops.UnassignUsersArgs: task_assignees.unassign_users,
    ops.ListAssigneesArgs: task_assignees.list_assignees,
    ops.CommentTaskArgs: task_comments.comment,
    ops.AddReminderArgs: task_reminders.add_reminder,
    ops.RemoveReminderArgs: task_reminders.remove_reminder,
    ops.ListRemindersArgs: task_reminders.list_reminders,
    ops.BulkCreateTasksArgs: task_bulk.bulk_create,
    ops.BulkUpdateTasksArgs: task_bulk.bulk_update,
    ops.BulkDeleteTasksArgs: task_bulk.bulk_delete,
}

LABEL_HANDLERS: dict[type, Handler] = {
    ops.ListLabelsArgs: label_service.list_labels,
    ops.GetLabelArgs: label_service.get_label,
    ops.CreateLabelArgs: label_service.create_label,
    ops.UpdateLabelArgs: label_service.update_label,
    ops.DeleteLabelArgs: label_service.delete_label,
}

PROJECT_HANDLERS: dict[type, Handler] = {
    ops.ListProjectsArgs: project_service.list_projects,
    ops.GetProjectArgs: project_service.get_project,
    ops.CreateProjectArgs: project_service.create_project,
    ops.UpdateProjectArgs: project_service.update_project,
    ops.DeleteProjectArgs: project_service.delete_project,
    ops.ArchiveProjectArgs: project_service.archive_project,
    ops.UnarchiveProjectArgs: project_service.unarchive_project,
    ops.GetProjectChildrenArgs: project_hierarchy.get_children,
    ops.GetProjectTreeArgs: project_hierarchy.get_tree,
    ops.GetProjectBreadcrumbArgs: project_hierarchy.get_breadcrumb,
    ops.MoveProjectArgs: project_hierarchy.move_project,
}

# tool name -> (argument union, handler table)
TOOLS: dict[str, tuple[Any, dict[type, Handler]]] = {
    "vikunja_tasks": (ops.TaskOperation, TASK_HANDLERS),
    "vikunja_labels": (ops.LabelOperation, LABEL_HANDLERS),
    "vikunja_projects": (ops.ProjectOperation, PROJECT_HANDLERS),
}

_ADAPTERS = {name: TypeAdapter(union) for name, (union, _) in TOOLS.items()}


def _argument_error(tool_name: str, exc: PydanticValidationError) -> ValidationError:
    """Turn pydantic's error list into one actionable ValidationError."""
    problems = []
    for err in exc.errors():
        if err["type"] in ("union_tag_invalid", "union_tag_not_found"):
            handlers = TOOLS[tool_name][1]
            tags = ", ".join(sorted(get_args(cls.model_fields["subcommand"].annotation)[0] for cls in handlers))
            problems.append({"parameter": "subcommand", "message": f"expected one of: {tags}"})
            continue
        # loc starts with the subcommand tag for discriminated unions
        loc = [str(part) for part in err["loc"][1:]] or [str(part) for part in err["loc"]]
        parameter = ".".join(loc) or "arguments"
        message = "unknown parameter" if err["type"] == "extra_forbidden" else err["msg"]
        problems.append({"parameter": parameter, "message": message})

    summary = "; ".join(f"'{p['parameter']}': {p['message']}" for p in problems)
    return ValidationError(
        f"Invalid arguments for {tool_name}: {summary}",
        details={"field": problems[0]["parameter"] if problems else None, "errors": problems},
    )


def parse_arguments(tool_name: str, arguments: Any) -> ops.OperationArgs:
    """Validate raw tool arguments into the tool's tagged union."""
    if tool_name not in TOOLS:
        raise ValidationError(
            f"Unknown tool '{tool_name}'. Available tools: {', '.join(sorted(TOOLS))}",
            details={"field": "tool", "value": tool_name},
        )
    if not isinstance(arguments, dict):
        raise ValidationError(
            'arguments must be an object. Example: {"subcommand": "get", "id": 123}',
            details={"field": "arguments"},
        )
    try:
        return _ADAPTERS[tool_name].validate_python(arguments)
    except PydanticValidationError as e:
        raise _argument_error(tool_name, e) from e


async def execute_tool(
    tool_name: str,
    arguments: Any,
    context: ToolContext,
) -> Union[ToolResponse, ErrorResponse]:
    """Run one tool invocation inside its own correlation context.

    Failures come back as an ErrorResponse; unexpected exceptions are
    classified here, once.
    """
    operation = tool_name
    with correlation_context():
        try:
            with log_timing("tool invocation", logger, tool=tool_name):
                args = parse_arguments(tool_name, arguments)
                operation = f"{tool_name}.{args.subcommand}"
                handler = TOOLS[tool_name][1][type(args)]
                return await handler(context, args)
        except VikunjaToolsError as error:
            logger.warning(
                "Tool invocation failed",
                tool=tool_name,
                tool_operation=operation,
                error_code=error.code,
                error=error.message,
            )
            return error_response(operation, error)
        except Exception as exc:
            error = classify_error(exc, operation=operation)
            logger.exception(
                "Unexpected error during tool invocation",
                tool=tool_name,
                tool_operation=operation,
                error_code=error.code,
            )
            return error_response(operation, error)
