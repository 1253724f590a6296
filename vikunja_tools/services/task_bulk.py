"""Bulk create, update and delete.

Every item is validated before the first remote call. Items then run one
at a time through the single-task workflows; a failing item does not stop
the others, except that a connectivity or authentication failure ends the
batch. Mixed outcomes surface as a PartialFailureError listing what went
through, and a batch where nothing went through re-raises the first error.
"""

from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from vikunja_tools.models.operations import (
    BulkCreateTasksArgs,
    BulkDeleteTasksArgs,
    BulkUpdateTasksArgs,
    CreateTaskArgs,
    DeleteTaskArgs,
    UpdateTaskArgs,
)
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.task_service import (
    create_planned_task,
    delete_task,
    plan_creation,
    plan_update,
    resolve_project,
    update_task,
)
from vikunja_tools.services.validation import require_field, validate_id
from vikunja_tools.utils.errors import (
    AuthenticationError,
    ConnectivityError,
    PartialFailureError,
    ValidationError,
    VikunjaToolsError,
)
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

MAX_BULK_ITEMS = 100

# accepted field names (camelCase and snake_case) -> update argument name
BULK_UPDATE_FIELDS = {
    name: field
    for field in (
        "title",
        "description",
        "done",
        "priority",
        "percent_done",
        "due_date",
        "start_date",
        "end_date",
        "project_id",
        "repeat_after",
        "repeat_mode",
    )
    for name in (field, to_camel(field))
}
REDIRECTED_FIELDS = {"labels": "apply-label", "assignees": "assign"}

# errors that make the rest of the batch pointless
BATCH_FATAL_ERRORS = (ConnectivityError, AuthenticationError)


def _require_items(items: Optional[list], field_name: str, operation: str, example: str) -> list:
    require_field(items, field_name, operation, example=example)
    if not items:
        raise ValidationError(f"{field_name} must not be empty. Example: {example}", details={"field": field_name})
    if len(items) > MAX_BULK_ITEMS:
        raise ValidationError(
            f"{field_name} accepts at most {MAX_BULK_ITEMS} items per request. Received: {len(items)}",
            details={"field": field_name, "count": len(items), "limit": MAX_BULK_ITEMS},
        )
    return items


def _task_ids(values: Optional[list[int]], operation: str, example: str) -> list[int]:
    """Validated ids in request order, duplicates dropped."""
    items = _require_items(values, "taskIds", operation, example)
    return list(dict.fromkeys(validate_id(task_id, "taskIds") for task_id in items))


def _item_error(error: ValidationError, field_name: str, index: int) -> ValidationError:
    return ValidationError(
        f"{field_name}[{index}]: {error.message}",
        details={**error.details, "index": index},
    )


async def _run_batch(
    operation: str,
    keys: list[Any],
    step: Callable[[Any], Awaitable[Any]],
) -> tuple[list[Any], list[dict[str, Any]], list[Any], Optional[VikunjaToolsError]]:
    """(succeeded results, failures, keys not attempted, first error)."""
    succeeded: list[Any] = []
    failures: list[dict[str, Any]] = []
    first_error: Optional[VikunjaToolsError] = None
    for position, key in enumerate(keys):
        try:
            succeeded.append(await step(key))
        except VikunjaToolsError as error:
            logger.warning("Bulk item failed", bulk_operation=operation, item=key, error_code=error.code)
            failures.append({"item": key, "error": error.to_dict()})
            first_error = first_error or error
            if isinstance(error, BATCH_FATAL_ERRORS):
                return succeeded, failures, keys[position + 1:], first_error
    return succeeded, failures, [], first_error


def _raise_for_failures(
    operation: str,
    verb: str,
    succeeded_ids: list[int],
    failures: list[dict[str, Any]],
    not_attempted: list[Any],
    first_error: Optional[VikunjaToolsError],
) -> None:
    if first_error is None:
        return
    if not succeeded_ids:
        first_error.details.update({"failures": failures, "not_attempted": not_attempted})
        raise first_error
    raise PartialFailureError(
        f"{operation} {verb} {len(succeeded_ids)} task(s); {len(failures)} failed "
        f"and {len(not_attempted)} were not attempted. First failure: {first_error.message}",
        completed_steps=[f"{verb}:{task_id}" for task_id in succeeded_ids],
        failed_step=f"item:{failures[0]['item']}",
        details={"succeeded": succeeded_ids, "failures": failures, "not_attempted": not_attempted},
    ) from first_error


async def bulk_create(context: ToolContext, args: BulkCreateTasksArgs) -> ToolResponse:
    """Create several tasks in one project, each with its labels and assignees."""
    example = '{"subcommand": "bulk-create", "projectId": 1, "tasks": [{"title": "Buy milk"}]}'
    items = _require_items(args.tasks, "tasks", "bulk-create", example)
    project_id = validate_id(require_field(args.project_id, "projectId", "bulk-create", example=example), "projectId")

    plans = []
    for index, item in enumerate(items):
        fields = item.model_dump(include=item.model_fields_set)
        try:
            plans.append(plan_creation(CreateTaskArgs(subcommand="create", **fields)))
        except ValidationError as error:
            raise _item_error(error, "tasks", index) from error

    await resolve_project(context, project_id)

    async def create(index: int) -> dict[str, Any]:
        state = await create_planned_task(context, plans[index], project_id)
        return state.task.to_payload()

    created, failures, not_attempted, first_error = await _run_batch("bulk-create", list(range(len(plans))), create)
    created_ids = [task["id"] for task in created]
    _raise_for_failures("bulk-create", "created", created_ids, failures, not_attempted, first_error)

    logger.info("Bulk create finished", project_id=project_id, count=len(created))
    return success_response(
        "bulk-create",
        f"Created {len(created)} task(s) in project {project_id}",
        {"tasks": created},
        {"project_id": project_id, "count": len(created), "task_ids": created_ids},
    )


def _update_args(task_id: int, field_name: str, value: Any) -> UpdateTaskArgs:
    try:
        return UpdateTaskArgs.model_validate({"subcommand": "update", "id": task_id, field_name: value})
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid value for {field_name}: {e.errors()[0]['msg']}. Received: {value!r}",
            details={"field": "value", "value": repr(value)},
        ) from e


async def bulk_update(context: ToolContext, args: BulkUpdateTasksArgs) -> ToolResponse:
    """Set one field to the same value on several tasks."""
    example = '{"subcommand": "bulk-update", "taskIds": [1, 2], "field": "done", "value": true}'
    task_ids = _task_ids(args.task_ids, "bulk-update", example)
    raw_field = require_field(args.field, "field", "bulk-update", example=example)
    if raw_field in REDIRECTED_FIELDS:
        raise ValidationError(
            f'bulk-update cannot change {raw_field}; use the "{REDIRECTED_FIELDS[raw_field]}" subcommand per task.',
            details={"field": "field", "value": raw_field, "use": REDIRECTED_FIELDS[raw_field]},
        )
    if raw_field not in BULK_UPDATE_FIELDS:
        accepted = sorted(to_camel(name) for name in set(BULK_UPDATE_FIELDS.values()))
        raise ValidationError(
            f"Unsupported field {raw_field!r} for bulk-update. Accepted: {', '.join(accepted)}",
            details={"field": "field", "value": raw_field, "accepted": accepted},
        )
    if "value" not in args.provided_fields():
        raise ValidationError(f"value is required for bulk-update. Example: {example}", details={"field": "value"})

    field_name = BULK_UPDATE_FIELDS[raw_field]
    updates = {task_id: _update_args(task_id, field_name, args.value) for task_id in task_ids}
    plan_update(updates[task_ids[0]])

    async def update(task_id: int) -> int:
        await update_task(context, updates[task_id])
        return task_id

    updated, failures, not_attempted, first_error = await _run_batch("bulk-update", task_ids, update)
    _raise_for_failures("bulk-update", "updated", updated, failures, not_attempted, first_error)

    logger.info("Bulk update finished", field=field_name, count=len(updated))
    return success_response(
        "bulk-update",
        f"Updated {field_name} on {len(updated)} task(s)",
        {"task_ids": updated, "field": field_name, "value": args.value},
        {"count": len(updated), "affected_fields": [field_name]},
    )


async def bulk_delete(context: ToolContext, args: BulkDeleteTasksArgs) -> ToolResponse:
    """Delete several tasks; already-deleted ones count as deleted."""
    example = '{"subcommand": "bulk-delete", "taskIds": [1, 2]}'
    task_ids = _task_ids(args.task_ids, "bulk-delete", example)

    async def delete(task_id: int) -> int:
        await delete_task(context, DeleteTaskArgs(subcommand="delete", id=task_id))
        return task_id

    deleted, failures, not_attempted, first_error = await _run_batch("bulk-delete", task_ids, delete)
    _raise_for_failures("bulk-delete", "deleted", deleted, failures, not_attempted, first_error)

    logger.info("Bulk delete finished", count=len(deleted))
    return success_response(
        "bulk-delete",
        f"Deleted {len(deleted)} task(s)",
        {"deleted_task_ids": deleted},
        {"count": len(deleted)},
    )
