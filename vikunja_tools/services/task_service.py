"""Task create/get/update/delete workflows."""

from dataclasses import dataclass
from typing import Any, Optional

from vikunja_tools.models.mutation import MutationState
from vikunja_tools.models.operations import CreateTaskArgs, DeleteTaskArgs, GetTaskArgs, UpdateTaskArgs
from vikunja_tools.models.repeat import RepeatConfiguration
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.diff_engine import RelationDiff, compute_diff
from vikunja_tools.services.project_resolver import find_default_project, verify_project_exists
from vikunja_tools.services.validation import (
    convert_repeat_configuration,
    require_field,
    validate_date,
    validate_id,
    validate_priority,
)
from vikunja_tools.utils.errors import NotFoundError, PartialFailureError, ValidationError, VikunjaToolsError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

# task field name -> argument name
DATE_ARGUMENTS = {"due_date": "dueDate", "start_date": "startDate", "end_date": "endDate"}
SCALAR_UPDATE_FIELDS = ("title", "description", "done", "priority", "percent_done", "project_id")

STEP_CREATE = "create_task"
STEP_LABELS = "labels"
STEP_ASSIGNEES = "assignees"
STEP_UPDATE = "update_task"
STEP_ADD_ASSIGNEES = "add_assignees"


def require_task_id(value: Any, operation: str) -> int:
    """Required, positive task id with an example invocation in the error."""
    require_field(value, "id", operation, example=f'{{"subcommand": "{operation}", "id": 123}}')
    return validate_id(value, "id")


async def fetch_task(context: ToolContext, task_id: int) -> Task:
    """Get a task, turning a remote 404 into a message naming the id."""
    try:
        return await context.call(lambda: context.client.get_task(task_id), f"Get task {task_id}")
    except NotFoundError as e:
        raise NotFoundError(f"Task with ID {task_id} not found", details={"task_id": task_id}) from e


def _validate_ids(values: Optional[list[int]], field_name: str) -> list[int]:
    return [validate_id(value, field_name) for value in values or []]


def _validate_dates(args: Any, fields: set[str]) -> dict[str, Optional[str]]:
    """Validated date arguments among fields, keyed by task field name."""
    dates = {}
    for name, argument in DATE_ARGUMENTS.items():
        if name in fields:
            value = getattr(args, name)
            dates[name] = validate_date(value, argument) if value is not None else None
    return dates


def _repeat_from_args(args: Any, fields: set[str]) -> Optional[RepeatConfiguration]:
    if "repeat_after" not in fields and "repeat_mode" not in fields:
        return None
    repeat_after = args.repeat_after
    if repeat_after is None and args.repeat_mode is not None:
        # "repeatMode: week" alone means every week
        repeat_after = 1
    return convert_repeat_configuration(repeat_after, args.repeat_mode)


# Create

@dataclass
class CreationPlan:
    """Validated create request: base payload (without project) plus secondary steps."""
    payload: dict[str, Any]
    label_ids: list[int]
    assignee_ids: list[int]


def plan_creation(args: CreateTaskArgs) -> CreationPlan:
    """Validate a create request without touching the remote service."""
    fields = args.provided_fields()
    title = require_field(args.title, "title", "create", example='{"subcommand": "create", "title": "Buy milk"}')
    if args.project_id is not None:
        validate_id(args.project_id, "projectId")
    dates = _validate_dates(args, fields)
    if args.priority is not None:
        validate_priority(args.priority)
    label_ids = _validate_ids(args.labels, "labels")
    assignee_ids = _validate_ids(args.assignees, "assignees")
    repeat = _repeat_from_args(args, fields)

    payload: dict[str, Any] = {"title": title}
    if args.description is not None:
        payload["description"] = args.description
    if args.priority is not None:
        payload["priority"] = args.priority
    payload.update({name: value for name, value in dates.items() if value is not None})
    if repeat is not None:
        payload.update(repeat.to_payload())
    return CreationPlan(payload=payload, label_ids=label_ids, assignee_ids=assignee_ids)


async def resolve_project(context: ToolContext, project_id: Optional[int]) -> tuple[int, bool]:
    """(project id, whether the default project was used)."""
    if project_id is None:
        project = await find_default_project(context)
        logger.info("Using default project for new task", project_id=project.id, project_title=project.title)
        return project.id, True
    await verify_project_exists(context, project_id)
    return project_id, False


async def create_planned_task(context: ToolContext, plan: CreationPlan, project_id: int) -> MutationState:
    """Base create, then labels and assignees, compensating on failure."""
    payload = {**plan.payload, "project_id": project_id}
    created = await context.call(
        lambda: context.client.create_task(project_id, payload), f"Create task in project {project_id}"
    )
    task_id = created.id
    state = MutationState(task=created, completed=[STEP_CREATE])
    logger.info("Task created", task_id=task_id, project_id=project_id)

    try:
        if plan.label_ids:
            state.attempt(STEP_LABELS)
            await context.call(
                lambda: context.client.set_task_labels(task_id, plan.label_ids),
                f"Add labels to task {task_id}",
                retry=True,
            )
            state.complete(STEP_LABELS)
        if plan.assignee_ids:
            state.attempt(STEP_ASSIGNEES)
            await context.call(
                lambda: context.client.assign_users(task_id, plan.assignee_ids),
                f"Add assignees to task {task_id}",
                retry=True,
            )
            state.complete(STEP_ASSIGNEES)
    except VikunjaToolsError as error:
        raise await _roll_back_creation(context, state, error) from error
    return state


async def create_task(context: ToolContext, args: CreateTaskArgs) -> ToolResponse:
    """Create a task, then apply labels and assignees.

    Everything is validated before the first remote call. The base create is
    the point of no return: if applying labels or assignees fails afterwards,
    the task is deleted again and a PartialFailureError reports whether that
    rollback worked.
    """
    plan = plan_creation(args)
    project_id, used_default_project = await resolve_project(context, args.project_id)
    state = await create_planned_task(context, plan, project_id)

    task = await fetch_task(context, state.task.id)
    return success_response(
        "create-task",
        "Task created successfully",
        {"task": task.to_payload()},
        {
            "project_id": project_id,
            "used_default_project": used_default_project,
            "labels_added": state.was_completed(STEP_LABELS),
            "assignees_added": state.was_completed(STEP_ASSIGNEES),
        },
    )


async def _roll_back_creation(
    context: ToolContext,
    state: MutationState,
    error: VikunjaToolsError,
) -> PartialFailureError:
    """Delete the just-created task (single attempt) and describe what happened."""
    task_id = state.task.id
    rollback_succeeded = False
    try:
        await context.call(lambda: context.client.delete_task(task_id), f"Roll back task {task_id}")
        rollback_succeeded = True
        logger.warning("Rolled back partially created task", task_id=task_id, error_code=error.code)
    except VikunjaToolsError as delete_error:
        logger.error(
            "Failed to roll back partially created task",
            task_id=task_id,
            error_code=delete_error.code,
            error=delete_error.message,
        )

    outcome = (
        "Task was successfully rolled back."
        if rollback_succeeded
        else f"Task rollback also failed - manual cleanup of task {task_id} may be required."
    )
    failed_step = next(step for step in reversed(state.attempted) if not state.was_completed(step))
    return PartialFailureError(
        f"Failed to complete task creation while applying {failed_step}: {error.message}. {outcome}",
        completed_steps=state.completed,
        failed_step=failed_step,
        rollback_succeeded=rollback_succeeded,
        details={
            "task_id": task_id,
            "labels_added": state.was_completed(STEP_LABELS),
            "assignees_added": state.was_completed(STEP_ASSIGNEES),
            "original_error": error.to_dict(),
        },
    )


# Get

async def get_task(context: ToolContext, args: GetTaskArgs) -> ToolResponse:
    """Fetch one task by id."""
    task_id = require_task_id(args.id, "get")
    task = await fetch_task(context, task_id)
    return success_response("get-task", f"Retrieved task {task_id}", {"task": task.to_payload()})


# Update

@dataclass
class UpdatePlan:
    """Validated update request: wire-form field updates and the desired assignees."""
    task_id: int
    updates: dict[str, Any]
    desired_assignees: Optional[list[int]]


def plan_update(args: UpdateTaskArgs) -> UpdatePlan:
    """Validate an update request without touching the remote service."""
    task_id = require_task_id(args.id, "update")
    fields = args.provided_fields() - {"id"}

    if "labels" in fields:
        raise ValidationError(
            'To add or remove labels from a task, use the "apply-label" subcommand instead of "update". '
            f'Example: {{"subcommand": "apply-label", "id": {task_id}, "labels": [1, 2, 3]}}. '
            'For removing labels, use the "remove-label" subcommand.',
            details={"field": "labels", "use": ["apply-label", "remove-label"]},
        )
    if not fields:
        raise ValidationError(
            f'No fields to update. Example: {{"subcommand": "update", "id": {task_id}, "title": "Updated title"}}',
            details={"field": "id"},
        )

    dates = _validate_dates(args, fields)
    if "priority" in fields and args.priority is not None:
        validate_priority(args.priority)
    if "project_id" in fields and args.project_id is not None:
        validate_id(args.project_id, "projectId")
    if "title" in fields:
        require_field(args.title, "title", "update")
    desired_assignees = _validate_ids(args.assignees, "assignees") if "assignees" in fields else None
    repeat = _repeat_from_args(args, fields)

    updates: dict[str, Any] = {name: getattr(args, name) for name in SCALAR_UPDATE_FIELDS if name in fields}
    updates.update(dates)
    if repeat is not None:
        updates.update(repeat.to_payload())
    return UpdatePlan(task_id=task_id, updates=updates, desired_assignees=desired_assignees)


async def update_task(context: ToolContext, args: UpdateTaskArgs) -> ToolResponse:
    """Update scalar fields (and optionally reconcile assignees).

    The remote update replaces the whole object, so the payload is the
    fetched task with the provided fields merged in.
    """
    plan = plan_update(args)
    task_id, updates, desired_assignees = plan.task_id, plan.updates, plan.desired_assignees

    current = await fetch_task(context, task_id)
    state = MutationState(task=current)

    current_payload = current.to_payload()
    affected_fields = [name for name, value in updates.items() if current_payload.get(name) != value]
    previous_state = {name: current_payload.get(name) for name in updates}

    assignee_diff = None
    if desired_assignees is not None:
        assignee_diff = compute_diff(current.assignee_ids(), desired_assignees)
        previous_state["assignees"] = sorted(current.assignee_ids())
        if not assignee_diff.is_empty:
            affected_fields.append("assignees")

    payload = {**current_payload, **updates}
    state.attempt(STEP_UPDATE)
    await context.call(lambda: context.client.update_task(task_id, payload), f"Update task {task_id}")
    state.complete(STEP_UPDATE)

    if assignee_diff is not None and not assignee_diff.is_empty:
        await _reconcile_assignees(context, state, assignee_diff)

    task = await fetch_task(context, task_id)
    logger.info("Task updated", task_id=task_id, affected_fields=affected_fields)
    return success_response(
        "update-task",
        "Task updated successfully",
        {"task": task.to_payload()},
        {"affected_fields": affected_fields, "previous_state": previous_state, "task_id": task_id},
    )


async def _reconcile_assignees(context: ToolContext, state: MutationState, diff: RelationDiff) -> None:
    """Additions first, so the task is never left less assigned than before."""
    task_id = state.task.id

    additions = diff.ordered_additions()
    if additions:
        state.attempt(STEP_ADD_ASSIGNEES)
        try:
            await context.call(
                lambda: context.client.assign_users(task_id, additions),
                f"Add assignees to task {task_id}",
                retry=True,
            )
        except VikunjaToolsError as error:
            error.details.update({"failed_step": STEP_ADD_ASSIGNEES, "completed_steps": list(state.completed)})
            raise
        state.complete(STEP_ADD_ASSIGNEES)

    removed: list[int] = []
    for user_id in diff.ordered_removals():
        step = f"remove_assignee:{user_id}"
        state.attempt(step)
        try:
            await context.call(
                lambda: context.client.unassign_user(task_id, user_id),
                f"Remove assignee {user_id} from task {task_id}",
                retry=True,
            )
        except VikunjaToolsError as error:
            if not additions and not removed:
                error.details.update({"failed_step": step, "completed_steps": list(state.completed)})
                raise
            raise PartialFailureError(
                f"Task {task_id} was updated and its assignees were partially changed, "
                f"but removing assignee {user_id} failed: {error.message}. "
                f"Retry with the same assignees to finish.",
                completed_steps=state.completed,
                failed_step=step,
                details={
                    "task_id": task_id,
                    "assignees_added": additions,
                    "assignees_removed": removed,
                    "original_error": error.to_dict(),
                },
            ) from error
        state.complete(step)
        removed.append(user_id)


# Delete

async def delete_task(context: ToolContext, args: DeleteTaskArgs) -> ToolResponse:
    """Delete a task; a failed pre-fetch only costs the friendlier message."""
    task_id = require_task_id(args.id, "delete")

    title: Optional[str] = None
    try:
        title = (await fetch_task(context, task_id)).title
    except VikunjaToolsError as error:
        logger.info("Pre-delete fetch failed, deleting anyway", task_id=task_id, error_code=error.code)

    already_deleted = False
    try:
        await context.call(lambda: context.client.delete_task(task_id), f"Delete task {task_id}")
    except NotFoundError:
        already_deleted = True
        logger.info("Task already deleted", task_id=task_id)

    data: dict[str, Any] = {"deleted_task_id": task_id}
    if title is not None:
        data["title"] = title
        message = f'Task "{title}" (ID {task_id}) deleted successfully'
    else:
        message = f"Task {task_id} deleted successfully"
    return success_response("delete-task", message, data, {"already_deleted": already_deleted})
