"""Assign/unassign/list users on a single task."""

from typing import Union

from vikunja_tools.models.operations import AssignUsersArgs, ListAssigneesArgs, UnassignUsersArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.diff_engine import compute_diff
from vikunja_tools.services.task_service import fetch_task, require_task_id
from vikunja_tools.services.validation import require_field, validate_id
from vikunja_tools.utils.errors import PartialFailureError, ValidationError, VikunjaToolsError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)


def _requested_users(args: Union[AssignUsersArgs, UnassignUsersArgs], task_id: int) -> list[int]:
    example = f'{{"subcommand": "{args.subcommand}", "id": {task_id}, "assignees": [7]}}'
    require_field(args.assignees, "assignees", args.subcommand, example=example)
    if not args.assignees:
        raise ValidationError(
            f"assignees must contain at least one user ID. Example: {example}",
            details={"field": "assignees"},
        )
    return [validate_id(user_id, "assignees") for user_id in args.assignees]


def _assignees_payload(task: Task) -> dict:
    return {"task": task.to_payload(), "assignees": [user.model_dump() for user in task.assignees]}


async def assign_users(context: ToolContext, args: AssignUsersArgs) -> ToolResponse:
    """Assign users to a task, adding only those not already assigned."""
    task_id = require_task_id(args.id, "assign")
    requested = _requested_users(args, task_id)

    task = await fetch_task(context, task_id)
    current = task.assignee_ids()
    diff = compute_diff(current, current | set(requested))
    additions = diff.ordered_additions()

    if additions:
        await context.call(
            lambda: context.client.assign_users(task_id, additions),
            f"Add assignees to task {task_id}",
            retry=True,
        )
        task = await fetch_task(context, task_id)
        logger.info("Users assigned", task_id=task_id, assignees_added=additions)

    return success_response(
        "assign",
        f"Assigned {len(additions)} user(s) to task {task_id}",
        _assignees_payload(task),
        {
            "task_id": task_id,
            "assignees_added": additions,
            "already_assigned": sorted(set(requested) & current),
        },
    )


async def unassign_users(context: ToolContext, args: UnassignUsersArgs) -> ToolResponse:
    """Remove users from a task one at a time."""
    task_id = require_task_id(args.id, "unassign")
    requested = _requested_users(args, task_id)

    task = await fetch_task(context, task_id)
    current = task.assignee_ids()
    diff = compute_diff(current, current - set(requested))

    removed: list[int] = []
    for user_id in diff.ordered_removals():
        try:
            await context.call(
                lambda: context.client.unassign_user(task_id, user_id),
                f"Remove assignee {user_id} from task {task_id}",
                retry=True,
            )
        except VikunjaToolsError as error:
            if not removed:
                raise
            raise PartialFailureError(
                f"Removed assignees {removed} from task {task_id}, but removing user {user_id} failed: "
                f"{error.message}",
                completed_steps=[f"remove_assignee:{done}" for done in removed],
                failed_step=f"remove_assignee:{user_id}",
                details={"task_id": task_id, "assignees_removed": removed, "original_error": error.to_dict()},
            ) from error
        removed.append(user_id)

    if removed:
        task = await fetch_task(context, task_id)
        logger.info("Users unassigned", task_id=task_id, assignees_removed=removed)

    return success_response(
        "unassign",
        f"Removed {len(removed)} user(s) from task {task_id}",
        _assignees_payload(task),
        {
            "task_id": task_id,
            "assignees_removed": removed,
            "not_assigned": sorted(set(requested) - current),
        },
    )


async def list_assignees(context: ToolContext, args: ListAssigneesArgs) -> ToolResponse:
    """Return the users assigned to a task."""
    task_id = require_task_id(args.id, "list-assignees")
    task = await fetch_task(context, task_id)
    return success_response(
        "list-assignees",
        f"Task {task_id} has {len(task.assignees)} assignee(s)",
        _assignees_payload(task),
        {"task_id": task_id, "count": len(task.assignees)},
    )
