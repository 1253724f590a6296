"""Apply/remove/list labels on a single task.

The remote label primitive replaces the whole set, so both directions
compute the desired set and issue one bulk call.
"""

from typing import Union

from vikunja_tools.models.operations import ApplyLabelArgs, ListTaskLabelsArgs, RemoveLabelArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.diff_engine import RelationDiff, compute_diff
from vikunja_tools.services.task_service import fetch_task, require_task_id
from vikunja_tools.services.validation import require_field, validate_id
from vikunja_tools.utils.errors import ValidationError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)


def _requested_labels(args: Union[ApplyLabelArgs, RemoveLabelArgs], task_id: int) -> list[int]:
    example = f'{{"subcommand": "{args.subcommand}", "id": {task_id}, "labels": [1, 2]}}'
    require_field(args.labels, "labels", args.subcommand, example=example)
    if not args.labels:
        raise ValidationError(
            f"labels must contain at least one label ID. Example: {example}",
            details={"field": "labels"},
        )
    return [validate_id(label_id, "labels") for label_id in args.labels]


async def _replace_labels(context: ToolContext, task: Task, diff: RelationDiff) -> Task:
    if diff.is_empty:
        return task
    desired = sorted(diff.apply(task.label_ids()))
    await context.call(
        lambda: context.client.set_task_labels(task.id, desired),
        f"Set labels on task {task.id}",
        retry=True,
    )
    return await fetch_task(context, task.id)


def _labels_payload(task: Task) -> dict:
    return {"task": task.to_payload(), "labels": [label.model_dump() for label in task.labels]}


async def apply_labels(context: ToolContext, args: ApplyLabelArgs) -> ToolResponse:
    """Add labels to a task with a single wholesale set call."""
    task_id = require_task_id(args.id, "apply-label")
    requested = _requested_labels(args, task_id)

    task = await fetch_task(context, task_id)
    current = task.label_ids()
    diff = compute_diff(current, current | set(requested))
    task = await _replace_labels(context, task, diff)

    logger.info("Labels applied", task_id=task_id, labels_added=diff.ordered_additions())
    return success_response(
        "apply-label",
        f"Applied {len(diff.to_add)} label(s) to task {task_id}",
        _labels_payload(task),
        {
            "task_id": task_id,
            "labels_added": diff.ordered_additions(),
            "already_present": sorted(set(requested) & current),
        },
    )


async def remove_labels(context: ToolContext, args: RemoveLabelArgs) -> ToolResponse:
    """Remove labels from a task with a single wholesale set call."""
    task_id = require_task_id(args.id, "remove-label")
    requested = _requested_labels(args, task_id)

    task = await fetch_task(context, task_id)
    current = task.label_ids()
    diff = compute_diff(current, current - set(requested))
    task = await _replace_labels(context, task, diff)

    logger.info("Labels removed", task_id=task_id, labels_removed=diff.ordered_removals())
    return success_response(
        "remove-label",
        f"Removed {len(diff.to_remove)} label(s) from task {task_id}",
        _labels_payload(task),
        {
            "task_id": task_id,
            "labels_removed": diff.ordered_removals(),
            "not_present": sorted(set(requested) - current),
        },
    )


async def list_task_labels(context: ToolContext, args: ListTaskLabelsArgs) -> ToolResponse:
    """Return the labels attached to a task."""
    task_id = require_task_id(args.id, "list-labels")
    task = await fetch_task(context, task_id)
    return success_response(
        "list-labels",
        f"Task {task_id} has {len(task.labels)} label(s)",
        _labels_payload(task),
        {"task_id": task_id, "count": len(task.labels)},
    )
