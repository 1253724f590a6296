"""Relate, unrelate and list task relations.

`id` is always the source (owner) of a relation and `otherTaskId` the target;
for directional kinds such as subtask/parenttask the order matters.
"""

from typing import Any, Union

from vikunja_tools.models.operations import ListRelationsArgs, RelateTasksArgs, UnrelateTasksArgs
from vikunja_tools.models.relation import Relation
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.task_service import fetch_task, require_task_id
from vikunja_tools.services.validation import require_field, validate_id, validate_relation_kind
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)


def _validated_relation(args: Union[RelateTasksArgs, UnrelateTasksArgs]) -> Relation:
    operation = args.subcommand
    task_id = require_task_id(args.id, operation)
    example = f'{{"subcommand": "{operation}", "id": {task_id}, "otherTaskId": 456, "relationKind": "subtask"}}'
    require_field(args.other_task_id, "otherTaskId", operation, example=example)
    other_task_id = validate_id(args.other_task_id, "otherTaskId")
    require_field(args.relation_kind, "relationKind", operation, example=example)
    kind = validate_relation_kind(args.relation_kind)
    if other_task_id == task_id:
        raise ValidationError(
            f"A task cannot be related to itself (id and otherTaskId are both {task_id})",
            details={"field": "otherTaskId", "value": other_task_id},
        )
    return Relation(task_id=task_id, other_task_id=other_task_id, relation_kind=kind)


def flatten_relations(task: Task) -> list[dict[str, Any]]:
    """One entry per (kind, target), sorted for stable output."""
    flat = [
        {
            "relation_kind": kind,
            "other_task_id": target.id,
            "title": target.title,
            "done": target.done,
        }
        for kind, targets in task.related_tasks.items()
        for target in targets
    ]
    return sorted(flat, key=lambda entry: (entry["relation_kind"], entry["other_task_id"]))


def _relations_response(operation: str, message: str, task: Task, **metadata: Any) -> ToolResponse:
    return success_response(
        operation,
        message,
        {
            "task": task.to_payload(),
            "related_tasks": {kind: [t.model_dump() for t in targets] for kind, targets in task.related_tasks.items()},
            "relations": flatten_relations(task),
        },
        {"task_id": task.id, "relation_count": task.relation_count(), **metadata},
    )


async def relate(context: ToolContext, args: RelateTasksArgs) -> ToolResponse:
    """Create a typed relation from task id to otherTaskId."""
    relation = _validated_relation(args)
    kind = relation.relation_kind
    try:
        await context.call(
            lambda: context.client.create_task_relation(relation.task_id, relation.other_task_id, kind),
            f"Relate task {relation.task_id} to {relation.other_task_id}",
        )
    except NotFoundError as e:
        raise NotFoundError(
            f"Task with ID {relation.task_id} or {relation.other_task_id} not found",
            details={"task_id": relation.task_id, "other_task_id": relation.other_task_id},
        ) from e

    logger.info(
        "Relation created",
        task_id=relation.task_id,
        other_task_id=relation.other_task_id,
        relation_kind=kind.value,
    )
    task = await fetch_task(context, relation.task_id)
    return _relations_response(
        "relate",
        f"Task {relation.task_id} is now '{kind.value}' of task {relation.other_task_id}",
        task,
        relation=relation.model_dump(mode="json"),
    )


async def unrelate(context: ToolContext, args: UnrelateTasksArgs) -> ToolResponse:
    """Delete a typed relation from task id to otherTaskId."""
    relation = _validated_relation(args)
    kind = relation.relation_kind
    try:
        await context.call(
            lambda: context.client.delete_task_relation(relation.task_id, kind, relation.other_task_id),
            f"Remove relation between task {relation.task_id} and {relation.other_task_id}",
        )
    except NotFoundError as e:
        raise NotFoundError(
            f"No '{kind.value}' relation from task {relation.task_id} to task {relation.other_task_id}",
            details={"task_id": relation.task_id, "other_task_id": relation.other_task_id, "relation_kind": kind.value},
        ) from e

    logger.info(
        "Relation removed",
        task_id=relation.task_id,
        other_task_id=relation.other_task_id,
        relation_kind=kind.value,
    )
    task = await fetch_task(context, relation.task_id)
    return _relations_response(
        "unrelate",
        f"Removed '{kind.value}' relation from task {relation.task_id} to task {relation.other_task_id}",
        task,
        relation=relation.model_dump(mode="json"),
    )


async def list_relations(context: ToolContext, args: ListRelationsArgs) -> ToolResponse:
    """Return the relations of a task, grouped by kind and flattened."""
    task_id = require_task_id(args.id, "relations")
    task = await fetch_task(context, task_id)
    count = task.relation_count()
    return _relations_response("relations", f"Task {task_id} has {count} relation(s)", task)
