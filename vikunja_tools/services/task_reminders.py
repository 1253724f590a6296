"""Add, remove and list task reminders.

Vikunja stores reminders inside the task and gives them no identifiers of
their own, so a reminder is addressed by its position (starting at 1) in
the list returned by list-reminders. Changes go through the full-object
task update.
"""

from typing import Any

from vikunja_tools.models.operations import AddReminderArgs, ListRemindersArgs, RemoveReminderArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Reminder, Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.task_service import fetch_task, require_task_id
from vikunja_tools.services.validation import require_field, validate_date, validate_id
from vikunja_tools.utils.dates import WIRE_DATE_EXAMPLE
from vikunja_tools.utils.errors import NotFoundError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)


def reminder_entries(task: Task) -> list[dict[str, Any]]:
    """Reminders as returned to callers, each with its positional id."""
    return [
        {"id": position, **reminder.model_dump(mode="json")}
        for position, reminder in enumerate(task.reminders, start=1)
    ]


def _reminders_response(operation: str, message: str, task: Task, **metadata: Any) -> ToolResponse:
    entries = reminder_entries(task)
    return success_response(
        operation,
        message,
        {"task_id": task.id, "reminders": entries},
        {"task_id": task.id, "count": len(entries), **metadata},
    )


async def _save_reminders(context: ToolContext, task: Task, reminders: list[Reminder]) -> Task:
    payload = {**task.to_payload(), "reminders": [reminder.model_dump(mode="json") for reminder in reminders]}
    await context.call(
        lambda: context.client.update_task(task.id, payload), f"Update reminders of task {task.id}"
    )
    return await fetch_task(context, task.id)


async def add_reminder(context: ToolContext, args: AddReminderArgs) -> ToolResponse:
    """Add an absolute reminder; an identical one already present is left alone."""
    task_id = require_task_id(args.id, "add-reminder")
    example = f'{{"subcommand": "add-reminder", "id": {task_id}, "reminderDate": "{WIRE_DATE_EXAMPLE}"}}'
    require_field(args.reminder_date, "reminderDate", "add-reminder", example=example)
    reminder_date = validate_date(args.reminder_date, "reminderDate")
    reminder = Reminder(reminder=reminder_date)

    task = await fetch_task(context, task_id)
    if any(existing.reminder == reminder.reminder for existing in task.reminders):
        return _reminders_response(
            "add-reminder",
            f"Task {task_id} already has a reminder at {reminder_date}",
            task,
            affected_fields=[],
        )

    task = await _save_reminders(context, task, [*task.reminders, reminder])
    logger.info("Reminder added", task_id=task_id, reminder=reminder_date)
    return _reminders_response(
        "add-reminder",
        f"Reminder added to task {task_id} for {reminder_date}",
        task,
        affected_fields=["reminders"],
    )


async def remove_reminder(context: ToolContext, args: RemoveReminderArgs) -> ToolResponse:
    """Remove the reminder at the given list-reminders position."""
    task_id = require_task_id(args.id, "remove-reminder")
    require_field(
        args.reminder_id,
        "reminderId",
        "remove-reminder",
        example=f'{{"subcommand": "remove-reminder", "id": {task_id}, "reminderId": 1}}',
    )
    position = validate_id(args.reminder_id, "reminderId")

    task = await fetch_task(context, task_id)
    if position > len(task.reminders):
        raise NotFoundError(
            f"Reminder {position} not found on task {task_id}, which has {len(task.reminders)} reminder(s). "
            "Use list-reminders to see them.",
            details={"task_id": task_id, "reminder_id": position},
        )

    removed = reminder_entries(task)[position - 1]
    remaining = [reminder for index, reminder in enumerate(task.reminders, start=1) if index != position]
    task = await _save_reminders(context, task, remaining)
    logger.info("Reminder removed", task_id=task_id, reminder_id=position)
    return _reminders_response(
        "remove-reminder",
        f"Reminder {position} removed from task {task_id}",
        task,
        affected_fields=["reminders"],
        removed_reminder=removed,
    )


async def list_reminders(context: ToolContext, args: ListRemindersArgs) -> ToolResponse:
    """Reminders of a task, numbered for remove-reminder."""
    task_id = require_task_id(args.id, "list-reminders")
    task = await fetch_task(context, task_id)
    return _reminders_response("list-reminders", f"Task {task_id} has {len(task.reminders)} reminder(s)", task)
