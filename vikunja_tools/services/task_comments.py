"""Task comments: one subcommand that adds when text is given and lists otherwise."""

from vikunja_tools.models.operations import CommentTaskArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.task_service import require_task_id
from vikunja_tools.services.validation import require_field
from vikunja_tools.utils.errors import NotFoundError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)


def _task_not_found(task_id: int) -> NotFoundError:
    return NotFoundError(f"Task with ID {task_id} not found", details={"task_id": task_id})


async def comment(context: ToolContext, args: CommentTaskArgs) -> ToolResponse:
    """Add a comment to a task, or list its comments when no text is given."""
    task_id = require_task_id(args.id, "comment")

    if args.comment is None:
        try:
            comments = await context.call(
                lambda: context.client.get_task_comments(task_id), f"List comments of task {task_id}"
            )
        except NotFoundError as e:
            raise _task_not_found(task_id) from e
        return success_response(
            "list-comments",
            f"Task {task_id} has {len(comments)} comment(s)",
            {"task_id": task_id, "comments": [item.model_dump(mode="json") for item in comments]},
            {"task_id": task_id, "count": len(comments)},
        )

    text = require_field(
        args.comment,
        "comment",
        "comment",
        example=f'{{"subcommand": "comment", "id": {task_id}, "comment": "Waiting on the invoice"}}',
    ).strip()
    try:
        created = await context.call(
            lambda: context.client.create_task_comment(task_id, text), f"Comment on task {task_id}"
        )
    except NotFoundError as e:
        raise _task_not_found(task_id) from e

    logger.info("Comment added", task_id=task_id, comment_id=created.id)
    return success_response(
        "add-comment",
        f"Comment added to task {task_id}",
        {"task_id": task_id, "comment": created.model_dump(mode="json")},
        {"task_id": task_id, "comment_id": created.id},
    )
