"""Label list/get/create/update/delete."""

from typing import Any

from vikunja_tools.models.operations import CreateLabelArgs, DeleteLabelArgs, GetLabelArgs, ListLabelsArgs, UpdateLabelArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Label
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.validation import require_field, validate_hex_color, validate_id
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

LABEL_FIELDS = ("title", "description", "hex_color")


def _require_label_id(value: Any, operation: str) -> int:
    require_field(value, "id", operation, example=f'{{"subcommand": "{operation}", "id": 123}}')
    return validate_id(value, "id")


async def _fetch_label(context: ToolContext, label_id: int) -> Label:
    try:
        return await context.call(lambda: context.client.get_label(label_id), f"Get label {label_id}")
    except NotFoundError as e:
        raise NotFoundError(f"Label with ID {label_id} not found", details={"label_id": label_id}) from e


async def list_labels(context: ToolContext, args: ListLabelsArgs) -> ToolResponse:
    """List labels, optionally narrowed by a search term."""
    params = {
        "page": args.page,
        "per_page": args.per_page or VikunjaConfig.DEFAULT_PAGE_SIZE,
        "s": args.search,
    }
    labels = await context.call(lambda: context.client.get_labels(params), "List labels")
    return success_response(
        "list-labels",
        f"Retrieved {len(labels)} label{'s' if len(labels) != 1 else ''}",
        {"labels": [label.model_dump() for label in labels]},
        {"count": len(labels), "page": args.page, "search": args.search},
    )


async def get_label(context: ToolContext, args: GetLabelArgs) -> ToolResponse:
    """Fetch one label by id."""
    label_id = _require_label_id(args.id, "get")
    label = await _fetch_label(context, label_id)
    return success_response("get-label", f'Retrieved label "{label.title}"', {"label": label.model_dump()})


async def create_label(context: ToolContext, args: CreateLabelArgs) -> ToolResponse:
    """Create a label; title is required, hexColor is normalized."""
    title = require_field(
        args.title, "title", "create", example='{"subcommand": "create", "title": "Urgent", "hexColor": "#FF5733"}'
    )
    payload: dict[str, Any] = {"title": title}
    if args.description is not None:
        payload["description"] = args.description
    if args.hex_color is not None:
        payload["hex_color"] = validate_hex_color(args.hex_color)

    label = await context.call(lambda: context.client.create_label(payload), "Create label")
    logger.info("Label created", label_id=label.id)
    return success_response(
        "create-label",
        f'Label "{label.title}" created successfully',
        {"label": label.model_dump()},
        {"affected_fields": list(payload)},
    )


async def update_label(context: ToolContext, args: UpdateLabelArgs) -> ToolResponse:
    """Labels are replaced as a whole remotely; omitted fields keep their value."""
    label_id = _require_label_id(args.id, "update")
    updates = {name: getattr(args, name) for name in LABEL_FIELDS if name in args.provided_fields()}
    if not updates:
        raise ValidationError(
            "At least one field to update is required: title, description or hexColor. "
            f'Example: {{"subcommand": "update", "id": {label_id}, "title": "Updated Title"}}',
            details={"field": "title"},
        )
    if "title" in updates:
        require_field(updates["title"], "title", "update")
    if updates.get("hex_color") is not None:
        updates["hex_color"] = validate_hex_color(updates["hex_color"])

    current = await _fetch_label(context, label_id)
    payload = {**current.model_dump(), **updates}
    label = await context.call(lambda: context.client.update_label(label_id, payload), f"Update label {label_id}")
    return success_response(
        "update-label",
        f'Label "{label.title}" updated successfully',
        {"label": label.model_dump()},
        {"affected_fields": [name for name, value in updates.items() if getattr(current, name) != value]},
    )


async def delete_label(context: ToolContext, args: DeleteLabelArgs) -> ToolResponse:
    """Delete a label by id."""
    label_id = _require_label_id(args.id, "delete")
    try:
        await context.call(lambda: context.client.delete_label(label_id), f"Delete label {label_id}")
    except NotFoundError as e:
        raise NotFoundError(f"Label with ID {label_id} not found", details={"label_id": label_id}) from e
    logger.info("Label deleted", label_id=label_id)
    return success_response("delete-label", f"Label {label_id} deleted successfully", {"deleted_label_id": label_id})
