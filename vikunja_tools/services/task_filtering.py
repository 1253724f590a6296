"""Task listing with server-side filtering and a client-side fallback.

Evaluation paths:
    server           the remote service applied the filter (authoritative)
    client_fallback  the remote service rejected the filter; it was applied
                     locally to an unfiltered fetch of the same page
    client           applied locally without asking the server, because the
                     expression uses fields the server cannot filter on

An expression the local grammar cannot parse is still offered to the server;
its FilterSyntaxError is raised only if the server rejects it too.

Connectivity and authentication failures always propagate; they are never
taken as a rejected filter.
"""

from typing import Any, Optional

from vikunja_tools.models.filtering import EvaluationPath, FilterMetadata, FilterRequest, FilterResult
from vikunja_tools.models.operations import ListTasksArgs
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.models.task import Task
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.filter_expression import FIELD_ALIASES, FilterExpression, parse_filter
from vikunja_tools.services.validation import validate_id
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import (
    AuthenticationError,
    ConnectivityError,
    FilterSyntaxError,
    NotFoundError,
    ValidationError,
    VikunjaToolsError,
)
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

SORTABLE_FIELDS = {"id": "id", **FIELD_ALIASES}
UNSORTABLE = {"assignees", "labels"}

PATH_SUFFIXES = {
    EvaluationPath.SERVER: " (filtered server-side)",
    EvaluationPath.CLIENT_FALLBACK: " (filtered client-side - server-side fallback)",
    EvaluationPath.CLIENT: " (filtered client-side)",
}


def parse_sort(sort: Optional[str]) -> list[tuple[str, bool]]:
    """'dueDate:desc, priority' -> [("due_date", True), ("priority", False)]."""
    if not sort:
        return []
    keys = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, direction = part.partition(":")
        attribute = SORTABLE_FIELDS.get(name.strip().lower())
        direction = direction.strip().lower() or "asc"
        if attribute is None or attribute in UNSORTABLE or direction not in ("asc", "desc"):
            raise ValidationError(
                f"Invalid sort {part!r}. Use field or field:desc, comma separated. Example: sort='dueDate:desc,priority'",
                details={"field": "sort", "value": sort},
            )
        keys.append((attribute, direction == "desc"))
    return keys


def sort_tasks(tasks: list[Task], keys: list[tuple[str, bool]]) -> list[Task]:
    """Stable multi-key sort; tasks missing a value go last for that key."""
    for name, descending in reversed(keys):
        present = [task for task in tasks if getattr(task, name) is not None]
        missing = [task for task in tasks if getattr(task, name) is None]
        present.sort(key=lambda task: getattr(task, name), reverse=descending)
        tasks = present + missing
    return tasks


def _positive(value: Optional[int], field_name: str) -> Optional[int]:
    return validate_id(value, field_name) if value is not None else None


async def build_request(context: ToolContext, args: ListTasksArgs) -> FilterRequest:
    """Validate the listing arguments and resolve a saved filter into an expression."""
    if args.filter is not None and args.filter_id is not None:
        raise ValidationError(
            "Provide either filter or filterId, not both. Example: filter='done = false && priority >= 3'",
            details={"field": "filterId"},
        )
    page = _positive(args.page, "page")
    per_page = _positive(args.per_page, "perPage") or VikunjaConfig.DEFAULT_PAGE_SIZE
    project_id = _positive(args.project_id, "projectId")

    expression = args.filter
    if args.filter_id is not None:
        saved = await context.saved_filters.get(args.filter_id)
        if saved is None:
            raise NotFoundError(
                f"Saved filter '{args.filter_id}' not found",
                details={"field": "filterId", "filter_id": args.filter_id},
            )
        expression = saved.filter
        project_id = project_id or saved.project_id

    if args.done is not None:
        done_clause = f"done = {str(args.done).lower()}"
        expression = f"({expression}) && {done_clause}" if expression else done_clause

    return FilterRequest(
        filter=expression,
        filter_id=args.filter_id,
        project_id=project_id,
        page=page,
        per_page=per_page,
        sort=args.sort,
        search=args.search,
    )


async def _fetch(context: ToolContext, request: FilterRequest, extra: dict[str, Any]) -> list[Task]:
    params: dict[str, Any] = {"page": request.page, "per_page": request.per_page, "s": request.search, **extra}
    if request.project_id is not None:
        return await context.call(
            lambda: context.client.list_project_tasks(request.project_id, params),
            f"List tasks in project {request.project_id}",
        )
    return await context.call(lambda: context.client.list_tasks(params), "List tasks")


def _server_sort_params(keys: list[tuple[str, bool]]) -> dict[str, Any]:
    if not keys:
        return {}
    return {
        "sort_by": [name for name, _ in keys],
        "order_by": ["desc" if descending else "asc" for _, descending in keys],
    }


async def filter_tasks(context: ToolContext, request: FilterRequest) -> FilterResult:
    """Run the request along the appropriate evaluation path."""
    sort_keys = parse_sort(request.sort)
    expression: Optional[FilterExpression] = None
    syntax_error: Optional[FilterSyntaxError] = None
    if request.filter:
        try:
            expression = parse_filter(request.filter)
        except FilterSyntaxError as error:
            # the server may still understand fields and operators we cannot evaluate
            syntax_error = error
    metadata = FilterMetadata(
        filter=request.filter,
        filter_id=request.filter_id,
        page=request.page,
        per_page=request.per_page,
    )

    if expression is None and syntax_error is None:
        tasks = await _fetch(context, request, _server_sort_params(sort_keys))
        return FilterResult(tasks=tasks, metadata=metadata)

    if expression is not None and expression.requires_client_side:
        tasks = await _fetch(context, request, {})
        metadata.evaluation_path = EvaluationPath.CLIENT
        metadata.results_complete = False
        return FilterResult(tasks=sort_tasks(expression.apply(tasks), sort_keys), metadata=metadata)

    metadata.server_side_filtering_attempted = True
    try:
        tasks = await _fetch(context, request, {"filter": request.filter, **_server_sort_params(sort_keys)})
    except (ConnectivityError, AuthenticationError):
        raise
    except VikunjaToolsError as error:
        if syntax_error is not None:
            logger.warning(
                "Server-side filter rejected and not evaluable client-side",
                filter=request.filter,
                error_code=error.code,
            )
            raise syntax_error from error
        logger.warning(
            "Server-side filter rejected, evaluating client-side",
            filter=request.filter,
            error_code=error.code,
            error=error.message,
        )
        tasks = await _fetch(context, request, {})
        metadata.evaluation_path = EvaluationPath.CLIENT_FALLBACK
        metadata.results_complete = False
        metadata.fallback_reason = error.message
        return FilterResult(tasks=sort_tasks(expression.apply(tasks), sort_keys), metadata=metadata)

    metadata.evaluation_path = EvaluationPath.SERVER
    metadata.server_side_filtering_used = True
    return FilterResult(tasks=tasks, metadata=metadata)


async def list_tasks(context: ToolContext, args: ListTasksArgs) -> ToolResponse:
    """List tasks, filtered server-side when possible and client-side otherwise."""
    request = await build_request(context, args)
    result = await filter_tasks(context, request)

    count = len(result.tasks)
    path = result.metadata.evaluation_path
    message = f"Found {count} task{'s' if count != 1 else ''}" + (PATH_SUFFIXES[path] if path else "")
    logger.info(
        "Tasks listed",
        count=count,
        evaluation_path=path.value if path else None,
        project_id=request.project_id,
    )
    return success_response(
        "list-tasks",
        message,
        {"tasks": [task.to_payload() for task in result.tasks]},
        {**result.metadata.model_dump(mode="json"), "count": count, "sort": request.sort},
    )
