"""Project hierarchy: children, tree, breadcrumb and move.

Vikunja links a project to its parent through parent_project_id, where 0
(or no value) means top level. Nothing stops the stored links from
forming a loop, so every walk here tracks the projects it has seen.
"""

from typing import Any, Optional

from vikunja_tools.models.operations import (
    GetProjectBreadcrumbArgs,
    GetProjectChildrenArgs,
    GetProjectTreeArgs,
    MoveProjectArgs,
)
from vikunja_tools.models.project import Project
from vikunja_tools.models.responses import ToolResponse
from vikunja_tools.services.context import ToolContext
from vikunja_tools.services.project_service import _fetch_project, _replace_project, _require_project_id
from vikunja_tools.services.validation import validate_id
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from vikunja_tools.utils.logging import get_structured_logger
from vikunja_tools.utils.responses import success_response

logger = get_structured_logger(__name__)

DEFAULT_TREE_DEPTH = 10
MAX_TREE_DEPTH = 20
MAX_BREADCRUMB_DEPTH = 20
MAX_PROJECT_PAGES = 100


def parent_of(project: Project) -> Optional[int]:
    """Parent id, or None for a top-level project."""
    return project.parent_project_id or None


async def _all_projects(context: ToolContext, include_archived: bool) -> list[Project]:
    per_page = VikunjaConfig.DEFAULT_PAGE_SIZE
    projects: list[Project] = []
    for page in range(1, MAX_PROJECT_PAGES + 1):
        params = {"page": page, "per_page": per_page, "is_archived": "true" if include_archived else None}
        batch = await context.call(lambda: context.client.get_projects(params), f"List projects (page {page})")
        projects.extend(batch)
        if len(batch) < per_page:
            break
    else:
        logger.warning("Stopped paging projects", pages=MAX_PROJECT_PAGES, count=len(projects))

    unique: dict[int, Project] = {}
    for project in projects:
        unique.setdefault(project.id, project)
    return list(unique.values())


def _children_index(projects: list[Project]) -> dict[Optional[int], list[Project]]:
    index: dict[Optional[int], list[Project]] = {}
    for project in projects:
        index.setdefault(parent_of(project), []).append(project)
    return index


async def get_children(context: ToolContext, args: GetProjectChildrenArgs) -> ToolResponse:
    """Direct children of a project."""
    project_id = _require_project_id(args.id, "get-children")
    parent = await _fetch_project(context, project_id)
    projects = await _all_projects(context, args.include_archived)
    children = [project for project in projects if parent_of(project) == project_id]
    return success_response(
        "get-children",
        f'Project "{parent.title}" has {len(children)} child project(s)',
        {"project_id": project_id, "children": [child.model_dump() for child in children]},
        {"count": len(children), "include_archived": args.include_archived},
    )


async def get_tree(context: ToolContext, args: GetProjectTreeArgs) -> ToolResponse:
    """Nested project tree, the whole forest unless a root id is given.

    maxDepth counts levels including the root (default 10, at most 20).
    Deeper projects are left out and reported through metadata.truncated.
    """
    max_depth = DEFAULT_TREE_DEPTH if args.max_depth is None else args.max_depth
    if isinstance(max_depth, bool) or not 1 <= max_depth <= MAX_TREE_DEPTH:
        raise ValidationError(
            f"maxDepth must be an integer between 1 and {MAX_TREE_DEPTH}. Example: maxDepth=3. "
            f"Received: {max_depth!r}",
            details={"field": "maxDepth", "value": repr(max_depth)},
        )

    roots: list[Project]
    if args.id is not None:
        root_id = validate_id(args.id, "id")
        roots = [await _fetch_project(context, root_id)]
    else:
        root_id = None
    projects = await _all_projects(context, args.include_archived)
    index = _children_index(projects)
    if root_id is None:
        known = {project.id for project in projects}
        # orphans whose parent is not visible are shown at the top level
        roots = [project for project in projects if parent_of(project) is None or parent_of(project) not in known]

    visited: set[int] = set()
    truncated = False

    def build(project: Project, depth: int) -> dict[str, Any]:
        nonlocal truncated
        visited.add(project.id)
        node: dict[str, Any] = {**project.model_dump(), "depth": depth, "children": []}
        for child in index.get(project.id, []):
            if child.id in visited:
                continue
            if depth + 1 > max_depth:
                truncated = True
                continue
            node["children"].append(build(child, depth + 1))
        return node

    tree = [build(root, 1) for root in roots if root.id not in visited]
    if root_id is None:
        # projects only reachable through a parent loop
        tree.extend(build(project, 1) for project in projects if project.id not in visited)
    return success_response(
        "get-tree",
        f"Retrieved project tree with {len(visited)} project(s)",
        {"tree": tree},
        {
            "root_id": root_id,
            "total_nodes": len(visited),
            "max_depth": max_depth,
            "truncated": truncated,
            "include_archived": args.include_archived,
        },
    )


async def get_breadcrumb(context: ToolContext, args: GetProjectBreadcrumbArgs) -> ToolResponse:
    """Path from the top-level ancestor down to the project."""
    project_id = _require_project_id(args.id, "get-breadcrumb")
    path = [await _fetch_project(context, project_id)]
    seen = {project_id}

    parent_id = parent_of(path[0])
    while parent_id is not None and parent_id not in seen and len(path) < MAX_BREADCRUMB_DEPTH:
        parent = await _fetch_project(context, parent_id)
        path.append(parent)
        seen.add(parent_id)
        parent_id = parent_of(parent)
    if parent_id is not None:
        logger.warning("Breadcrumb walk stopped early", project_id=project_id, next_parent_id=parent_id)

    path.reverse()
    return success_response(
        "get-breadcrumb",
        " > ".join(project.title for project in path),
        {"breadcrumb": [project.model_dump() for project in path]},
        {"depth": len(path), "complete": parent_id is None},
    )


async def move_project(context: ToolContext, args: MoveProjectArgs) -> ToolResponse:
    """Re-parent a project; no parent (or 0) means the top level."""
    project_id = _require_project_id(args.id, "move")
    new_parent_id = args.parent_project_id or None
    if new_parent_id is not None:
        validate_id(new_parent_id, "parentProjectId")
        if new_parent_id == project_id:
            raise ValidationError(
                "A project cannot be its own parent. Omit parentProjectId to move it to the top level.",
                details={"field": "parentProjectId", "value": new_parent_id},
            )

    current = await _fetch_project(context, project_id)
    previous_parent_id = parent_of(current)
    if previous_parent_id == new_parent_id:
        where = f"under project {new_parent_id}" if new_parent_id else "at the top level"
        return success_response(
            "move-project",
            f'Project "{current.title}" is already {where}',
            {"project": current.model_dump()},
            {"affected_fields": [], "previous_parent_project_id": previous_parent_id},
        )

    if new_parent_id is not None:
        try:
            await context.call(
                lambda: context.client.get_project(new_parent_id), f"Get project {new_parent_id}"
            )
        except NotFoundError as e:
            raise NotFoundError(
                f"Parent project with ID {new_parent_id} not found",
                details={"field": "parentProjectId", "project_id": new_parent_id},
            ) from e
        descendants = _descendant_ids(project_id, await _all_projects(context, include_archived=True))
        if new_parent_id in descendants:
            raise ValidationError(
                f"Cannot move project {project_id} under project {new_parent_id}: "
                f"project {new_parent_id} is one of its descendants",
                details={"field": "parentProjectId", "value": new_parent_id},
            )

    project = await _replace_project(context, current, {"parent_project_id": new_parent_id or 0})
    logger.info("Project moved", project_id=project_id, parent_project_id=new_parent_id)
    where = f"under project {new_parent_id}" if new_parent_id else "to the top level"
    return success_response(
        "move-project",
        f'Project "{project.title}" moved {where}',
        {"project": project.model_dump()},
        {"affected_fields": ["parent_project_id"], "previous_parent_project_id": previous_parent_id},
    )


def _descendant_ids(project_id: int, projects: list[Project]) -> set[int]:
    index = _children_index(projects)
    found: set[int] = set()
    pending = [project_id]
    while pending:
        for child in index.get(pending.pop(), []):
            if child.id not in found and child.id != project_id:
                found.add(child.id)
                pending.append(child.id)
    return found
