"""Target project resolution for task creation."""

from vikunja_tools.models.project import Project
from vikunja_tools.services.context import ToolContext
from vikunja_tools.utils.errors import NotFoundError, ValidationError
from vikunja_tools.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

INBOX_TITLE = "inbox"
# Checked in order after "inbox"
CONVENTIONAL_DEFAULT_TITLES = ("default", "personal", "tasks")


async def find_default_project(context: ToolContext) -> Project:
    """Pick the project a task lands in when none was supplied.

    Preference: a project titled "inbox" (case-insensitive), then one of the
    conventional default titles, then the first project.
    """
    projects = await context.call(context.client.get_projects, "List projects")

    by_title: dict[str, Project] = {}
    for project in projects:
        by_title.setdefault(project.title.strip().lower(), project)

    for title in (INBOX_TITLE, *CONVENTIONAL_DEFAULT_TITLES):
        if title in by_title:
            logger.debug("Resolved default project", project_id=by_title[title].id, title=by_title[title].title)
            return by_title[title]

    if projects:
        logger.debug("Using first project as default", project_id=projects[0].id)
        return projects[0]

    raise ValidationError(
        "No projects found to create the task in. Create a project first or supply projectId "
        "explicitly. Example: projectId=1",
        details={"field": "projectId"},
    )


async def verify_project_exists(context: ToolContext, project_id: int) -> Project:
    """Fetch the project, raising NotFoundError naming the id when it does not exist."""
    try:
        return await context.call(lambda: context.client.get_project(project_id), f"Get project {project_id}")
    except NotFoundError as e:
        raise NotFoundError(
            f"Project with ID {project_id} not found. Check the projectId or omit it to use the default project.",
            details={"field": "projectId", "project_id": project_id},
        ) from e
