"""Tool operations as tagged unions keyed by `subcommand`.

Arguments use camelCase on the wire (projectId, dueDate, otherTaskId, ...).
Identifier fields are optional at parse time so that the workflows can
report a missing id with an actionable message.
"""

from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OperationArgs(BaseModel):
    """Base for all operation argument records."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def provided_fields(self) -> set[str]:
        """Fields explicitly present in the request (excluding the tag)."""
        return self.model_fields_set - {"subcommand"}


# Tasks

class CreateTaskArgs(OperationArgs):
    subcommand: Literal["create"]
    title: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[int] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    priority: Optional[int] = None
    labels: Optional[list[int]] = None
    assignees: Optional[list[int]] = None
    repeat_after: Optional[int] = None
    repeat_mode: Optional[str] = Field(None, description="day, week, month or year")


class GetTaskArgs(OperationArgs):
    subcommand: Literal["get"]
    id: Optional[int] = None


class UpdateTaskArgs(OperationArgs):
    subcommand: Literal["update"]
    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    done: Optional[bool] = None
    project_id: Optional[int] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    priority: Optional[int] = None
    percent_done: Optional[float] = None
    assignees: Optional[list[int]] = None
    # Accepted only to be rejected with a pointer to apply-label/remove-label
    labels: Optional[list[int]] = None
    repeat_after: Optional[int] = None
    repeat_mode: Optional[str] = None


class DeleteTaskArgs(OperationArgs):
    subcommand: Literal["delete"]
    id: Optional[int] = None


class ListTasksArgs(OperationArgs):
    subcommand: Literal["list"]
    project_id: Optional[int] = None
    filter: Optional[str] = None
    filter_id: Optional[str] = None
    done: Optional[bool] = None
    page: int = 1
    per_page: Optional[int] = None
    sort: Optional[str] = None
    search: Optional[str] = None


class RelateTasksArgs(OperationArgs):
    subcommand: Literal["relate"]
    id: Optional[int] = None
    other_task_id: Optional[int] = None
    relation_kind: Optional[str] = None


class UnrelateTasksArgs(OperationArgs):
    subcommand: Literal["unrelate"]
    id: Optional[int] = None
    other_task_id: Optional[int] = None
    relation_kind: Optional[str] = None


class ListRelationsArgs(OperationArgs):
    subcommand: Literal["relations"]
    id: Optional[int] = None


class ApplyLabelArgs(OperationArgs):
    subcommand: Literal["apply-label"]
    id: Optional[int] = None
    labels: Optional[list[int]] = None


class RemoveLabelArgs(OperationArgs):
    subcommand: Literal["remove-label"]
    id: Optional[int] = None
    labels: Optional[list[int]] = None


class ListTaskLabelsArgs(OperationArgs):
    subcommand: Literal["list-labels"]
    id: Optional[int] = None


class AssignUsersArgs(OperationArgs):
    subcommand: Literal["assign"]
    id: Optional[int] = None
    assignees: Optional[list[int]] = None


class UnassignUsersArgs(OperationArgs):
    subcommand: Literal["unassign"]
    id: Optional[int] = None
    assignees: Optional[list[int]] = None


class ListAssigneesArgs(OperationArgs):
    subcommand: Literal["list-assignees"]
    id: Optional[int] = None


class CommentTaskArgs(OperationArgs):
    """Adds a comment when `comment` is given, otherwise lists the comments."""
    subcommand: Literal["comment"]
    id: Optional[int] = None
    comment: Optional[str] = None


class AddReminderArgs(OperationArgs):
    subcommand: Literal["add-reminder"]
    id: Optional[int] = None
    reminder_date: Optional[str] = None


class RemoveReminderArgs(OperationArgs):
    subcommand: Literal["remove-reminder"]
    id: Optional[int] = None
    reminder_id: Optional[int] = Field(None, description="Position shown by list-reminders, starting at 1")


class ListRemindersArgs(OperationArgs):
    subcommand: Literal["list-reminders"]
    id: Optional[int] = None


class BulkTaskItem(OperationArgs):
    """One task of a bulk-create request."""
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[int] = None
    labels: Optional[list[int]] = None
    assignees: Optional[list[int]] = None
    repeat_after: Optional[int] = None
    repeat_mode: Optional[str] = None


class BulkCreateTasksArgs(OperationArgs):
    subcommand: Literal["bulk-create"]
    project_id: Optional[int] = None
    tasks: Optional[list[BulkTaskItem]] = None


class BulkUpdateTasksArgs(OperationArgs):
    subcommand: Literal["bulk-update"]
    task_ids: Optional[list[int]] = None
    field: Optional[str] = Field(None, description="Task field to set, e.g. done, priority, dueDate")
    value: Any = None


class BulkDeleteTasksArgs(OperationArgs):
    subcommand: Literal["bulk-delete"]
    task_ids: Optional[list[int]] = None


TaskOperation = Annotated[
    Union[
        CreateTaskArgs,
        GetTaskArgs,
        UpdateTaskArgs,
        DeleteTaskArgs,
        ListTasksArgs,
        RelateTasksArgs,
        UnrelateTasksArgs,
        ListRelationsArgs,
        ApplyLabelArgs,
        RemoveLabelArgs,
        ListTaskLabelsArgs,
        AssignUsersArgs,
        UnassignUsersArgs,
        ListAssigneesArgs,
        CommentTaskArgs,
        AddReminderArgs,
        RemoveReminderArgs,
        ListRemindersArgs,
        BulkCreateTasksArgs,
        BulkUpdateTasksArgs,
        BulkDeleteTasksArgs,
    ],
    Field(discriminator="subcommand"),
]


# Labels

class ListLabelsArgs(OperationArgs):
    subcommand: Literal["list"]
    search: Optional[str] = None
    page: int = 1
    per_page: Optional[int] = None


class GetLabelArgs(OperationArgs):
    subcommand: Literal["get"]
    id: Optional[int] = None


class CreateLabelArgs(OperationArgs):
    subcommand: Literal["create"]
    title: Optional[str] = None
    description: Optional[str] = None
    hex_color: Optional[str] = None


class UpdateLabelArgs(OperationArgs):
    subcommand: Literal["update"]
    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    hex_color: Optional[str] = None


class DeleteLabelArgs(OperationArgs):
    subcommand: Literal["delete"]
    id: Optional[int] = None


LabelOperation = Annotated[
    Union[ListLabelsArgs, GetLabelArgs, CreateLabelArgs, UpdateLabelArgs, DeleteLabelArgs],
    Field(discriminator="subcommand"),
]


# Projects

class ListProjectsArgs(OperationArgs):
    subcommand: Literal["list"]
    include_archived: bool = False
    search: Optional[str] = None
    page: int = 1
    per_page: Optional[int] = None


class GetProjectArgs(OperationArgs):
    subcommand: Literal["get"]
    id: Optional[int] = None


class CreateProjectArgs(OperationArgs):
    subcommand: Literal["create"]
    title: Optional[str] = None
    description: Optional[str] = None
    hex_color: Optional[str] = None


class UpdateProjectArgs(OperationArgs):
    subcommand: Literal["update"]
    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    hex_color: Optional[str] = None


class DeleteProjectArgs(OperationArgs):
    subcommand: Literal["delete"]
    id: Optional[int] = None


class ArchiveProjectArgs(OperationArgs):
    subcommand: Literal["archive"]
    id: Optional[int] = None


class UnarchiveProjectArgs(OperationArgs):
    subcommand: Literal["unarchive"]
    id: Optional[int] = None


class GetProjectChildrenArgs(OperationArgs):
    subcommand: Literal["get-children"]
    id: Optional[int] = None
    include_archived: bool = False


class GetProjectTreeArgs(OperationArgs):
    """Whole forest when id is omitted, otherwise the subtree rooted at id."""
    subcommand: Literal["get-tree"]
    id: Optional[int] = None
    max_depth: Optional[int] = None
    include_archived: bool = False


class GetProjectBreadcrumbArgs(OperationArgs):
    subcommand: Literal["get-breadcrumb"]
    id: Optional[int] = None


class MoveProjectArgs(OperationArgs):
    """Omitting parentProjectId (or passing 0) moves the project to the top level."""
    subcommand: Literal["move"]
    id: Optional[int] = None
    parent_project_id: Optional[int] = None


ProjectOperation = Annotated[
    Union[
        ListProjectsArgs,
        GetProjectArgs,
        CreateProjectArgs,
        UpdateProjectArgs,
        DeleteProjectArgs,
        ArchiveProjectArgs,
        UnarchiveProjectArgs,
        GetProjectChildrenArgs,
        GetProjectTreeArgs,
        GetProjectBreadcrumbArgs,
        MoveProjectArgs,
    ],
    Field(discriminator="subcommand"),
]
