"""Task models as returned by the Vikunja API."""

from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from vikunja_tools.utils.dates import format_date, parse_remote_date

DATE_FIELDS = ("due_date", "start_date", "end_date", "done_at", "created", "updated")


class User(BaseModel):
    """Vikunja user (task assignee)."""
    model_config = ConfigDict(extra="allow")

    id: int
    username: str = ""
    name: str = ""


class Label(BaseModel):
    """Vikunja label."""
    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    description: str = ""
    hex_color: str = ""


class RelatedTask(BaseModel):
    """Target side of a task relation, as embedded in the owning task."""
    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    project_id: Optional[int] = None
    done: bool = False


class Reminder(BaseModel):
    """Absolute reminder, or one relative to a task date (relative_to + relative_period seconds)."""
    model_config = ConfigDict(extra="allow")

    reminder: Optional[datetime] = None
    relative_period: int = 0
    relative_to: str = ""

    @field_validator("reminder", mode="before")
    @classmethod
    def _parse_reminder(cls, value: Any) -> Optional[datetime]:
        return parse_remote_date(value)

    @field_serializer("reminder")
    def _serialize_reminder(self, value: Optional[datetime]) -> Optional[str]:
        return format_date(value) if value is not None else None


class TaskComment(BaseModel):
    """Comment on a task."""
    model_config = ConfigDict(extra="allow")

    id: int
    comment: str = ""
    author: Optional[User] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[datetime]:
        return parse_remote_date(value)

    @field_serializer("created", "updated")
    def _serialize_dates(self, value: Optional[datetime]) -> Optional[str]:
        return format_date(value) if value is not None else None


class Task(BaseModel):
    """Task model.

    Unknown remote fields are kept so that a full-object update sends them
    back unchanged.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = Field(None, description="Remote identifier, immutable once assigned")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Task description (HTML)")
    done: bool = Field(default=False)
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    done_at: Optional[datetime] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    priority: int = Field(default=0, description="Priority (0-5)")
    percent_done: float = Field(default=0.0)
    repeat_after: int = Field(default=0, description="Repeat interval in seconds")
    repeat_mode: int = Field(default=0, description="0 = interval, 1 = monthly, 2 = from current date")
    project_id: Optional[int] = None
    assignees: list[User] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)
    related_tasks: dict[str, list[RelatedTask]] = Field(default_factory=dict)

    @field_validator(*DATE_FIELDS, mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[datetime]:
        return parse_remote_date(value)

    @field_validator("assignees", "labels", "reminders", mode="before")
    @classmethod
    def _null_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("related_tasks", mode="before")
    @classmethod
    def _null_to_dict(cls, value: Any) -> Any:
        if value is None:
            return {}
        return {kind: targets or [] for kind, targets in value.items()}

    @field_validator("assignees", "labels")
    @classmethod
    def _dedupe_by_id(cls, value: list) -> list:
        seen: set[int] = set()
        unique = []
        for item in value:
            if item.id not in seen:
                seen.add(item.id)
                unique.append(item)
        return unique

    @field_validator("related_tasks")
    @classmethod
    def _dedupe_relations(cls, value: dict[str, list[RelatedTask]]) -> dict[str, list[RelatedTask]]:
        deduped = {}
        for kind, targets in value.items():
            seen: set[int] = set()
            deduped[kind] = []
            for target in targets:
                if target.id not in seen:
                    seen.add(target.id)
                    deduped[kind].append(target)
        return deduped

    @field_serializer(*DATE_FIELDS)
    def _serialize_dates(self, value: Optional[datetime]) -> Optional[str]:
        return format_date(value) if value is not None else None

    def assignee_ids(self) -> set[int]:
        return {user.id for user in self.assignees}

    def label_ids(self) -> set[int]:
        return {label.id for label in self.labels}

    def relation_count(self) -> int:
        return sum(len(targets) for targets in self.related_tasks.values())

    def to_payload(self) -> dict[str, Any]:
        """Full JSON-ready representation, used as the update body."""
        return self.model_dump(mode="json")
