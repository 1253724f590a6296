"""Transient bookkeeping for a create/update workflow."""

from pydantic import BaseModel, Field

from vikunja_tools.models.task import Task


class MutationState(BaseModel):
    """Entity as last known remotely plus the sub-operations tried on it.

    Lives for one workflow only and decides what compensation is needed.
    """
    task: Task
    attempted: list[str] = Field(default_factory=list)
    completed: list[str] = Field(default_factory=list)

    def attempt(self, step: str) -> None:
        self.attempted.append(step)

    def complete(self, step: str) -> None:
        self.completed.append(step)

    def was_completed(self, step: str) -> bool:
        return step in self.completed
