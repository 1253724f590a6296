"""Task listing request/result models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from vikunja_tools.models.task import Task


class EvaluationPath(str, Enum):
    """Where a filter expression was evaluated."""
    SERVER = "server"
    CLIENT_FALLBACK = "client_fallback"  # server attempted, rejected the expression
    CLIENT = "client"  # no server attempt


class FilterRequest(BaseModel):
    """One listing request, built per invocation."""
    filter: Optional[str] = Field(None, description="Filter expression")
    filter_id: Optional[str] = Field(None, description="Saved filter identifier")
    project_id: Optional[int] = None
    page: int = 1
    per_page: int = 50
    sort: Optional[str] = Field(None, description="field or field:desc, comma separated")
    search: Optional[str] = None


class FilterMetadata(BaseModel):
    """Describes how a FilterResult was produced."""
    evaluation_path: Optional[EvaluationPath] = Field(
        None, description="None when no filter expression was applied"
    )
    server_side_filtering_attempted: bool = False
    server_side_filtering_used: bool = False
    results_complete: bool = Field(
        True, description="False when filtering ran locally over a single fetched page"
    )
    fallback_reason: Optional[str] = None
    filter: Optional[str] = None
    filter_id: Optional[str] = None
    page: int = 1
    per_page: int = 50


class FilterResult(BaseModel):
    """Tasks plus the evaluation metadata."""
    tasks: list[Task] = Field(default_factory=list)
    metadata: FilterMetadata = Field(default_factory=FilterMetadata)
