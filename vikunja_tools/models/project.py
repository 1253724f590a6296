"""Project (task container) model."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Project(BaseModel):
    """Vikunja project."""
    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    description: str = ""
    parent_project_id: Optional[int] = Field(None, description="Parent project, 0 or None for top level")
    is_archived: bool = False
    hex_color: str = ""
