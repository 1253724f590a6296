"""Saved filter lookup.

Storage is external; InMemorySavedFilters lives for one ToolContext only.
"""

from typing import Iterable, Optional, Protocol
from pydantic import BaseModel, Field


class SavedFilter(BaseModel):
    """Named filter expression."""
    id: str
    name: str = ""
    filter: str = Field(..., description="Filter expression, e.g. 'done = false && priority >= 3'")
    project_id: Optional[int] = None


class SavedFilterLookup(Protocol):
    async def get(self, filter_id: str) -> Optional[SavedFilter]: ...


class InMemorySavedFilters:
    """Dict-backed lookup, not persisted."""

    def __init__(self, filters: Iterable[SavedFilter] = ()):
        self._filters = {saved.id: saved for saved in filters}

    async def get(self, filter_id: str) -> Optional[SavedFilter]:
        return self._filters.get(filter_id)

    async def save(self, saved: SavedFilter) -> SavedFilter:
        self._filters[saved.id] = saved
        return saved

    async def list(self) -> list[SavedFilter]:
        return list(self._filters.values())
