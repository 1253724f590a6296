"""Task relation kinds."""

from enum import Enum
from pydantic import BaseModel


class RelationKind(str, Enum):
    """Closed vocabulary of relation kinds (Vikunja wire names)."""
    UNKNOWN = "unknown"
    SUBTASK = "subtask"
    PARENTTASK = "parenttask"
    RELATED = "related"
    DUPLICATEOF = "duplicateof"
    DUPLICATES = "duplicates"
    BLOCKING = "blocking"
    BLOCKED = "blocked"
    PRECEDES = "precedes"
    FOLLOWS = "follows"
    COPIEDFROM = "copiedfrom"
    COPIEDTO = "copiedto"


# Alternative spellings accepted at the tool boundary
RELATION_KIND_ALIASES: dict[str, RelationKind] = {
    "parent": RelationKind.PARENTTASK,
    "duplicate-of": RelationKind.DUPLICATEOF,
    "copied-from": RelationKind.COPIEDFROM,
    "copied-to": RelationKind.COPIEDTO,
}


class Relation(BaseModel):
    """Directed relation: task_id is the owner/source, other_task_id the target."""
    task_id: int
    other_task_id: int
    relation_kind: RelationKind
