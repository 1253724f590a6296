"""Minimal add/remove sets for relation-set fields (assignees, labels)."""

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class RelationDiff:
    """to_add = desired - current, to_remove = current - desired. Disjoint by construction."""
    to_add: frozenset[int]
    to_remove: frozenset[int]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    def apply(self, current: Iterable[int]) -> frozenset[int]:
        """Result of applying additions and then removals to current."""
        return (frozenset(current) | self.to_add) - self.to_remove

    def ordered_additions(self) -> list[int]:
        return sorted(self.to_add)

    def ordered_removals(self) -> list[int]:
        return sorted(self.to_remove)


def compute_diff(current: Iterable[int], desired: Iterable[int]) -> RelationDiff:
    """Return what must be added to and removed from current to reach desired."""
    current_set = frozenset(current)
    desired_set = frozenset(desired)
    return RelationDiff(
        to_add=desired_set - current_set,
        to_remove=current_set - desired_set,
    )
