"""
Declared ownership between collections and the delete resolution over it.

Each edge says a child collection refers to a parent through a foreign-key
attribute and what happens to the children when the parent goes away.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from ..errors import DeleteRestrictedError

logger = logging.getLogger(__name__)


class DeletePolicy(str, Enum):
    """What happens to child records when their parent is deleted."""
    CASCADE = "cascade"
    RESTRICT = "restrict"


@dataclass(frozen=True)
class OwnershipEdge:
    parent: str
    child: str
    foreign_key: str
    policy: DeletePolicy = DeletePolicy.CASCADE


class OwnershipGraph:
    """Ownership edges keyed by parent collection."""

    def __init__(self, edges: Iterable[OwnershipEdge] = ()):
        self._edges: Dict[str, List[OwnershipEdge]] = {}
        for edge in edges:
            self.add(edge)

    def add(self, edge: OwnershipEdge) -> None:
        self._edges.setdefault(edge.parent, []).append(edge)

    def edges_from(self, parent: str) -> List[OwnershipEdge]:
        return list(self._edges.get(parent, []))

    def plan_delete(
        self,
        collections: Mapping[str, Sequence],
        collection: str,
        record_id: str
    ) -> Dict[str, Set[str]]:
        """
        Resolve every record that must go when ``record_id`` is deleted.

        Returns collection name -> ids to remove, including the record itself.
        Raises DeleteRestrictedError if a restrict edge has dependents.
        """
        plan: Dict[str, Set[str]] = {collection: {record_id}}
        pending = [(collection, record_id)]

        while pending:
            parent, parent_id = pending.pop()
            for edge in self.edges_from(parent):
                dependents = [
                    item for item in collections.get(edge.child, ())
                    if getattr(item, edge.foreign_key, None) == parent_id
                ]
                if not dependents:
                    continue
                if edge.policy == DeletePolicy.RESTRICT:
                    raise DeleteRestrictedError(parent, parent_id, len(dependents))

                removed = plan.setdefault(edge.child, set())
                for item in dependents:
                    if item.id not in removed:
                        removed.add(item.id)
                        pending.append((edge.child, item.id))

        cascaded = sum(len(ids) for name, ids in plan.items() if name != collection)
        if cascaded:
            logger.info(f"Deleting {collection}/{record_id} cascades to {cascaded} record(s)")
        return plan


# Deleting a teacher removes that teacher's evaluation reports.
DEFAULT_OWNERSHIP = OwnershipGraph([
    OwnershipEdge(parent="teachers", child="reports", foreign_key="teacher_id"),
])
