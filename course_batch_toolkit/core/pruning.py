from __future__ import annotations

"""Course cleaning – removes what cannot be safely imported downstream.

The LXP currently exports things that it itself cannot import.  The pruner
restores structural validity after any destructive or additive edit, applying
its rules in a strict order:

1. Drop every detached activity and element (detachment is terminal here).
2. Drop elements that are output-only *and* detached.
3. Drop elements carrying any ``refs.linked`` cross-reference; links cannot
   be repaired and break on import.
4. Drop leaf containers that no remaining element names as parent.
5. Drop sections that no remaining leaf container names as parent.
6. Drop elements whose parent activity no longer exists.

Section containers, pages and folders are never pruned for emptiness.
Running the pruner twice gives the same result as running it once.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List

from .models import ActivityKind, is_leaf_kind
from .node_store import NodeStore

__all__ = ["PruneReport", "prune_course"]

logger = logging.getLogger(__name__)


@dataclass
class PruneReport:
    """Identifiers removed by each pruning rule."""

    detached_activities: List[Any] = field(default_factory=list)
    detached_elements: List[Any] = field(default_factory=list)
    output_only_elements: List[Any] = field(default_factory=list)
    linked_elements: List[Any] = field(default_factory=list)
    empty_leaf_containers: List[Any] = field(default_factory=list)
    empty_sections: List[Any] = field(default_factory=list)
    orphaned_elements: List[Any] = field(default_factory=list)

    @property
    def total_removed(self) -> int:
        return sum(len(ids) for ids in self.as_details().values())

    def as_details(self) -> Dict[str, List[Any]]:
        return {
            "detached_activities": self.detached_activities,
            "detached_elements": self.detached_elements,
            "output_only_elements": self.output_only_elements,
            "linked_elements": self.linked_elements,
            "empty_leaf_containers": self.empty_leaf_containers,
            "empty_sections": self.empty_sections,
            "orphaned_elements": self.orphaned_elements,
        }


def prune_course(store: NodeStore) -> PruneReport:
    """Apply the pruning rules to *store* in place and report what went."""
    report = PruneReport()

    # 1. Detached nodes
    detached_activities = [a for a in store.activities if a.detached]
    detached_elements = [e for e in store.elements if e.detached]
    report.detached_activities = [a.id for a in detached_activities]
    report.detached_elements = [e.id for e in detached_elements]
    store.remove_activities(detached_activities)
    store.remove_elements(detached_elements)

    # 2. Output-only elements that are detached; the LXP rejects them
    output_only = [e for e in store.elements if e.is_output_only and e.detached]
    report.output_only_elements = [e.id for e in output_only]
    store.remove_elements(output_only)

    # 3. Any cross-reference at all; targets are not checked
    linked = [e for e in store.elements if e.linked_refs]
    report.linked_elements = [e.id for e in linked]
    store.remove_elements(linked)

    # 4. Leaf containers without elements
    empty_leaves = [a for a in store.activities if is_leaf_kind(a.kind) and not store.has_elements(a.id)]
    report.empty_leaf_containers = [a.id for a in empty_leaves]
    store.remove_activities(empty_leaves)

    # 5. Sections without leaf containers
    empty_sections = [
        a for a in store.activities
        if a.kind is ActivityKind.SECTION
        and not any(is_leaf_kind(c.kind) for c in store.children_of(a.id, live_only=False))
    ]
    report.empty_sections = [a.id for a in empty_sections]
    store.remove_activities(empty_sections)

    # 6. Elements whose parent is gone
    orphans = [e for e in store.elements if e.activity_id not in store]
    report.orphaned_elements = [e.id for e in orphans]
    store.remove_elements(orphans)

    logger.info(
        "Clean OK: removed activities=%d elements=%d",
        len(report.detached_activities) + len(report.empty_leaf_containers) + len(report.empty_sections),
        len(report.detached_elements) + len(report.output_only_elements)
        + len(report.linked_elements) + len(report.orphaned_elements),
    )
    logger.debug("Clean details: %s", {k: len(v) for k, v in report.as_details().items()})
    return report
