from __future__ import annotations

"""Ordered traversal of the implicit course tree.

Produces the course in exactly the order a learner meets it reading top to
bottom.  Every other component that needs a stable sibling order uses
:func:`sibling_sort_key`, so traversal and regrouping never disagree.

Ordering rules
--------------
- Roots are live activities with no parent, sorted by position.
- A leaf container (invisible, expandable, question set) emits itself and then
  its live elements sorted by position; recursion stops there.
- Any other activity emits itself, then recurses into its live children
  sorted by position.
- Position ties are broken by identifier ascending.  A missing position sorts
  as 0.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

from .models import Activity, ActivityKind, TeachingElement, is_leaf_kind
from .node_store import NodeStore

__all__ = [
    "position_of",
    "sibling_sort_key",
    "sorted_siblings",
    "iter_courseware_in_order",
    "iter_subtree",
    "LeafView",
    "SectionView",
    "build_nested_view",
]

logger = logging.getLogger(__name__)

Courseware = Union[Activity, TeachingElement]


def position_of(node: Courseware) -> int:
    position = node.position
    if isinstance(position, bool) or not isinstance(position, (int, float)):
        return 0
    return position


def _id_key(node: Courseware) -> Tuple[int, Any]:
    # Ids are normally integers; compare anything else as text after them.
    if isinstance(node.id, int) and not isinstance(node.id, bool):
        return (0, node.id)
    return (1, str(node.id))


def sibling_sort_key(node: Courseware) -> Tuple[int, Tuple[int, Any]]:
    """Sort key shared by every component: position, then identifier."""
    return (position_of(node), _id_key(node))


def sorted_siblings(nodes: Sequence[Courseware]) -> List[Courseware]:
    return sorted(nodes, key=sibling_sort_key)


def iter_subtree(store: NodeStore, container: Activity) -> Iterator[Courseware]:
    """Yield *container* and its live descendants in learner order."""
    yield container
    if is_leaf_kind(container.kind):
        yield from sorted_siblings(store.elements_of(container.id))
        return
    for child in sorted_siblings(store.children_of(container.id)):
        yield from iter_subtree(store, child)


def iter_courseware_in_order(
    activities: Sequence[Activity],
    elements: Sequence[TeachingElement],
    store: Optional[NodeStore] = None,
) -> Iterator[Courseware]:
    """Yield every live activity and element of the course in learner order.

    The result is a single-pass generator; call again to re-derive it.  Pass
    *store* to reuse existing indexes instead of building new ones.
    """
    if store is None:
        store = NodeStore(list(activities), list(elements))
    roots = sorted_siblings(store.roots())
    logger.debug("Traversing course from %d root(s)", len(roots))
    for root in roots:
        yield from iter_subtree(store, root)


# ---------------------------------------------------------------------------
# Nested projection used by heuristic passes
# ---------------------------------------------------------------------------

@dataclass
class LeafView:
    """A leaf container with its live elements, in order."""

    activity: Activity
    elements: List[TeachingElement] = field(default_factory=list)


@dataclass
class SectionView:
    """A section with its leaf containers, in order."""

    activity: Activity
    leaves: List[LeafView] = field(default_factory=list)

    def single_leaf(self) -> Optional[LeafView]:
        """The only leaf container holding exactly one element, else None."""
        if len(self.leaves) != 1 or len(self.leaves[0].elements) != 1:
            return None
        return self.leaves[0]


def build_nested_view(store: NodeStore, section_container: Activity) -> List[SectionView]:
    """Fold the ordered traversal of *section_container* into section/leaf views.

    The projection is temporary: it holds references to the stored nodes but
    is never written back into the store.
    """
    sections: List[SectionView] = []
    current_section: Optional[SectionView] = None
    current_leaf: Optional[LeafView] = None
    for node in iter_subtree(store, section_container):
        if isinstance(node, TeachingElement):
            if current_leaf is not None:
                current_leaf.elements.append(node)
            continue
        kind = node.kind
        if kind is ActivityKind.SECTION:
            current_section = SectionView(node)
            current_leaf = None
            sections.append(current_section)
        elif (
            is_leaf_kind(kind)
            and current_section is not None
            and node.parent_id == current_section.activity.id
        ):
            current_leaf = LeafView(node)
            current_section.leaves.append(current_leaf)
        else:
            # Outside the section/leaf shape: its elements belong to no leaf view
            current_leaf = None
    return sections
