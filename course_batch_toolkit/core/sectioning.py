from __future__ import annotations

"""Section regrouping – rebuilds the section layer of every page.

Relevant structure: Page --> Section Container --> Section(s) --> Leaf container(s).

For every page the existing section containers and sections are discarded
(soft-deleted) and replaced by exactly one fresh section container holding
either one section per leaf container (``section_per_te``) or a single section
for the whole page (``section_per_page``).  Leaf containers are only ever
moved, never duplicated or skipped.

This module manipulates only the in-memory node store; it performs no file
I/O so that it can be reused by CLI, services and tests.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Tuple

from .models import (
    Activity,
    ActivityKind,
    SECTION,
    SECTION_CONTAINER,
    is_leaf_kind,
)
from .node_store import NodeStore
from .traversal import position_of, sibling_sort_key, sorted_siblings
from .utils import make_uuid, utc_timestamp

__all__ = [
    "SECTION_PER_TE",
    "SECTION_PER_PAGE",
    "SECTION_SCOPES",
    "DEFAULT_NEW_ID_START",
    "IdAllocator",
    "RegroupResult",
    "regroup_sections",
    "remove_empty_invisible_containers",
]

logger = logging.getLogger(__name__)

SECTION_PER_TE = "section_per_te"
SECTION_PER_PAGE = "section_per_page"
SECTION_SCOPES = (SECTION_PER_TE, SECTION_PER_PAGE)

# Arbitrarily high to avoid collisions with existing materials.
DEFAULT_NEW_ID_START = 1000000000000000


class IdAllocator:
    """Hands out identifiers for newly minted containers, one run at a time.

    Identifiers start at a fixed sentinel and increase by one per creation.
    This is a convention: existing identifiers are not consulted.
    """

    def __init__(self, start: int = DEFAULT_NEW_ID_START) -> None:
        self._next = int(start)

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def peek(self) -> int:
        return self._next


@dataclass
class RegroupResult:
    """Summary of one regrouping pass."""

    scope: str
    pages: int = 0
    leaf_containers: int = 0
    created_ids: List[int] = field(default_factory=list)
    detached_ids: List[int] = field(default_factory=list)
    removed_empty_ids: List[int] = field(default_factory=list)

    def as_details(self) -> Dict[str, Any]:
        return {
            "scope": self.scope,
            "pages": self.pages,
            "leaf_containers": self.leaf_containers,
            "created": len(self.created_ids),
            "detached": len(self.detached_ids),
            "removed_empty": len(self.removed_empty_ids),
        }


def _new_container(
    store: NodeStore,
    allocator: IdAllocator,
    parent_id: int,
    type_tag: str,
    position: int,
    data: Dict[str, Any],
    now: str,
) -> Activity:
    activity = Activity(
        id=allocator.next_id(),
        parent_id=parent_id,
        type=type_tag,
        position=position,
        data=data,
        refs={},
        detached=False,
        created_at=now,
        updated_at=now,
        deleted_at=None,
        modified_at=None,
        repository_id=store.repository_id(),
        extra={"uid": make_uuid(), "published_at": None},
    )
    return store.add_activity(activity)


def _move_leaf(store: NodeStore, leaf: Activity, section: Activity, now: str) -> None:
    store.reparent(leaf, section.id)
    leaf.updated_at = now
    leaf.modified_at = now
    leaf.deleted_at = None


def _collect_page_layer(
    store: NodeStore, page: Activity
) -> Tuple[List[Activity], List[Activity], List[Activity]]:
    """Return (section containers, sections, leaf containers) of *page*.

    Leaf containers come back ordered by their flattened position: own
    position first, then their section's, then their section container's,
    then identifier.
    """
    section_containers = sorted_siblings(
        [a for a in store.children_of(page.id) if a.kind is ActivityKind.SECTION_CONTAINER]
    )
    sections: List[Activity] = []
    leaf_keys: Dict[int, Tuple[Any, ...]] = {}
    leaves: List[Activity] = []
    for sc in section_containers:
        for section in sorted_siblings([a for a in store.children_of(sc.id) if a.kind is ActivityKind.SECTION]):
            sections.append(section)
            for leaf in store.children_of(section.id):
                if not is_leaf_kind(leaf.kind):
                    continue
                leaves.append(leaf)
                own_position, id_key = sibling_sort_key(leaf)
                leaf_keys[id(leaf)] = (own_position, position_of(section), position_of(sc), id_key)
    leaves.sort(key=lambda leaf: leaf_keys[id(leaf)])
    return section_containers, sections, leaves


def _page_title(page: Activity) -> str:
    title = page.data.get("title")
    return title if isinstance(title, str) else ""


def regroup_sections(
    store: NodeStore,
    scope: str,
    allocator: Optional[IdAllocator] = None,
    now: Optional[str] = None,
) -> RegroupResult:
    """Replace the section layer of every live page.

    Parameters
    ----------
    store
        Indexed course nodes; mutated in place.
    scope
        ``section_per_te`` (one section per leaf container) or
        ``section_per_page`` (one section per page).
    allocator
        Source of identifiers for new containers.
    now
        Timestamp stamped on created, moved and detached nodes.
    """
    if scope not in SECTION_SCOPES:
        raise ValueError(f"Unsupported section scope '{scope}'")
    allocator = allocator or IdAllocator()
    now = now or utc_timestamp()
    result = RegroupResult(scope=scope)

    pages = list(store.iter_kind(ActivityKind.PAGE))
    logger.info("Regroup: scope=%s pages=%d", scope, len(pages))

    for page in pages:
        section_containers, sections, leaves = _collect_page_layer(store, page)

        # Renumber so positions run down the page
        for index, leaf in enumerate(leaves, start=1):
            leaf.position = index

        new_sc = _new_container(store, allocator, page.id, SECTION_CONTAINER, 1, {}, now)
        result.created_ids.append(new_sc.id)

        if scope == SECTION_PER_TE:
            for leaf in leaves:
                section = _new_container(store, allocator, new_sc.id, SECTION, leaf.position, {"title": ""}, now)
                result.created_ids.append(section.id)
                _move_leaf(store, leaf, section, now)
        else:
            section = _new_container(store, allocator, new_sc.id, SECTION, 1, {"title": _page_title(page)}, now)
            result.created_ids.append(section.id)
            for leaf in leaves:
                _move_leaf(store, leaf, section, now)

        for old in section_containers + sections:
            old.mark_detached(now)
            result.detached_ids.append(old.id)

        result.pages += 1
        result.leaf_containers += len(leaves)
        logger.debug(
            "Regroup page=%s leaves=%d detached=%d",
            page.id, len(leaves), len(section_containers) + len(sections),
        )

    result.removed_empty_ids = remove_empty_invisible_containers(store)
    logger.info(
        "Regroup OK: pages=%d leaves=%d created=%d detached=%d removed_empty=%d",
        result.pages, result.leaf_containers, len(result.created_ids),
        len(result.detached_ids), len(result.removed_empty_ids),
    )
    return result


def remove_empty_invisible_containers(store: NodeStore) -> List[int]:
    """Drop invisible containers that own no element at all.

    Other leaf container variants are kept even when empty.
    """
    empty = [a for a in store.iter_kind(ActivityKind.INVISIBLE, live_only=False) if not store.has_elements(a.id)]
    removed_ids = [a.id for a in empty]
    store.remove_activities(empty)
    return removed_ids
