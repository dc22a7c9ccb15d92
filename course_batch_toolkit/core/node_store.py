from __future__ import annotations

"""Indexed in-memory store of a course's activities and teaching elements.

The course tree is implicit: every activity names its parent through
``parent_id`` and every element names its owner through ``activity_id``.  The
store builds two indexes once (by id, by parent/owner) and keeps them current
as stages add, re-parent or remove nodes, so no query re-scans the full
collections.

The store wraps the lists of a :class:`CourseContext` and mutates them in
place; callers that hand it a context see the edits reflected there.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional

from .models import Activity, ActivityKind, CourseContext, TeachingElement

__all__ = ["NodeStore"]

logger = logging.getLogger(__name__)


class NodeStore:
    """Lookup by id and by parent for both node collections."""

    def __init__(self, activities: List[Activity], elements: List[TeachingElement]) -> None:
        self.activities = activities
        self.elements = elements
        self._activity_by_id: Dict[int, Activity] = {}
        self._children: Dict[Optional[int], List[Activity]] = defaultdict(list)
        self._elements_by_owner: Dict[Optional[int], List[TeachingElement]] = defaultdict(list)
        self.reindex()

    @classmethod
    def from_context(cls, context: CourseContext) -> "NodeStore":
        return cls(context.activities, context.elements)

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------
    def reindex(self) -> None:
        """Rebuild both indexes from the current collections."""
        self._activity_by_id.clear()
        self._children.clear()
        self._elements_by_owner.clear()
        for activity in self.activities:
            if activity.id in self._activity_by_id:
                logger.warning("Duplicate activity id %s; later entry shadows earlier", activity.id)
            self._activity_by_id[activity.id] = activity
            self._children[activity.parent_id].append(activity)
        for element in self.elements:
            self._elements_by_owner[element.activity_id].append(element)
        logger.debug("Indexed %d activities and %d elements", len(self.activities), len(self.elements))

    def add_activity(self, activity: Activity) -> Activity:
        self.activities.append(activity)
        self._activity_by_id[activity.id] = activity
        self._children[activity.parent_id].append(activity)
        return activity

    def reparent(self, activity: Activity, new_parent_id: Optional[int]) -> None:
        """Move *activity* under *new_parent_id*, keeping the parent index current."""
        if activity.parent_id == new_parent_id:
            return
        siblings = self._children.get(activity.parent_id)
        if siblings is not None and activity in siblings:
            siblings.remove(activity)
        activity.parent_id = new_parent_id
        self._children[new_parent_id].append(activity)

    def remove_activities(self, doomed: Iterable[Activity]) -> int:
        """Physically drop *doomed* activities from the collection."""
        doomed_ids = {id(a) for a in doomed}
        if not doomed_ids:
            return 0
        before = len(self.activities)
        self.activities[:] = [a for a in self.activities if id(a) not in doomed_ids]
        self.reindex()
        return before - len(self.activities)

    def remove_elements(self, doomed: Iterable[TeachingElement]) -> int:
        """Physically drop *doomed* elements from the collection."""
        doomed_ids = {id(e) for e in doomed}
        if not doomed_ids:
            return 0
        before = len(self.elements)
        self.elements[:] = [e for e in self.elements if id(e) not in doomed_ids]
        self.reindex()
        return before - len(self.elements)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, activity_id: Optional[int]) -> Optional[Activity]:
        return self._activity_by_id.get(activity_id)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._activity_by_id

    def children_of(self, parent_id: Optional[int], live_only: bool = True) -> List[Activity]:
        """Child activities of *parent_id* in storage order (unsorted)."""
        children = self._children.get(parent_id, [])
        if live_only:
            return [c for c in children if c.is_live]
        return list(children)

    def elements_of(self, activity_id: Optional[int], live_only: bool = True) -> List[TeachingElement]:
        """Elements owned by *activity_id* in storage order (unsorted)."""
        owned = self._elements_by_owner.get(activity_id, [])
        if live_only:
            return [e for e in owned if e.is_live]
        return list(owned)

    def has_elements(self, activity_id: Optional[int]) -> bool:
        return bool(self._elements_by_owner.get(activity_id))

    def roots(self, live_only: bool = True) -> List[Activity]:
        return self.children_of(None, live_only=live_only)

    def iter_kind(self, kind: ActivityKind, live_only: bool = True) -> Iterator[Activity]:
        for activity in self.activities:
            if activity.kind is kind and (activity.is_live or not live_only):
                yield activity

    def repository_id(self):
        """Repository id shared by the course (taken from the first activity)."""
        return self.activities[0].repository_id if self.activities else None
