from __future__ import annotations

"""Video neighbor merge – folds an intro and/or credits group into a video's section.

Runs after regrouping to one section per leaf container.  Within one section
container (so never across a page boundary) a *video section* is a section
holding exactly one leaf container that holds exactly one video element.

- Intro: the previous section holds exactly one invisible container whose one
  element is HTML.  That container moves into the video section at position 1.
- Credits: the next section holds exactly one expandable container whose one
  element is HTML.  That container moves into the video section at position 3.
- The video's own container takes position 2.

Donor sections are left empty; the pruner removes them.  Sections that do not
match the exact shape are left untouched.

This module is UI-agnostic and manipulates only the in-memory node store.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional

from .models import ActivityKind, is_html_type, is_video_type
from .node_store import NodeStore
from .traversal import LeafView, SectionView, build_nested_view, sorted_siblings
from .utils import utc_timestamp

__all__ = [
    "INTRO_POSITION",
    "VIDEO_POSITION",
    "CREDITS_POSITION",
    "MergeResult",
    "merge_video_neighbors",
]

logger = logging.getLogger(__name__)

INTRO_POSITION = 1
VIDEO_POSITION = 2
CREDITS_POSITION = 3


@dataclass
class MergeResult:
    """Counts of one neighbor-merge pass."""

    videos: int = 0
    intros: int = 0
    credits: int = 0

    def as_details(self) -> Dict[str, Any]:
        return {"videos": self.videos, "intros": self.intros, "credits": self.credits}


def _video_leaf(section: SectionView) -> Optional[LeafView]:
    leaf = section.single_leaf()
    if leaf is None or not is_video_type(leaf.elements[0].type):
        return None
    return leaf


def _donor_leaf(section: SectionView, kind: ActivityKind) -> Optional[LeafView]:
    leaf = section.single_leaf()
    if leaf is None or leaf.activity.kind is not kind:
        return None
    if not is_html_type(leaf.elements[0].type):
        return None
    return leaf


def _absorb(store: NodeStore, donor: SectionView, leaf: LeafView, target: SectionView, position: int, now: str) -> None:
    store.reparent(leaf.activity, target.activity.id)
    leaf.activity.position = position
    leaf.activity.updated_at = now
    leaf.activity.modified_at = now
    donor.leaves.remove(leaf)
    target.leaves.append(leaf)


def merge_video_neighbors(
    store: NodeStore,
    video_intro: bool,
    video_credits: bool,
    now: Optional[str] = None,
) -> MergeResult:
    """Pull intro and credits groups next to their video, per section container."""
    result = MergeResult()
    if not (video_intro or video_credits):
        return result
    now = now or utc_timestamp()

    section_containers = sorted_siblings(list(store.iter_kind(ActivityKind.SECTION_CONTAINER)))
    for sc in section_containers:
        sections: List[SectionView] = build_nested_view(store, sc)
        for index, section in enumerate(sections):
            video = _video_leaf(section)
            if video is None:
                continue
            result.videos += 1
            video.activity.position = VIDEO_POSITION

            if video_intro and index > 0:
                previous = sections[index - 1]
                intro = _donor_leaf(previous, ActivityKind.INVISIBLE)
                if intro is not None:
                    _absorb(store, previous, intro, section, INTRO_POSITION, now)
                    result.intros += 1
                    logger.debug("Merged intro %s into video section %s", intro.activity.id, section.activity.id)

            if video_credits and index + 1 < len(sections):
                following = sections[index + 1]
                credits = _donor_leaf(following, ActivityKind.EXPANDABLE)
                if credits is not None:
                    _absorb(store, following, credits, section, CREDITS_POSITION, now)
                    result.credits += 1
                    logger.debug("Merged credits %s into video section %s", credits.activity.id, section.activity.id)

    logger.info(
        "Merge OK: videos=%d intros=%d credits=%d",
        result.videos, result.intros, result.credits,
    )
    return result
