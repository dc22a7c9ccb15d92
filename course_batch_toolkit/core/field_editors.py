from __future__ import annotations

"""Bulk attribute writes: locking, completion requirements, scrubbing, question sets.

These editors never change structure.  Each one overwrites whatever the
course currently holds for the targeted field ("smashing whatever is there
now"); a ``no_change`` option leaves the field alone.
"""

import logging
from typing import Iterable, Optional

from .models import Activity, ActivityKind, TeachingElement, is_video_type

__all__ = [
    "LOCK_VALUES",
    "REQUIRED_VALUES",
    "SHOW_ANSWERS_VALUES",
    "QSET_DISPLAY_VALUES",
    "apply_section_flags",
    "set_video_scrubbing",
    "apply_question_set_settings",
]

logger = logging.getLogger(__name__)

NO_CHANGE = "no_change"

LOCK_VALUES = {"lock": True, "unlock": False}
REQUIRED_VALUES = {"require": True, "optional": False}
SHOW_ANSWERS_VALUES = {
    "show_when_submitted": "onSubmit",
    "show_after_attempts": "onAllowExhaust",
    "show_never": "never",
}
QSET_DISPLAY_VALUES = {"display_one": "one", "display_all": "all"}


def apply_section_flags(
    activities: Iterable[Activity],
    lock_unlock: str = NO_CHANGE,
    required_optional: str = NO_CHANGE,
) -> int:
    """Set ``locked`` / ``completionRequired`` on every section.

    Returns the number of sections touched.
    """
    locked = LOCK_VALUES.get(lock_unlock)
    required = REQUIRED_VALUES.get(required_optional)
    if locked is None and required is None:
        return 0

    count = 0
    for activity in activities:
        if activity.kind is not ActivityKind.SECTION:
            continue
        if locked is not None:
            activity.data["locked"] = locked
        if required is not None:
            activity.data["completionRequired"] = required
        count += 1
    logger.info("Edit OK: section flags lock=%s required=%s sections=%d", lock_unlock, required_optional, count)
    return count


def set_video_scrubbing(
    elements: Iterable[TeachingElement],
    disable: bool = True,
    completion_percentage: Optional[int] = 95,
) -> int:
    """Make videos impossible (or possible) to fast-forward through.

    When scrubbing is disabled the completion threshold is also set, so a
    short closing bumper does not block completion.
    """
    count = 0
    for element in elements:
        if not is_video_type(element.type):
            continue
        element.data["disableScrubbing"] = disable
        if disable and completion_percentage is not None:
            element.data["completionPercentage"] = completion_percentage
        count += 1
    logger.info("Edit OK: video scrubbing disabled=%s videos=%d", disable, count)
    return count


def apply_question_set_settings(
    activities: Iterable[Activity],
    show_answers: str = NO_CHANGE,
    qset_display: str = NO_CHANGE,
    num_attempts: int = -1,
    pass_percent: int = -1,
) -> int:
    """Apply assessment display settings to every live question set."""
    display_answers = SHOW_ANSWERS_VALUES.get(show_answers)
    display_questions = QSET_DISPLAY_VALUES.get(qset_display)
    attempts = num_attempts if num_attempts and num_attempts > 0 else None
    percent = pass_percent if pass_percent and pass_percent > 0 else None
    if display_answers is None and display_questions is None and attempts is None and percent is None:
        return 0

    count = 0
    for qset in activities:
        if qset.kind is not ActivityKind.QUESTION_SET or not qset.is_live:
            continue
        if display_answers is not None:
            qset.data["displayCorrectAnswers"] = display_answers
        if display_questions is not None:
            qset.data["displayQuestions"] = display_questions
        if attempts is not None:
            qset.data["numberOfAttempts"] = attempts
        if percent is not None:
            qset.data["minimumPassingPercentage"] = percent
        count += 1
    logger.info("Edit OK: question sets updated=%d", count)
    return count
