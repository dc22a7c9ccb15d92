from __future__ import annotations

"""Service layer running the batch edit pipeline over a course.

Pipeline order:

1. Field editors (section flags, video scrubbing, question sets) – pure
   attribute writes.
2. Section regrouping, when a section scope is requested.
3. Video neighbor merge, when requested after one-section-per-element
   regrouping.
4. Pruner – always after a structural change, and standalone when the
   ``clean`` option is set.

Scope and guarantees:
- Operates purely in-memory on CourseContext, no file I/O nor UI imports.
- Stages run to completion one after another; the progress callback is
  notified only between stages.
- Expected non-matches (nothing to edit, heuristics skipped) are reported in
  OperationResult, never raised.  Missing course documents are fatal and
  raise before any mutation.

Examples
--------
Basic usage:

    service = BatchEditService()
    result = service.process(ctx, BatchOptions(section_scope="section_per_te"))
    if not result.success:
        print(result.message)
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Optional

from course_batch_toolkit.config import ConfigManager
from course_batch_toolkit.core.field_editors import (
    apply_question_set_settings,
    apply_section_flags,
    set_video_scrubbing,
)
from course_batch_toolkit.core.merge import merge_video_neighbors
from course_batch_toolkit.core.models import CourseContext
from course_batch_toolkit.core.node_store import NodeStore
from course_batch_toolkit.core.options import BatchOptions
from course_batch_toolkit.core.pruning import prune_course
from course_batch_toolkit.core.sectioning import (
    DEFAULT_NEW_ID_START,
    SECTION_PER_TE,
    IdAllocator,
    regroup_sections,
)
from course_batch_toolkit.core.services.progress_service import ProgressService
from course_batch_toolkit.core.utils import utc_timestamp

__all__ = ["OperationResult", "BatchEditService", "make_progress_logger"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Result of a pipeline stage or of a whole run.

    Attributes
    ----------
    success
        Whether the operation completed successfully.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


class BatchEditService:
    """Runs field edits, regrouping, merging and cleaning over a course.

    Parameters
    ----------
    progress
        Receives stage names between stages.
    config
        Source of engine constants; defaults to the shared ConfigManager.
    """

    def __init__(
        self,
        progress: Optional[ProgressService] = None,
        config: Optional[ConfigManager] = None,
    ) -> None:
        self.progress = progress or ProgressService()
        self._config = config

    @property
    def config(self) -> ConfigManager:
        if self._config is None:
            self._config = ConfigManager()
        return self._config

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def process(self, context: CourseContext, options: BatchOptions) -> OperationResult:
        """Run the whole pipeline over *context* in place.

        The returned details hold one entry per stage that ran.
        """
        options.validate()
        logger.info("Batch: start options=%s", options.as_dict())
        store = NodeStore.from_context(context)
        now = utc_timestamp()
        stages: Dict[str, Any] = {}

        self.progress.update("Processing sections")
        stages["fields"] = self.apply_field_edits(store, options).details

        if options.changes_structure:
            regroup = self.regroup(store, options.section_scope, now=now)
            stages["regroup"] = regroup.details

            if options.video_intro or options.video_credits:
                if options.section_scope == SECTION_PER_TE:
                    stages["merge"] = self.merge_video_neighbors(
                        store, options.video_intro, options.video_credits, now=now
                    ).details
                else:
                    logger.info("Edit noop: video merge skipped, scope=%s", options.section_scope)

        if options.changes_structure or options.clean:
            self.progress.update("Cleaning course")
            stages["clean"] = self.clean(store).details

        context.to_documents()
        logger.info("Batch OK: stages=%s", ",".join(stages))
        return OperationResult(True, "Course processed.", stages)

    def process_documents(self, documents: Dict[str, Any], options: BatchOptions) -> Dict[str, Any]:
        """Named-document entry point: returns the edited document set.

        Raises
        ------
        MissingDocumentError
            If the activities or elements document cannot be identified.
        """
        context = CourseContext.from_documents(documents)
        self.process(context, options)
        return context.documents

    def apply_field_edits(self, store: NodeStore, options: BatchOptions) -> OperationResult:
        """Lock/required flags, scrubbing and question-set settings."""
        sections = apply_section_flags(store.activities, options.lock_unlock, options.required_optional)

        videos = 0
        disable = self._scrubbing_disabled(options)
        if disable is not None:
            percentage = self.config.get_engine_value("video_completion_percentage", 95)
            videos = set_video_scrubbing(store.elements, disable, percentage)

        qsets = apply_question_set_settings(
            store.activities,
            options.show_answers,
            options.qset_display,
            options.num_attempts,
            options.pass_percent,
        )
        details = {"sections": sections, "videos": videos, "question_sets": qsets}
        return OperationResult(True, "Applied field edits.", details)

    def regroup(self, store: NodeStore, scope: str, now: Optional[str] = None) -> OperationResult:
        start = self.config.get_engine_value("new_id_start", DEFAULT_NEW_ID_START)
        result = regroup_sections(store, scope, IdAllocator(start), now=now)
        return OperationResult(True, f"Regrouped sections ({scope}).", result.as_details())

    def merge_video_neighbors(
        self,
        store: NodeStore,
        video_intro: bool,
        video_credits: bool,
        now: Optional[str] = None,
    ) -> OperationResult:
        result = merge_video_neighbors(store, video_intro, video_credits, now=now)
        if result.videos == 0:
            logger.info("Edit noop: no single-video sections found")
        return OperationResult(True, "Merged video neighbors.", result.as_details())

    def clean(self, store: NodeStore) -> OperationResult:
        report = prune_course(store)
        details = {key: len(ids) for key, ids in report.as_details().items()}
        return OperationResult(True, f"Removed {report.total_removed} node(s).", details)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _scrubbing_disabled(options: BatchOptions) -> Optional[bool]:
        """Decide the scrubbing flag: explicit option first, else derived from locking.

        Locking and requiring the course disables scrubbing; unlocking frees
        the videos again.  ``None`` means leave videos alone.
        """
        if options.scrubbing == "no_scrub":
            return True
        if options.scrubbing == "scrub_ok":
            return False
        if options.lock_unlock == "lock" and options.required_optional == "require":
            return True
        if options.lock_unlock == "unlock":
            return False
        return None


def make_progress_logger(log: Callable[..., None] = logger.info) -> ProgressService:
    """ProgressService that writes each stage to the log."""
    return ProgressService(lambda stage, percent: log("Progress: %s (%s%%)", stage, percent if percent is not None else "?"))

