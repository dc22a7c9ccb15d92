from __future__ import annotations

"""Course sheet: a CSV listing of every teaching element in learner order.

Each row carries the element's location (module, folder, page, section,
leaf container) so reviewers can find it in the authoring tool, plus a short
content sample.  Because the traversal is already in order, locations are
tracked by walking the flat list once.
"""

import csv
import io
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from course_batch_toolkit.config import ConfigManager
from course_batch_toolkit.core.models import (
    EXPAND_CONTAINER,
    INVISIBLE_CONTAINER,
    QUESTION_SET,
    SECTION,
    SECTION_CONTAINER,
    Activity,
    ActivityKind,
    CourseContext,
    TeachingElement,
    is_leaf_kind,
    is_video_type,
)
from course_batch_toolkit.core.node_store import NodeStore
from course_batch_toolkit.core.traversal import iter_courseware_in_order
from course_batch_toolkit.core.utils import dig, html_to_text, sec_to_hms, truncate

logger = logging.getLogger(__name__)

__all__ = ["SHEET_COLUMNS", "create_course_sheet", "build_sheet_rows", "get_courseware_name", "get_content_sample"]

SHEET_COLUMNS = [
    "module",
    "folder",
    "page",
    "section",
    "leaf_container",
    "te_type",
    "te_name",
    "duration",
    "filename",
    "te_content_sample",
]

NOT_A_VIDEO = "(not a video)"
NO_FILENAME = "n/a"
BLANK_SAMPLE = "(blank)"
NO_SAMPLE = "(no sample available)"
TOP_LEVEL = "(top level)"

_CONTAINER_LABELS = {
    INVISIBLE_CONTAINER: "invisible container",
    EXPAND_CONTAINER: "expand container",
    QUESTION_SET: "question set",
    SECTION_CONTAINER: "section container",
}

Courseware = Union[Activity, TeachingElement]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def get_courseware_name(node: Courseware) -> str:
    """Best guess at the display name of a container or element."""
    display_name = node.get("display_name")
    if display_name:
        return str(display_name)

    label = _CONTAINER_LABELS.get(node.type)
    if label is not None:
        return f"({label}) {node.id}"
    if node.type == SECTION:
        return _text(node.data.get("title")) or f"Nameless SECTION {node.id}"

    meta = getattr(node, "meta", None) or {}
    for candidate in (node.data.get("name"), node.data.get("title"), meta.get("title")):
        if _text(candidate):
            return _text(candidate)
    return f"Nameless {node.type} {node.id}"


def _pdf_sample(element: TeachingElement) -> str:
    url = dig(element.data, "assets", "url", default="")
    if not isinstance(url, str) or not url:
        return "PDF - no title given"
    # Asset URLs are a random prefix, ``___`` and the original file name.
    title = ",".join(url.split("___")[1:])
    return f"PDF: {title or url}"


def _video_sample(element: TeachingElement) -> str:
    sample = "Video - no title given"
    if _text(element.meta.get("title")):
        sample = f"Video: {element.meta['title']}"
    if _text(element.data.get("assetFilename")):
        sample = f"Video: {element.data['assetFilename']}"
    return sample


def get_content_sample(element: TeachingElement, limit: Optional[int] = None) -> str:
    """Short text sample of an element, depending on its type.

    HTML markup is reduced to its visible text.  Samples longer than *limit*
    (default from engine config) are cut and marked with ``...``.
    """
    if limit is None:
        limit = int(ConfigManager().get_engine_value("content_sample_length", 100))

    te_type = element.type or ""
    if "HTML" in te_type:
        sample = html_to_text(element.data.get("content"))
    elif "REFLECTION" in te_type or "POLL" in te_type:
        sample = html_to_text(dig(element.data, "prompt", "content", default=""))
    elif "QUESTION" in te_type and "SET" not in te_type:
        sample = html_to_text(element.data.get("question"))
    elif "IMAGE" in te_type:
        alt = element.meta.get("alt") or element.data.get("alt") or ""
        sample = f"Alt text: {alt}"
    elif "PDF" in te_type:
        sample = _pdf_sample(element)
    elif "CDA_VIDEO" in te_type:
        sample = _video_sample(element)
    elif "LXP_RATING_SCALE" in te_type:
        sample = str(dig(element.data, "inputData", "prompt", default=""))
    else:
        sample = NO_SAMPLE
    return truncate(sample, limit)


def _image_filename(element: TeachingElement) -> str:
    url = dig(element.data, "assets", "url", default="")
    if not isinstance(url, str) or not url:
        return NO_FILENAME
    return url.split("___")[-1].split("/")[-1]


class _Location:
    """Running location of the walk; updated by each container met."""

    def __init__(self) -> None:
        self.module = ""
        self.folder = ""
        self.page = ""
        self.section = ""
        self.leaf_container = ""

    def enter(self, activity: Activity) -> None:
        name = get_courseware_name(activity)
        kind = activity.kind
        if activity.parent_id is None:
            if kind is ActivityKind.PAGE:
                self.module = TOP_LEVEL
                self.page = name
            else:
                self.module = name
        elif kind is ActivityKind.FOLDER:
            self.folder = name
        elif kind is ActivityKind.PAGE:
            self.page = name
        elif kind is ActivityKind.SECTION:
            self.section = name
        elif is_leaf_kind(kind):
            self.leaf_container = name

    def as_dict(self) -> Dict[str, str]:
        return {
            "module": self.module,
            "folder": self.folder,
            "page": self.page,
            "section": self.section,
            "leaf_container": self.leaf_container,
        }


def _element_row(element: TeachingElement) -> Dict[str, str]:
    row = {
        "te_type": element.type,
        "te_name": get_courseware_name(element),
        "duration": NOT_A_VIDEO,
        "filename": NO_FILENAME,
        "te_content_sample": get_content_sample(element) or BLANK_SAMPLE,
    }
    if is_video_type(element.type):
        row["duration"] = sec_to_hms(element.data.get("duration"))
        row["filename"] = str(element.data.get("assetFilename") or NO_FILENAME)
    if "IMAGE" in element.type:
        row["filename"] = _image_filename(element)
    return row


def build_sheet_rows(
    activities: Sequence[Activity],
    elements: Sequence[TeachingElement],
    store: Optional[NodeStore] = None,
) -> List[Dict[str, str]]:
    """Rows of the course sheet, one per element, in learner order.

    An element whose name equals the element right before it in the same
    container is treated as a duplicate and skipped.
    """
    location = _Location()
    rows: List[Dict[str, str]] = []
    last_name = ""
    for node in iter_courseware_in_order(activities, elements, store=store):
        if isinstance(node, Activity):
            location.enter(node)
            last_name = ""
            continue
        row = _element_row(node)
        if not row["te_name"] or row["te_name"] == last_name:
            continue
        rows.append({**location.as_dict(), **row})
        last_name = row["te_name"]
    logger.debug("Course sheet: %d rows", len(rows))
    return rows


def create_course_sheet(context: CourseContext) -> str:
    """Render the course sheet of *context* as CSV text (header included)."""
    rows = build_sheet_rows(context.activities, context.elements)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=SHEET_COLUMNS, lineterminator="\r\n")
    writer.writeheader()
    writer.writerows(rows)
    logger.info("Course sheet created: %d elements", len(rows))
    return buffer.getvalue()
