from __future__ import annotations

"""Modules responsible for generating reports from a processed course."""

from .course_sheet import create_course_sheet, get_content_sample, get_courseware_name  # noqa: F401

__all__: list[str] = [
    "create_course_sheet",
    "get_content_sample",
    "get_courseware_name",
]
