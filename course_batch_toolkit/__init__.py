"""Top-level package for the business-logic portion of Course Batch Toolkit.

This package hosts the GUI-agnostic implementation.  Front-ends (CLI, form
hosts, scripts) should only depend on the public API exposed here rather than
importing internal modules directly.
"""

from .core.models import CourseContext  # re-export for convenience
from .core.options import BatchOptions

__all__: list[str] = [
    "BatchOptions",
    "CourseContext",
]
