from __future__ import annotations

"""Import functionality for exported course archives.

Key components:
- CoursePackageImporter: reads a gzipped tar course export into a CourseContext
"""

from .course_importer import CoursePackageImporter

__all__ = ["CoursePackageImporter"]
