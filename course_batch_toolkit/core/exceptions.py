from __future__ import annotations

"""Exception classes for the course processing pipeline.

Only conditions that make the whole run meaningless are raised: a missing
course document, an unreadable archive or an option outside its allowed
values.  Malformed per-node payloads are recovered locally and never surface
here.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence

__all__ = [
    "CourseToolkitError",
    "MissingDocumentError",
    "CourseImportError",
    "InvalidOptionError",
]


class CourseToolkitError(Exception):
    """Base exception for all toolkit errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class MissingDocumentError(CourseToolkitError):
    """Raised when a required course document cannot be identified.

    The engine needs exactly one document whose name contains ``activities``
    and exactly one containing ``elements``.
    """

    def __init__(self, document_name: str, found: Optional[Sequence[str]] = None) -> None:
        self.document_name = document_name
        self.found = list(found or [])
        if self.found:
            message = (
                f"Expected exactly one '{document_name}' document, "
                f"found {len(self.found)}: {', '.join(self.found)}"
            )
        else:
            message = f"No '{document_name}' document found in course export"
        super().__init__(message)


class CourseImportError(CourseToolkitError):
    """Raised when a course archive cannot be read."""

    def __init__(self, message: str, file_path: Optional[Path] = None, cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.file_path = file_path


class InvalidOptionError(CourseToolkitError, ValueError):
    """Raised when a batch option is set to a value outside its enumeration."""

    def __init__(self, option: str, value: object, allowed: Iterable[str]) -> None:
        self.option = option
        self.value = value
        self.allowed = sorted(allowed)
        super().__init__(f"Invalid value {value!r} for '{option}'. Allowed: {', '.join(self.allowed)}")
