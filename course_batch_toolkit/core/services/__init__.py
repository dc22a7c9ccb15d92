from __future__ import annotations

"""High-level orchestration services (batch editing, progress reporting)."""

from .batch_service import BatchEditService, OperationResult  # noqa: F401
from .progress_service import ProgressService  # noqa: F401

__all__: list[str] = [
    "BatchEditService",
    "OperationResult",
    "ProgressService",
]
