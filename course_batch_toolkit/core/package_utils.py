"""Package utilities for course archive output.

These utilities handle the final stage of a run:
- Re-serializing the edited course documents
- Rebuilding the gzipped tar archive with every other member copied unchanged
- Writing the course sheet next to the archive
"""

from __future__ import annotations

import io
import json
import logging
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from course_batch_toolkit.config import ConfigManager
from course_batch_toolkit.core.models import ArchiveEntry, CourseContext

logger = logging.getLogger(__name__)

__all__ = [
    "serialize_document",
    "build_archive_bytes",
    "save_course_package",
    "save_course_sheet",
    "output_archive_name",
]

_DEFAULT_STRUCTURE_FILES = ("activities.json", "elements.json", "manifest.json", "repository.json")


def serialize_document(document: Any) -> bytes:
    """JSON text of *document* as written back into the archive (2-space indent)."""
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")


def _structure_files() -> Iterable[str]:
    names = ConfigManager().get_engine_value("course_structure_files")
    return tuple(names) if names else _DEFAULT_STRUCTURE_FILES


def _is_structure_member(name: str, structure_files: Iterable[str]) -> bool:
    basename = name.rstrip("/").rsplit("/", 1)[-1]
    return basename in structure_files


def _add_member(tar: tarfile.TarFile, entry: ArchiveEntry, payload: Optional[bytes]) -> None:
    info = tarfile.TarInfo(name=entry.name)
    info.mode = entry.mode
    info.mtime = int(entry.mtime)
    if entry.is_dir:
        info.type = tarfile.DIRTYPE
        tar.addfile(info)
        return
    data = payload or b""
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def build_archive_bytes(
    context: CourseContext,
    progress_callback: Optional[Callable[[str], None]] = None,
) -> bytes:
    """Return the gzipped tar bytes of the processed course.

    Members named like one of the course structure files (activities,
    elements, manifest, repository) are replaced by the re-serialized
    document; all other members are copied as they were read.  A context
    built straight from documents (no archive members) is written as one
    member per document.
    """
    documents: Dict[str, Any] = context.to_documents()
    structure_files = _structure_files()

    if progress_callback:
        progress_callback("Assembling files")

    buffer = io.BytesIO()
    replaced = 0
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        if not context.entries:
            for name, document in documents.items():
                _add_member(tar, ArchiveEntry(name), serialize_document(document))
                replaced += 1
        for entry in context.entries:
            payload = entry.payload
            if not entry.is_dir and entry.name in documents and _is_structure_member(entry.name, structure_files):
                payload = serialize_document(documents[entry.name])
                replaced += 1
            _add_member(tar, entry, payload)

    logger.debug("Archive assembled: %d members, %d re-serialized", len(context.entries), replaced)
    return buffer.getvalue()


def output_archive_name(context: CourseContext) -> str:
    """File name for the processed archive, derived from the course name."""
    return f"{context.metadata.get('course_name') or 'processed_course'}.tgz"


def save_course_package(
    context: CourseContext,
    output_path: str,
    progress_callback: Optional[Callable[[str], None]] = None,
) -> Path:
    """Write the processed course archive to *output_path*.

    When *output_path* is an existing directory the archive is named after
    the course inside it.
    """
    target = Path(output_path)
    if target.is_dir():
        target = target / output_archive_name(context)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = build_archive_bytes(context, progress_callback)
    if progress_callback:
        progress_callback("Writing file")
    target.write_bytes(data)
    logger.info("Course package saved to %s", target)
    return target


def save_course_sheet(text: str, output_path: str) -> Path:
    """Write course sheet CSV text to *output_path*."""
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8", newline="")
    logger.info("Course sheet saved to %s", target)
    return target
