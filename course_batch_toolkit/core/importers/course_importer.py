from __future__ import annotations

"""Course package importer for gzipped tar exports.

Reads an exported course (``.tgz``) into a :class:`CourseContext`: every JSON
member is decoded into the named document set and every member, JSON or not,
is kept as an :class:`ArchiveEntry` so the package can be rebuilt unchanged
apart from the edited documents.
"""

import io
import json
import logging
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from course_batch_toolkit.core.exceptions import CourseImportError
from course_batch_toolkit.core.models import ArchiveEntry, CourseContext
from course_batch_toolkit.core.utils import get_course_name

logger = logging.getLogger(__name__)

__all__ = ["CoursePackageImporter"]

_ARCHIVE_SUFFIXES = (".tgz", ".tar.gz", ".tar")


def _is_resource_fork(name: str) -> bool:
    """macOS AppleDouble members (``._name``) carry no course data."""
    return name.startswith("._") or "/._" in name


class CoursePackageImporter:
    """Importer for gzipped tar course exports."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.CoursePackageImporter")

    def can_import(self, file_path: Path) -> bool:
        """Check if this importer can handle the given file."""
        file_path = Path(file_path)
        if not file_path.exists() or not file_path.is_file():
            return False
        if not file_path.name.lower().endswith(_ARCHIVE_SUFFIXES):
            return False
        return tarfile.is_tarfile(file_path)

    def import_package(
        self,
        file_path: Path,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> CourseContext:
        """Import a course archive into a CourseContext.

        Raises
        ------
        CourseImportError
            If the archive cannot be opened or read.
        MissingDocumentError
            If the archive lacks the activities or elements document.
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise CourseImportError(f"Input file not found: {file_path}", file_path)

        if progress_callback:
            progress_callback("Loading file")
        self.logger.debug("Importing course package: %s", file_path)
        try:
            data = file_path.read_bytes()
        except OSError as exc:
            raise CourseImportError(f"Could not read {file_path}: {exc}", file_path, exc) from exc

        context = self.import_bytes(data, progress_callback=progress_callback, source=file_path)
        context.metadata["source_file"] = str(file_path)
        return context

    def import_bytes(
        self,
        data: bytes,
        progress_callback: Optional[Callable[[str], None]] = None,
        source: Optional[Path] = None,
    ) -> CourseContext:
        """Import a course archive already held in memory."""
        if progress_callback:
            progress_callback("Expanding file")
        try:
            entries = self._read_entries(data)
        except (tarfile.TarError, OSError, EOFError) as exc:
            raise CourseImportError(f"Could not extract course archive: {exc}", source, exc) from exc

        if progress_callback:
            progress_callback("Parsing JSON")
        documents = self._parse_documents(entries)

        context = CourseContext.from_documents(documents)
        context.entries = entries
        context.metadata["course_name"] = get_course_name(context.find_document("repository"))
        self.logger.info(
            "Imported course '%s': %d activities, %d elements, %d archive members",
            context.metadata["course_name"], len(context.activities), len(context.elements), len(entries),
        )
        return context

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _read_entries(self, data: bytes) -> List[ArchiveEntry]:
        entries: List[ArchiveEntry] = []
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            for member in tar.getmembers():
                if member.name in (".", ".."):
                    continue
                if member.isdir():
                    entries.append(ArchiveEntry(member.name, is_dir=True, mode=member.mode, mtime=member.mtime))
                elif member.isfile():
                    handle = tar.extractfile(member)
                    payload = handle.read() if handle is not None else b""
                    entries.append(ArchiveEntry(member.name, payload=payload, mode=member.mode, mtime=member.mtime))
                else:
                    self.logger.debug("Skipping non-regular archive member %s", member.name)
        return entries

    def _parse_documents(self, entries: List[ArchiveEntry]) -> Dict[str, Any]:
        documents: Dict[str, Any] = {}
        failures: List[Tuple[str, str]] = []
        for entry in entries:
            if entry.is_dir or ".json" not in entry.name or _is_resource_fork(entry.name):
                continue
            try:
                documents[entry.name] = json.loads((entry.payload or b"").decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                failures.append((entry.name, str(exc)))
                self.logger.error("Could not parse JSON for file %s: %s", entry.name, exc)
        self.logger.debug("Parsed %d JSON documents (%d failures)", len(documents), len(failures))
        return documents
