from __future__ import annotations

"""Shared data structures used across the Course Batch Toolkit core.

This module is intentionally free of UI / I/O code so that the contained
objects can be reused in any context (unit-tests, CLI, batch scripts, etc.).

Activities (containers) and teaching elements (content items) are loaded from
loosely-typed JSON.  Only the fields the engine touches are lifted into
dataclass attributes; every other key is preserved in ``extra`` and written
back in its original order by :meth:`to_dict`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import MissingDocumentError

__all__ = [
    "ActivityKind",
    "Activity",
    "TeachingElement",
    "CourseContext",
    "ArchiveEntry",
    "classify_activity",
    "is_leaf_kind",
    "is_video_type",
    "is_html_type",
    "LEAF_KINDS",
]

# Activity type tags as exported by the LXP.
SECTION_CONTAINER = "SECTION_CONTAINER"
SECTION = "SECTION"
INVISIBLE_CONTAINER = "INVISIBLE_CONTAINER"
EXPAND_CONTAINER = "EXPAND_CONTAINER"
QUESTION_SET = "CEK_QUESTION_SET"
PAGE_TYPE = "LONG_HLXP_SCHEMA/PAGE"

OUTPUT_ONLY = "OUTPUT_ONLY"


class ActivityKind(Enum):
    """Structural role of an activity in the five-level course hierarchy."""

    FOLDER = "folder"
    PAGE = "page"
    SECTION_CONTAINER = "section_container"
    SECTION = "section"
    INVISIBLE = "invisible"
    EXPANDABLE = "expandable"
    QUESTION_SET = "question_set"
    OTHER = "other"


LEAF_KINDS = frozenset({ActivityKind.INVISIBLE, ActivityKind.EXPANDABLE, ActivityKind.QUESTION_SET})

_EXACT_KINDS = {
    SECTION_CONTAINER: ActivityKind.SECTION_CONTAINER,
    SECTION: ActivityKind.SECTION,
    INVISIBLE_CONTAINER: ActivityKind.INVISIBLE,
    EXPAND_CONTAINER: ActivityKind.EXPANDABLE,
    QUESTION_SET: ActivityKind.QUESTION_SET,
}


def classify_activity(type_tag: Optional[str]) -> ActivityKind:
    """Map a raw activity ``type`` tag to its :class:`ActivityKind`."""
    if not type_tag:
        return ActivityKind.OTHER
    kind = _EXACT_KINDS.get(type_tag)
    if kind is not None:
        return kind
    if "PAGE" in type_tag:
        return ActivityKind.PAGE
    if "FOLDER" in type_tag:
        return ActivityKind.FOLDER
    return ActivityKind.OTHER


def is_leaf_kind(kind: ActivityKind) -> bool:
    return kind in LEAF_KINDS


def is_video_type(type_tag: Optional[str]) -> bool:
    return bool(type_tag) and "VIDEO" in type_tag


def is_html_type(type_tag: Optional[str]) -> bool:
    return bool(type_tag) and "HTML" in type_tag


# Keys emitted even when their value is None for freshly minted nodes.
_ACTIVITY_FIELDS = (
    "id", "repository_id", "parent_id", "type", "position", "data", "refs",
    "detached", "created_at", "updated_at", "deleted_at", "modified_at",
)
_ELEMENT_FIELDS = (
    "id", "activity_id", "type", "position", "data", "meta", "refs",
    "detached", "created_at", "updated_at", "deleted_at", "modified_at",
)
# Nullable keys only written back when the source carried them or they gained a value.
_OPTIONAL_KEYS = frozenset({"created_at", "updated_at", "deleted_at", "modified_at", "meta", "refs", "repository_id"})


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _ordered(values: Dict[str, Any], key_order: List[str], fresh: bool) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in key_order:
        if key in values:
            out[key] = values[key]
    for key, value in values.items():
        if key in out:
            continue
        if not fresh and key in _OPTIONAL_KEYS and value in (None, {}):
            continue
        out[key] = value
    return out


@dataclass(eq=False)
class Activity:
    """A structural node: folder, page, section container, section or leaf container.

    Attributes
    ----------
    id
        Unique identifier.
    parent_id
        Identifier of the owning activity; ``None`` marks a root.
    type
        Raw LXP type tag (see :func:`classify_activity`).
    position
        Sibling ordering key; neither unique nor dense.
    detached
        Soft-delete flag; a detached node is ignored by every stage but the Pruner.
    extra
        Untouched JSON keys (``uid``, ``published_at``, ...).
    """

    id: int
    parent_id: Optional[int] = None
    type: str = ""
    position: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    refs: Dict[str, Any] = field(default_factory=dict)
    detached: bool = False
    deleted_at: Optional[str] = None
    modified_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_at: Optional[str] = None
    repository_id: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list, repr=False)

    @property
    def kind(self) -> ActivityKind:
        return classify_activity(self.type)

    @property
    def is_live(self) -> bool:
        """True unless soft-deleted (``detached`` or stamped ``deleted_at``)."""
        return not self.detached and not self.deleted_at

    def get(self, key: str, default: Any = None) -> Any:
        """Dict-style access over both lifted fields and preserved extras."""
        if key in _ACTIVITY_FIELDS:
            value = getattr(self, key)
            return default if value is None else value
        return self.extra.get(key, default)

    def mark_detached(self, timestamp: str) -> None:
        self.detached = True
        self.deleted_at = timestamp
        self.modified_at = timestamp
        self.updated_at = timestamp

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Activity":
        extra = {k: v for k, v in raw.items() if k not in _ACTIVITY_FIELDS}
        return cls(
            id=raw.get("id"),
            parent_id=raw.get("parent_id"),
            type=raw.get("type") or "",
            position=raw.get("position"),
            data=_as_dict(raw.get("data")),
            refs=_as_dict(raw.get("refs")),
            detached=bool(raw.get("detached", False)),
            deleted_at=raw.get("deleted_at"),
            modified_at=raw.get("modified_at"),
            updated_at=raw.get("updated_at"),
            created_at=raw.get("created_at"),
            repository_id=raw.get("repository_id"),
            extra=extra,
            key_order=list(raw.keys()),
        )

    def to_dict(self) -> Dict[str, Any]:
        values = {name: getattr(self, name) for name in _ACTIVITY_FIELDS}
        values.update(self.extra)
        return _ordered(values, self.key_order, fresh=not self.key_order)


@dataclass(eq=False)
class TeachingElement:
    """A learner-facing content item owned by exactly one leaf container."""

    id: Any
    activity_id: Optional[int] = None
    type: str = ""
    position: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    refs: Dict[str, Any] = field(default_factory=dict)
    detached: bool = False
    deleted_at: Optional[str] = None
    modified_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list, repr=False)

    @property
    def is_live(self) -> bool:
        return not self.detached and not self.deleted_at

    @property
    def linked_refs(self) -> List[Any]:
        """Cross-reference targets from ``refs.linked``.

        A list is taken as is; a non-empty string counts as one reference.
        Anything else (absent, null, mapping, number) means no reference.
        """
        linked = self.refs.get("linked")
        if isinstance(linked, (list, tuple)):
            return list(linked)
        if isinstance(linked, str) and linked:
            return [linked]
        return []

    @property
    def is_output_only(self) -> bool:
        return self.data.get("inputOutputType") == OUTPUT_ONLY

    def get(self, key: str, default: Any = None) -> Any:
        if key in _ELEMENT_FIELDS:
            value = getattr(self, key)
            return default if value is None else value
        return self.extra.get(key, default)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TeachingElement":
        extra = {k: v for k, v in raw.items() if k not in _ELEMENT_FIELDS}
        return cls(
            id=raw.get("id"),
            activity_id=raw.get("activity_id"),
            type=raw.get("type") or "",
            position=raw.get("position"),
            data=_as_dict(raw.get("data")),
            meta=_as_dict(raw.get("meta")),
            refs=_as_dict(raw.get("refs")),
            detached=bool(raw.get("detached", False)),
            deleted_at=raw.get("deleted_at"),
            modified_at=raw.get("modified_at"),
            updated_at=raw.get("updated_at"),
            created_at=raw.get("created_at"),
            extra=extra,
            key_order=list(raw.keys()),
        )

    def to_dict(self) -> Dict[str, Any]:
        values = {name: getattr(self, name) for name in _ELEMENT_FIELDS}
        values.update(self.extra)
        return _ordered(values, self.key_order, fresh=not self.key_order)


@dataclass
class ArchiveEntry:
    """One member of the source archive, kept so it can be re-written unchanged."""

    name: str
    is_dir: bool = False
    payload: Optional[bytes] = None
    mode: int = 0o644
    mtime: float = 0.0


def _find_document(documents: Dict[str, Any], needle: str) -> str:
    matches = [name for name in documents if needle in name]
    if len(matches) != 1:
        raise MissingDocumentError(needle, found=matches)
    return matches[0]


@dataclass
class CourseContext:
    """In-memory representation of an exported course.

    Attributes
    ----------
    documents
        Mapping of logical document name (archive member name) to decoded JSON.
    activities
        Parsed contents of the ``activities`` document.
    elements
        Parsed contents of the ``elements`` document.
    entries
        Archive members in original order (empty when built from documents).
    metadata
        Arbitrary key/value pairs (source file, course name, ...).
    """

    documents: Dict[str, Any] = field(default_factory=dict)
    activities: List[Activity] = field(default_factory=list)
    elements: List[TeachingElement] = field(default_factory=list)
    entries: List[ArchiveEntry] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    activities_name: str = ""
    elements_name: str = ""

    @classmethod
    def from_documents(cls, documents: Dict[str, Any]) -> "CourseContext":
        """Build a context from named JSON documents.

        Raises
        ------
        MissingDocumentError
            If there is not exactly one ``activities`` and one ``elements`` document.
        """
        activities_name = _find_document(documents, "activities")
        elements_name = _find_document(documents, "elements")
        return cls(
            documents=dict(documents),
            activities=[Activity.from_dict(a) for a in documents[activities_name] or []],
            elements=[TeachingElement.from_dict(e) for e in documents[elements_name] or []],
            activities_name=activities_name,
            elements_name=elements_name,
        )

    def find_document(self, needle: str) -> Optional[Any]:
        """Return the first document whose name contains *needle*, or None."""
        for name, data in self.documents.items():
            if needle in name:
                return data
        return None

    def to_documents(self) -> Dict[str, Any]:
        """Write the working collections back into the named document set."""
        self.documents[self.activities_name] = [a.to_dict() for a in self.activities]
        self.documents[self.elements_name] = [e.to_dict() for e in self.elements]
        return self.documents
