"""Shared fixtures for Course Batch Toolkit tests.

Courses are built from plain dictionaries shaped like the exported
``activities.json`` / ``elements.json`` documents so every test exercises the
same decoding path as a real archive.
"""

import io
import json
import logging
import tarfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from course_batch_toolkit.config import ConfigManager
from course_batch_toolkit.core.models import CourseContext
from course_batch_toolkit.core.node_store import NodeStore

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

FOLDER = "LONG_HLXP_SCHEMA/FOLDER"
PAGE = "LONG_HLXP_SCHEMA/PAGE"
SC = "SECTION_CONTAINER"
SECTION = "SECTION"
INVISIBLE = "INVISIBLE_CONTAINER"
EXPAND = "EXPAND_CONTAINER"
QSET = "CEK_QUESTION_SET"
HTML = "HTML"
VIDEO = "CDA_VIDEO"


class CourseBuilder:
    """Accumulates activity/element dictionaries for one test course."""

    def __init__(self, repository_id: int = 7) -> None:
        self.repository_id = repository_id
        self.activities: List[Dict[str, Any]] = []
        self.elements: List[Dict[str, Any]] = []
        self.repository: Dict[str, Any] = {"id": repository_id, "name": "Test Course"}

    def activity(
        self,
        id: int,
        type: str,
        parent_id: Optional[int] = None,
        position: int = 1,
        data: Optional[Dict[str, Any]] = None,
        detached: bool = False,
        **extra: Any,
    ) -> Dict[str, Any]:
        raw = {
            "id": id,
            "repository_id": self.repository_id,
            "parent_id": parent_id,
            "type": type,
            "position": position,
            "data": data if data is not None else {},
            "refs": {},
            "detached": detached,
            "created_at": "2024-01-01T00:00:00.000Z",
            "updated_at": "2024-01-01T00:00:00.000Z",
            "deleted_at": "2024-02-01T00:00:00.000Z" if detached else None,
            "modified_at": None,
            "uid": f"uid-{id}",
        }
        raw.update(extra)
        self.activities.append(raw)
        return raw

    def element(
        self,
        id: int,
        activity_id: int,
        type: str = HTML,
        position: int = 1,
        data: Optional[Dict[str, Any]] = None,
        meta: Optional[Dict[str, Any]] = None,
        refs: Optional[Dict[str, Any]] = None,
        detached: bool = False,
        **extra: Any,
    ) -> Dict[str, Any]:
        raw = {
            "id": id,
            "activity_id": activity_id,
            "type": type,
            "position": position,
            "data": data if data is not None else {},
            "meta": meta if meta is not None else {},
            "refs": refs if refs is not None else {},
            "detached": detached,
            "created_at": "2024-01-01T00:00:00.000Z",
            "updated_at": "2024-01-01T00:00:00.000Z",
            "deleted_at": "2024-02-01T00:00:00.000Z" if detached else None,
        }
        raw.update(extra)
        self.elements.append(raw)
        return raw

    def page_with_leaves(self, page_id: int, leaves: List[Dict[str, Any]], parent_id: Optional[int] = None) -> None:
        """One page -> one section container -> one section per entry of *leaves*.

        Each leaf entry is ``{"id", "type", "elements": [(id, type), ...]}``.
        Section ids are ``page_id * 100 + n``; the container is ``page_id * 100``.
        """
        self.activity(page_id, PAGE, parent_id, data={"title": f"Page {page_id}"})
        sc_id = page_id * 100
        self.activity(sc_id, SC, page_id)
        for index, leaf in enumerate(leaves, start=1):
            section_id = sc_id + index
            self.activity(section_id, SECTION, sc_id, position=index, data={"title": f"S{index}"})
            self.activity(leaf["id"], leaf.get("type", INVISIBLE), section_id, position=1)
            for position, (element_id, element_type) in enumerate(leaf.get("elements", []), start=1):
                self.element(element_id, leaf["id"], element_type, position)

    def documents(self) -> Dict[str, Any]:
        return {
            "activities.json": json.loads(json.dumps(self.activities)),
            "elements.json": json.loads(json.dumps(self.elements)),
            "repository.json": dict(self.repository),
            "manifest.json": {"version": 1},
        }

    def context(self) -> CourseContext:
        return CourseContext.from_documents(self.documents())

    def store(self) -> NodeStore:
        return NodeStore.from_context(self.context())


def build_archive(documents: Dict[str, Any], extra_files: Optional[Dict[str, bytes]] = None) -> bytes:
    """Gzipped tar bytes holding *documents* as JSON members plus *extra_files*."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        members = {name: json.dumps(doc).encode("utf-8") for name, doc in documents.items()}
        members.update(extra_files or {})
        for name, payload in members.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point user overrides at an empty directory and reload config per test."""
    config_dir = tmp_path / "user_config"
    config_dir.mkdir()
    monkeypatch.setenv("COURSE_TOOLKIT_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("COURSE_TOOLKIT_LOG_DIR", str(tmp_path / "logs"))
    ConfigManager.reset()
    yield config_dir
    ConfigManager.reset()


@pytest.fixture
def builder():
    """Fresh CourseBuilder for composing a test course."""
    return CourseBuilder()


@pytest.fixture
def scenario_course(builder):
    """Page 1 -> container 2 -> section 3 -> leaves 4, 5 each with one HTML element."""
    builder.activity(1, PAGE, None, data={"title": "Welcome"})
    builder.activity(2, SC, 1)
    builder.activity(3, SECTION, 2, data={"title": "Intro", "locked": False})
    builder.activity(4, INVISIBLE, 3, position=1)
    builder.activity(5, INVISIBLE, 3, position=2)
    builder.element(10, 4, HTML, 1, data={"content": "<p>First</p>"})
    builder.element(11, 5, HTML, 1, data={"content": "<p>Second</p>"})
    return builder


@pytest.fixture
def archive_path(tmp_path, scenario_course):
    """Scenario course written as a .tgz with one non-JSON asset."""
    path = tmp_path / "course.tgz"
    path.write_bytes(build_archive(scenario_course.documents(), {"assets/logo.png": b"\x89PNG"}))
    return path


@pytest.fixture
def make_archive():
    """The archive builder, for tests that need custom members."""
    return build_archive
