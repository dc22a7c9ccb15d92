# -*- coding: utf-8 -*-
"""Application version detection utilities.

Provides a single public function, ``get_app_version()``, which tries the
installed distribution metadata first and a ``version.txt`` beside the
package root second.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

DISTRIBUTION_NAME = "course-batch-toolkit"

_CACHED_VERSION: Optional[str] = None


def _normalize(text: str) -> str:
    return text if text.startswith("v") else f"v{text}"


def get_app_version() -> str:
    """Return the application version string (e.g., ``v1.2.3``).

    Development fallback: "vdev" when neither source is available.
    """
    global _CACHED_VERSION
    if _CACHED_VERSION:
        return _CACHED_VERSION

    try:
        _CACHED_VERSION = _normalize(metadata.version(DISTRIBUTION_NAME))
        return _CACHED_VERSION
    except metadata.PackageNotFoundError:
        pass

    version_file = Path(__file__).resolve().parent.parent / "version.txt"
    if version_file.exists():
        text = version_file.read_text(encoding="ascii", errors="ignore").strip()
        if text:
            _CACHED_VERSION = _normalize(text)
            return _CACHED_VERSION

    _CACHED_VERSION = "vdev"
    return _CACHED_VERSION
