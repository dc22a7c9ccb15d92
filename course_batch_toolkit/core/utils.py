from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no GUI or disk I/O; they can be
used across all layers of the toolkit.
"""

from datetime import datetime, timezone
import logging
import re
import uuid
from typing import Any, Mapping, Optional

from lxml import etree as ET
from lxml import html as lxml_html

__all__ = [
    "utc_timestamp",
    "make_uuid",
    "get_course_name",
    "sec_to_hms",
    "html_to_text",
    "truncate",
    "dig",
]

logger = logging.getLogger(__name__)

DEFAULT_COURSE_NAME = "processed_course"

# Characters that don't work well in file names: * / \ : " ' < > | ? ^ % ! @ # $ & + = ` ~ [ ] { } ( ) ; ,
_UNSAFE_FILENAME_CHARS = re.compile(r"""[/\\:"'<>|?*^%!@#$&+=`~\[\]{}();,\s]""")
_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E]")


def utc_timestamp() -> str:
    """Current UTC time in the export's ISO-8601 form (``2024-01-31T12:00:00.000Z``)."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def make_uuid() -> str:
    return str(uuid.uuid4())


def get_course_name(repository: Optional[Mapping[str, Any]]) -> str:
    """Return a file-system-safe course name from the ``repository`` document.

    Non-printable and non-ASCII characters become underscores, as do
    characters that are awkward in file names.  Falls back to
    ``processed_course`` when the document has no name.
    """
    if not isinstance(repository, Mapping) or "name" not in repository:
        return DEFAULT_COURSE_NAME
    name = _NON_PRINTABLE_ASCII.sub("_", str(repository["name"]))
    return _UNSAFE_FILENAME_CHARS.sub("_", name).strip()


def sec_to_hms(seconds: Any) -> str:
    """Format a duration in seconds as ``H:MM:SS``."""
    try:
        total = int(float(seconds))
    except (TypeError, ValueError):
        return "(unknown)"
    hours, rest = divmod(total, 3600)
    minutes, sec = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{sec:02d}"


def html_to_text(markup: Optional[str]) -> str:
    """Return the visible text of an HTML fragment with whitespace collapsed.

    Falls back to the raw string when the fragment cannot be parsed.
    """
    if not markup or not isinstance(markup, str):
        return ""
    try:
        fragment = lxml_html.fragment_fromstring(markup, create_parent="div")
        text = fragment.text_content()
    except (ET.ParserError, ET.XMLSyntaxError, ValueError) as exc:
        logger.debug("Could not parse HTML fragment, using raw text: %s", exc)
        text = markup
    return " ".join(text.split())


def truncate(text: str, limit: int) -> str:
    """Cut *text* to *limit* characters, marking the cut with ``...``."""
    if limit > 0 and len(text) > limit:
        return text[:limit] + "..."
    return text


def dig(payload: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested mappings by *keys*, returning *default* on any gap.

    Used for per-type payload fields that may be absent on a given node.
    """
    current = payload
    for key in keys:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return default if current is None else current
