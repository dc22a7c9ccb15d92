from __future__ import annotations

"""Typed options consumed by the batch pipeline.

A front-end (CLI, form, script) builds a :class:`BatchOptions`, usually from
the packaged defaults via :meth:`BatchOptions.from_config`, and hands it to
the batch service.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .exceptions import InvalidOptionError
from .field_editors import LOCK_VALUES, NO_CHANGE, QSET_DISPLAY_VALUES, REQUIRED_VALUES, SHOW_ANSWERS_VALUES
from .sectioning import SECTION_SCOPES

__all__ = ["BatchOptions", "SCRUBBING_VALUES", "parse_number_option"]

SCRUBBING_VALUES = ("no_scrub", "scrub_ok")

_ALLOWED: Dict[str, tuple] = {
    "lock_unlock": tuple(LOCK_VALUES) + (NO_CHANGE,),
    "required_optional": tuple(REQUIRED_VALUES) + (NO_CHANGE,),
    "section_scope": SECTION_SCOPES + (NO_CHANGE,),
    "scrubbing": SCRUBBING_VALUES + (NO_CHANGE,),
    "show_answers": tuple(SHOW_ANSWERS_VALUES) + (NO_CHANGE,),
    "qset_display": tuple(QSET_DISPLAY_VALUES) + (NO_CHANGE,),
}


def parse_number_option(raw: Any) -> int:
    """Parse a numeric form value; blank or non-numeric text means "no change" (-1).

    A trailing ``%`` is accepted so "80%" and "80" are equivalent.
    """
    if raw is None:
        return -1
    if isinstance(raw, bool):
        return -1
    if isinstance(raw, (int, float)):
        value = raw
    else:
        text = str(raw).strip()
        if text.endswith("%"):
            text = text[:-1].strip()
        if not text:
            return -1
        value = text
    # NaN raises ValueError, infinities raise OverflowError
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return -1


@dataclass
class BatchOptions:
    """Edits requested for one run.

    ``num_attempts`` and ``pass_percent`` are applied only when > 0.
    """

    lock_unlock: str = NO_CHANGE
    required_optional: str = NO_CHANGE
    section_scope: str = NO_CHANGE
    scrubbing: str = NO_CHANGE
    video_intro: bool = False
    video_credits: bool = False
    show_answers: str = NO_CHANGE
    qset_display: str = NO_CHANGE
    num_attempts: int = -1
    pass_percent: int = -1
    clean: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "BatchOptions":
        """Build options from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        for key in ("num_attempts", "pass_percent"):
            if key in kwargs:
                kwargs[key] = parse_number_option(kwargs[key])
        for key in ("video_intro", "video_credits", "clean"):
            if key in kwargs:
                kwargs[key] = bool(kwargs[key])
        options = cls(**kwargs)
        options.validate()
        return options

    @classmethod
    def from_config(cls, overrides: Optional[Mapping[str, Any]] = None) -> "BatchOptions":
        """Packaged/user defaults from configuration, updated by *overrides*."""
        from course_batch_toolkit.config import ConfigManager

        values: Dict[str, Any] = dict(ConfigManager().get_default_options())
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls.from_mapping(values)

    def validate(self) -> None:
        for name, allowed in _ALLOWED.items():
            value = getattr(self, name)
            if value not in allowed:
                raise InvalidOptionError(name, value, allowed)

    @property
    def changes_structure(self) -> bool:
        return self.section_scope != NO_CHANGE

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
