"""Tri-state verdict values.

Verdicts have three meanings that a plain `bool | None` blurs together:
"checked and healthy", "checked and broken", and "not checked at all"
(probing disabled). Keeping them as an enum makes the third case explicit
at every call site.
"""

from __future__ import annotations

from enum import Enum


class TriState(str, Enum):
    """Verdict value: yes / no / unknown."""

    UNKNOWN = "unknown"
    YES = "yes"
    NO = "no"

    @classmethod
    def from_bool(cls, value: bool | None) -> "TriState":
        """Map an optional boolean onto the tri-state."""

        if value is None:
            return cls.UNKNOWN
        return cls.YES if value else cls.NO

    def as_bool(self) -> bool | None:
        """Inverse of `from_bool`, for arithmetic-style comparisons."""

        if self is TriState.UNKNOWN:
            return None
        return self is TriState.YES

    @property
    def known(self) -> bool:
        return self is not TriState.UNKNOWN

    def label(self) -> str:
        """Human readable label for tables and logging."""

        return {TriState.YES: "Yes", TriState.NO: "No"}.get(self, "-")
