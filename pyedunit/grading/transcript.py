"""Feedback lines that make up the transcript of an evaluation run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pyedunit.syntax import Position


class LineKind(str, Enum):
    INTEGRITY = "integrity"
    VIOLATION = "violation"
    DIAGNOSTIC = "diagnostic"
    CHECK = "check"
    GRADE = "grade"
    COMMENT = "comment"
    SUMMARY = "summary"


@dataclass(frozen=True, slots=True)
class FeedbackLine:
    kind: LineKind
    text: str
    position: Optional[Position] = None
    unit: Optional[str] = None

    @property
    def prefix(self) -> str:
        if self.position is not None:
            return f"{self.position}: "
        if self.unit:
            return f"{self.unit}: "
        return ""

    def render(self) -> str:
        return self.prefix + self.text


__all__ = ["FeedbackLine", "LineKind"]
