"""Grades and the run-scoped score accumulator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple


class ScoreStateError(RuntimeError):
    """Raised when a finalized ScoreState is mutated or finalized twice."""


@dataclass(frozen=True, slots=True)
class Grade:
    """Outcome of one weighted assertion."""

    check: str
    description: str
    awarded: int
    possible: int
    passed: bool = True


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


class ScoreState:
    """Running total of grades and deductions for one evaluation run.

    Points only accumulate until :meth:`finalize` clamps them once; after
    that the state is read-only.
    """

    def __init__(self, max_score: int = 100) -> None:
        if max_score <= 0:
            raise ValueError(f"max_score must be positive: {max_score}")
        self.max_score = max_score
        self._grades: List[Grade] = []
        self._deduction = 0
        self._final: Optional[int] = None

    def _ensure_open(self) -> None:
        if self._final is not None:
            raise ScoreStateError("Score has already been finalized")

    def add_grade(self, grade: Grade) -> Grade:
        self._ensure_open()
        if grade.possible < 0 or not 0 <= grade.awarded <= grade.possible:
            raise ValueError(f"Invalid grade {grade.awarded}/{grade.possible} for {grade.description!r}")
        self._grades.append(grade)
        return grade

    def deduct(self, points: int) -> None:
        self._ensure_open()
        if points < 0:
            raise ValueError(f"Deductions must not be negative: {points}")
        self._deduction += points

    @property
    def grades(self) -> Tuple[Grade, ...]:
        return tuple(self._grades)

    @property
    def awarded(self) -> int:
        return sum(grade.awarded for grade in self._grades)

    @property
    def possible(self) -> int:
        return sum(grade.possible for grade in self._grades)

    @property
    def deduction(self) -> int:
        return self._deduction

    @property
    def raw(self) -> int:
        return self.awarded - self._deduction

    @property
    def finalized(self) -> bool:
        return self._final is not None

    def finalize(self, *, zero: bool = False) -> int:
        """Clamp the raw total into [0, max_score] exactly once."""
        self._ensure_open()
        self._final = 0 if zero else clamp(self.raw, 0, self.max_score)
        return self._final

    @property
    def final(self) -> int:
        if self._final is None:
            raise ScoreStateError("Score has not been finalized yet")
        return self._final


__all__ = ["Grade", "ScoreState", "ScoreStateError", "clamp"]
