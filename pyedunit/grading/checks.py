"""Author-written checks: ordered registration and the context they run in."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from pyedunit.core.config import Policy
from pyedunit.dsl import DataGenerator, repr_value
from pyedunit.syntax import Node, Position, SourceUnit, build

from .score import Grade
from .transcript import FeedbackLine, LineKind

LOGGER = logging.getLogger("pyedunit.checks")

Outcome = bool | Callable[[], Any]


@dataclass(frozen=True)
class Check:
    """A named check routine; ``body`` receives a CheckContext."""

    name: str
    description: str
    body: Callable[["CheckContext"], Any]


class CheckRegistry:
    """Checks in the order their authors declared them.

    Example:
        checks = CheckRegistry()

        @checks.check("add() sums two numbers")
        def add_sums(ctx):
            ctx.grading(50, "add(1, 2) == 3", lambda: solution.add(1, 2) == 3)
    """

    def __init__(self, checks: Iterable[Check] = ()) -> None:
        self._checks: Dict[str, Check] = {}
        for check in checks:
            self._register(check)

    def _register(self, check: Check) -> Check:
        if check.name in self._checks:
            raise ValueError(f"Check {check.name} already registered")
        self._checks[check.name] = check
        return check

    def add(
        self,
        body: Callable[["CheckContext"], Any],
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Check:
        check_name = name or getattr(body, "__name__", None) or f"check_{len(self._checks) + 1}"
        doc = (getattr(body, "__doc__", None) or "").strip().splitlines()
        text = description or (doc[0] if doc else check_name)
        return self._register(Check(name=check_name, description=text, body=body))

    def check(self, description: str | None = None, *, name: str | None = None) -> Callable:
        """Decorator form of :meth:`add`; returns the function unchanged."""

        def decorator(func: Callable[["CheckContext"], Any]) -> Callable[["CheckContext"], Any]:
            self.add(func, name=name, description=description)
            return func

        return decorator

    def names(self) -> List[str]:
        return list(self._checks)

    def __iter__(self) -> Iterator[Check]:
        return iter(list(self._checks.values()))

    def __len__(self) -> int:
        return len(self._checks)


class CheckContext:
    """What a check body may do: grade assertions, comment, inspect sources.

    Grades and lines are handed back to the aggregator through ``record`` and
    ``emit``; the context never touches the score itself.
    """

    def __init__(
        self,
        check: Check,
        *,
        policy: Policy,
        units: Mapping[str, SourceUnit],
        data: DataGenerator,
        record: Callable[[Grade], None],
        emit: Callable[[FeedbackLine], None],
    ) -> None:
        self.check = check
        self.policy = policy
        self.units = units
        self.data = data
        self._record = record
        self._emit = emit

    # ------------------------------------------------------------------
    # Grading

    def grading(self, points: int, description: str, outcome: Outcome) -> bool:
        """Award ``points`` when ``outcome`` holds (a bool or a zero-arg callable)."""
        if points < 0:
            raise ValueError(f"Points must not be negative: {points}")
        passed, error = self._resolve(outcome)
        self._grade(points, description, passed)
        if error:
            self.comment(f"{description}: {error}")
        return passed

    def grading_each(
        self,
        points: int,
        description: str,
        cases: Iterable[Any],
        predicate: Callable[..., Any],
        explain: Optional[Callable[..., str]] = None,
    ) -> bool:
        """Award ``points`` when ``predicate`` holds for every test case.

        Tuple cases are unpacked into the predicate (and ``explain``). The
        first failing case is commented and ends the evaluation.
        """
        if points < 0:
            raise ValueError(f"Points must not be negative: {points}")
        passed = True
        for case in cases:
            args = case if isinstance(case, tuple) else (case,)
            ok, error = self._resolve(lambda: predicate(*args))
            if ok:
                continue
            passed = False
            detail = explain(*args) if explain is not None else f"failed for {repr_value(case)}"
            self.comment(f"{description}: {detail}" + (f" ({error})" if error else ""))
            break
        self._grade(points, description, passed)
        return passed

    def _grade(self, points: int, description: str, passed: bool) -> None:
        grade = Grade(
            check=self.check.name,
            description=description,
            awarded=points if passed else 0,
            possible=points,
            passed=passed,
        )
        self._record(grade)
        if passed:
            text = f"[OK] {description} ({points} points)"
        else:
            text = f"[FAILED] {description} (0 of {points} points)"
        self._emit(FeedbackLine(LineKind.GRADE, text))

    @staticmethod
    def _resolve(outcome: Outcome) -> tuple[bool, str | None]:
        if not callable(outcome):
            return bool(outcome), None
        try:
            return bool(outcome()), None
        except Exception as exc:  # noqa: BLE001 - a raising assertion is a failed assertion
            return False, f"raised {type(exc).__name__}: {exc}"

    # ------------------------------------------------------------------
    # Feedback

    def comment(self, text: str, where: Node | Position | None = None) -> None:
        position = where.position if isinstance(where, Node) else where
        self._emit(FeedbackLine(LineKind.COMMENT, text, position=position))

    # ------------------------------------------------------------------
    # Sources

    def unit(self, name: str | Path) -> SourceUnit:
        """The SourceUnit for a submission path or file name."""
        key = str(name)
        if key in self.units:
            return self.units[key]
        for unit in self.units.values():
            if unit.name == key:
                return unit
        raise KeyError(f"No submission named {key}")

    def inspect(self, target: SourceUnit | str | Path, predicate: Callable[[SourceUnit], Any]) -> bool:
        """Evaluate a predicate on a parsed source; False when parsing fails."""
        if isinstance(target, SourceUnit):
            unit = target
        else:
            try:
                unit = self.unit(target)
            except KeyError:
                unit = build(target)
        if not unit.parsable:
            self.comment(f"Could not parse file: {unit.path}")
            return False
        try:
            return bool(predicate(unit))
        except Exception as exc:  # noqa: BLE001
            LOGGER.info("Inspection of %s failed: %s", unit.path, exc)
            self.comment(f"Check failed: {type(exc).__name__}: {exc}")
            self.comment(f"Is there a syntax error in your submission? {unit.path}")
            return False


__all__ = ["Check", "CheckContext", "CheckRegistry"]
