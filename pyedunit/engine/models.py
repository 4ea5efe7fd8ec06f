"""Result types produced by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from pyedunit.syntax import Position


class Severity(str, Enum):
    """Ordinary violations cost points; cheat violations raise an integrity flag."""

    ORDINARY = "ordinary"
    CHEAT = "cheat"


@dataclass(frozen=True, slots=True)
class Violation:
    """One recorded failure of a rule at a specific position."""

    rule: str
    severity: Severity
    unit: str
    position: Position
    message: str

    @property
    def is_cheat(self) -> bool:
        return self.severity is Severity.CHEAT

    def render(self) -> str:
        return f"{self.position}: {self.message}"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A rule that could not be evaluated on one unit."""

    unit: str
    rule: str
    message: str

    def render(self) -> str:
        return f"{self.unit}: {self.message}"


@dataclass(frozen=True)
class EngineReport:
    """Ordered violations plus the total deduction for one evaluation."""

    violations: Tuple[Violation, ...] = ()
    deduction: int = 0
    diagnostics: Tuple[Diagnostic, ...] = ()
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def cheats(self) -> List[Violation]:
        return [violation for violation in self.violations if violation.is_cheat]

    @property
    def integrity_violated(self) -> bool:
        return any(violation.is_cheat for violation in self.violations)

    def by_rule(self, rule: str) -> List[Violation]:
        return [violation for violation in self.violations if violation.rule == rule]

    def render(self) -> List[str]:
        """Transcript lines for the violations and diagnostics, in order."""
        lines = [violation.render() for violation in self.violations]
        lines.extend(diagnostic.render() for diagnostic in self.diagnostics)
        return lines


__all__ = ["Diagnostic", "EngineReport", "Severity", "Violation"]
