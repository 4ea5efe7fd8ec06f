"""Runs the rule catalogue over a set of SourceUnits."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from pyedunit.core.config import Policy
from pyedunit.syntax import SourceUnit

from .models import Diagnostic, EngineReport, Severity, Violation
from .rules import DEFAULT_RULES, Rule

LOGGER = logging.getLogger("pyedunit.engine")

SYNTAX_RULE = "syntax"


class RuleEngine:
    """Evaluates a fixed, ordered rule catalogue against submission units."""

    def __init__(self, rules: Sequence[Rule] | None = None) -> None:
        self.rules: Tuple[Rule, ...] = tuple(rules if rules is not None else DEFAULT_RULES)
        names = [rule.name for rule in self.rules]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rule names: {duplicates}")

    def evaluate(self, policy: Policy, units: Iterable[SourceUnit]) -> EngineReport:
        """Return the ordered violations and the total deduction.

        Violations are ordered by unit (input order), then line, then column;
        violations at the same position keep catalogue order.
        """
        collected: List[Tuple[int, Violation]] = []
        diagnostics: List[Diagnostic] = []

        for index, unit in enumerate(units):
            if not unit.parsable:
                collected.append((index, self._syntax_violation(unit)))
                continue
            for rule in self.rules:
                if not rule.applies(policy):
                    continue
                try:
                    found = list(rule.check(unit, policy))
                except Exception as exc:  # noqa: BLE001 - one broken rule must not stop the run
                    LOGGER.warning("Rule %s failed on %s: %s", rule.name, unit.path, exc, exc_info=True)
                    diagnostics.append(
                        Diagnostic(
                            unit=unit.path,
                            rule=rule.name,
                            message=f"rule {rule.name} could not be evaluated ({type(exc).__name__}: {exc})",
                        )
                    )
                    continue
                collected.extend((index, violation) for violation in found)

        collected.sort(key=lambda item: (item[0], item[1].position.line, item[1].position.column))
        violations = tuple(violation for _, violation in collected)
        counts = Counter(violation.rule for violation in violations)
        deduction = self._deduction(policy, violations, counts)
        LOGGER.debug("Evaluated %d violation(s), deduction %d", len(violations), deduction)
        return EngineReport(
            violations=violations,
            deduction=deduction,
            diagnostics=tuple(diagnostics),
            counts=dict(counts),
        )

    def _syntax_violation(self, unit: SourceUnit) -> Violation:
        return Violation(
            rule=SYNTAX_RULE,
            severity=Severity.ORDINARY,
            unit=unit.path,
            position=unit.error_position,
            message=f"Could not parse file: {unit.error or 'unknown error'}",
        )

    def _deduction(self, policy: Policy, violations: Sequence[Violation], counts: Counter) -> int:
        total = policy.syntax_error_penalty * counts.get(SYNTAX_RULE, 0)
        ordinary = {violation.rule for violation in violations if violation.severity is Severity.ORDINARY}
        for rule in self.rules:
            if rule.name in ordinary:
                total += policy.settings(rule.name).deduction(counts[rule.name])
        return total


def evaluate(policy: Policy, units: Iterable[SourceUnit]) -> EngineReport:
    """Evaluate the default rule catalogue."""
    return RuleEngine().evaluate(policy, units)


__all__ = ["RuleEngine", "SYNTAX_RULE", "evaluate"]
