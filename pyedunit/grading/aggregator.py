"""Runs checks and merges their grades with rule deductions into one score."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pyedunit.core.config import Policy
from pyedunit.dsl import DataGenerator
from pyedunit.engine import EngineReport, RuleEngine
from pyedunit.syntax import SourceUnit

from .checks import Check, CheckContext
from .score import Grade, ScoreState
from .transcript import FeedbackLine, LineKind

LOGGER = logging.getLogger("pyedunit.grading")


@dataclass(frozen=True)
class EvaluationResult:
    """Final score and complete transcript of one run."""

    score: int
    max_score: int
    transcript: Tuple[FeedbackLine, ...]
    grades: Tuple[Grade, ...]
    report: EngineReport
    raw_points: int = 0
    integrity_violated: bool = False
    failed_checks: Tuple[str, ...] = field(default_factory=tuple)

    def lines(self) -> List[str]:
        return [line.render() for line in self.transcript]


class Aggregator:
    """Drives one evaluation run.

    Every call to :meth:`run` owns a fresh ScoreState, transcript and random
    source; nothing is shared between runs.
    """

    def __init__(self, engine: RuleEngine | None = None, *, seed: int | None = None) -> None:
        self.engine = engine or RuleEngine()
        self.seed = seed

    def run(
        self,
        checks: Iterable[Check],
        policy: Policy,
        units: Sequence[SourceUnit],
        *,
        report: EngineReport | None = None,
        rng: random.Random | None = None,
    ) -> EvaluationResult:
        report = report if report is not None else self.engine.evaluate(policy, units)
        state = ScoreState(policy.max_score)
        transcript: List[FeedbackLine] = []
        data = DataGenerator(rng if rng is not None else random.Random(self.seed))
        by_path: Dict[str, SourceUnit] = {unit.path: unit for unit in units}

        integrity = report.integrity_violated
        if integrity:
            count = len(report.cheats)
            consequence = "score is set to 0" if policy.zero_on_cheat else "flagged for review"
            transcript.append(
                FeedbackLine(
                    LineKind.INTEGRITY,
                    f"[CHEAT] Integrity check failed: {count} cheat indicator(s) detected, {consequence}",
                )
            )
        for violation in report.violations:
            transcript.append(FeedbackLine(LineKind.VIOLATION, violation.message, position=violation.position))
        for diagnostic in report.diagnostics:
            transcript.append(FeedbackLine(LineKind.DIAGNOSTIC, diagnostic.message, unit=diagnostic.unit))
        state.deduct(report.deduction)

        failed: List[str] = []
        for number, check in enumerate(checks, start=1):
            transcript.append(FeedbackLine(LineKind.CHECK, f"Check {number}: {check.description}"))
            context = CheckContext(
                check,
                policy=policy,
                units=by_path,
                data=data,
                record=state.add_grade,
                emit=transcript.append,
            )
            try:
                check.body(context)
            except (Exception, SystemExit) as exc:  # noqa: BLE001 - submissions may raise anything, even exit()
                LOGGER.warning("Check %s failed: %r", check.name, exc, exc_info=True)
                failed.append(check.name)
                state.add_grade(
                    Grade(
                        check=check.name,
                        description=f"{check.name} did not complete",
                        awarded=0,
                        possible=0,
                        passed=False,
                    )
                )
                transcript.append(
                    FeedbackLine(
                        LineKind.DIAGNOSTIC,
                        f"[FAILED] Check {check.name} raised {type(exc).__name__}: {exc}",
                    )
                )

        score = state.finalize(zero=integrity and policy.zero_on_cheat)
        transcript.append(FeedbackLine(LineKind.SUMMARY, self._summary(state, report, score)))
        return EvaluationResult(
            score=score,
            max_score=policy.max_score,
            transcript=tuple(transcript),
            grades=state.grades,
            report=report,
            raw_points=state.raw,
            integrity_violated=integrity,
            failed_checks=tuple(failed),
        )

    @staticmethod
    def _summary(state: ScoreState, report: EngineReport, score: int) -> str:
        parts = [f"{state.awarded} of {state.possible} points"]
        if report.deduction:
            parts.append(f"-{report.deduction} for {len(report.violations)} violation(s)")
        return f"Current points: {score} of {state.max_score} ({', '.join(parts)})"


def run(
    checks: Iterable[Check],
    policy: Policy,
    units: Sequence[SourceUnit],
    *,
    seed: Optional[int] = None,
) -> EvaluationResult:
    """Evaluate units with the default rule catalogue and run the checks."""
    return Aggregator(seed=seed).run(checks, policy, units)


__all__ = ["Aggregator", "EvaluationResult", "run"]
