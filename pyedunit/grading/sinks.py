"""Output sinks: the VPL console protocol and a JSON result file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Literal, TextIO

from pydantic import BaseModel, Field

from .aggregator import EvaluationResult

LOGGER = logging.getLogger("pyedunit.sinks")

COMMENT_MARKER = "Comment :=>>"
GRADE_MARKER = "Grade :=>>"
DEFAULT_RESULTS_PATH = Path("/autograder/results/results.json")


class SinkError(RuntimeError):
    """A result could not be published."""


class ConsoleSink:
    """Writes one ``Comment :=>>`` line per transcript line, then the grade."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def publish(self, result: EvaluationResult) -> None:
        stream = self.stream or sys.stdout
        try:
            for line in result.transcript:
                for text in line.render().splitlines() or [""]:
                    stream.write(f"{COMMENT_MARKER}{text}\n")
            stream.write(f"{GRADE_MARKER}{result.score}\n")
            stream.flush()
        except (OSError, ValueError) as exc:
            LOGGER.error("Console output failed: %s", exc)
            raise SinkError(f"Cannot write transcript to console: {exc}") from exc


class AssertionRecord(BaseModel):
    name: str
    outcome: Literal["passed", "failed"]
    message: str


class ResultRecord(BaseModel):
    """Structured result written for the autograder host."""

    score: float = Field(..., ge=0)
    max_score: float = Field(..., gt=0)
    tests: List[AssertionRecord] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: EvaluationResult, *, scale: float) -> "ResultRecord":
        tests = [
            AssertionRecord(
                name=f"{grade.check}: {grade.description}",
                outcome="passed" if grade.passed else "failed",
                message=grade.description,
            )
            for grade in result.grades
        ]
        return cls(score=result.score / scale, max_score=result.max_score / scale, tests=tests)


class ResultFileSink:
    """Writes the scaled score and per-assertion outcomes as JSON."""

    def __init__(self, path: Path = DEFAULT_RESULTS_PATH, *, scale: float = 10.0) -> None:
        if scale <= 0:
            raise ValueError(f"scale must be positive: {scale}")
        self.path = Path(path)
        self.scale = scale

    def publish(self, result: EvaluationResult) -> ResultRecord:
        record = ResultRecord.from_result(result, scale=self.scale)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                handle.write(record.model_dump_json(indent=2) + "\n")
        except OSError as exc:
            LOGGER.error("Could not write results to %s: %s", self.path, exc)
            raise SinkError(f"Cannot write results to {self.path}: {exc}") from exc
        LOGGER.info("Wrote results to %s", self.path)
        return record


__all__ = [
    "AssertionRecord",
    "COMMENT_MARKER",
    "ConsoleSink",
    "DEFAULT_RESULTS_PATH",
    "GRADE_MARKER",
    "ResultFileSink",
    "ResultRecord",
    "SinkError",
]
