"""Scoring aggregator: checks, grades, transcript and output sinks."""

from .aggregator import Aggregator, EvaluationResult, run
from .checks import Check, CheckContext, CheckRegistry
from .score import Grade, ScoreState, ScoreStateError, clamp
from .sinks import ConsoleSink, ResultFileSink, ResultRecord, SinkError
from .transcript import FeedbackLine, LineKind

__all__ = [
    "Aggregator",
    "Check",
    "CheckContext",
    "CheckRegistry",
    "ConsoleSink",
    "EvaluationResult",
    "FeedbackLine",
    "Grade",
    "LineKind",
    "ResultFileSink",
    "ResultRecord",
    "ScoreState",
    "ScoreStateError",
    "SinkError",
    "clamp",
    "run",
]
