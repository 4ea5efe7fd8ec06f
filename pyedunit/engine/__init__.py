"""Constraint and cheat-detection rule engine."""

from .evaluator import SYNTAX_RULE, RuleEngine, evaluate
from .models import Diagnostic, EngineReport, Severity, Violation
from .rules import DEFAULT_RULES, ENTRY_POINT, Rule

__all__ = [
    "DEFAULT_RULES",
    "Diagnostic",
    "ENTRY_POINT",
    "EngineReport",
    "Rule",
    "RuleEngine",
    "SYNTAX_RULE",
    "Severity",
    "Violation",
    "evaluate",
]
