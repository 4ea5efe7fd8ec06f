"""
Configuration and input validation shared by the rule engine, the grading
aggregator and the CLI.
"""

from .config import RULE_NAMES, Policy, RuleSettings, dump_policy, load_policy
from .validation import InputValidator, ValidationFailure, ValidationResult, strict_validation

__all__ = [
    "InputValidator",
    "Policy",
    "RULE_NAMES",
    "RuleSettings",
    "ValidationFailure",
    "ValidationResult",
    "dump_policy",
    "load_policy",
    "strict_validation",
]
