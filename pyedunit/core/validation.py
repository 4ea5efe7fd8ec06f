"""Pre-flight checks for the files an evaluation run is pointed at.

Submissions only have to be readable; whether they parse is reported by the
rule engine. Policy files must hold a YAML mapping (or nothing at all).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

import yaml

LOGGER = logging.getLogger("pyedunit.validation")


class ValidationFailure(ValueError):
    """Raised in strict mode when an input file is rejected."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")


@dataclass
class ValidationResult:
    """Errors reject an input; warnings are only logged."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Any = None

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise ValidationFailure(self.errors)


class InputValidator:
    """Validates submission and policy paths before a run starts.

    Args:
        strict: Raise ValidationFailure instead of returning an invalid result
    """

    def __init__(self, *, strict: bool = True):
        self.strict = strict

    def _report(self, result: ValidationResult, label: str) -> ValidationResult:
        for error in result.errors:
            LOGGER.error("%s rejected: %s", label, error)
        for warning in result.warnings:
            LOGGER.warning("%s: %s", label, warning)
        if self.strict:
            result.raise_if_invalid()
        return result

    @staticmethod
    def _readable(path: Path, result: ValidationResult) -> bool:
        if not path.exists():
            result.errors.append(f"File does not exist: {path}")
        elif not path.is_file():
            result.errors.append(f"Not a regular file: {path}")
        else:
            try:
                with path.open("rb") as handle:
                    empty = not handle.read(1)
            except OSError as exc:
                result.errors.append(f"Cannot open {path}: {exc}")
            else:
                if empty:
                    result.warnings.append(f"File is empty: {path}")
        return result.valid

    def validate_file_exists(self, path: Path | str) -> ValidationResult:
        candidate = Path(path)
        result = ValidationResult()
        if self._readable(candidate, result):
            result.data = candidate
        return self._report(result, "File")

    def validate_submission(self, path: Path | str) -> ValidationResult:
        """A submission must be a readable file; other suffixes only warn."""
        candidate = Path(path)
        result = ValidationResult()
        if self._readable(candidate, result):
            result.data = candidate
            if candidate.suffix != ".py":
                result.warnings.append(f"Submission is not a .py file: {path}")
        return self._report(result, "Submission")

    def validate_yaml_file(self, path: Path | str) -> ValidationResult:
        """Load a policy file; ``data`` is the parsed mapping ({} when empty)."""
        candidate = Path(path)
        result = ValidationResult()
        if not self._readable(candidate, result):
            return self._report(result, "Policy")
        try:
            loaded = yaml.safe_load(candidate.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            result.errors.append(f"Invalid YAML in {path}: {exc}")
        except (OSError, UnicodeDecodeError) as exc:
            result.errors.append(f"Cannot read {path}: {exc}")
        else:
            if loaded is None:
                result.warnings.append(f"No settings in {path}, defaults apply")
                result.data = {}
            elif isinstance(loaded, dict):
                result.data = loaded
            else:
                result.errors.append(f"Expected mapping at root of {path}, received {type(loaded).__name__}")
        return self._report(result, "Policy")


strict_validation = InputValidator(strict=True)


__all__ = [
    "InputValidator",
    "ValidationFailure",
    "ValidationResult",
    "strict_validation",
]
