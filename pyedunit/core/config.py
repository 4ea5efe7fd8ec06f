"""
Typed policy configuration for a pyedunit evaluation run.

A policy is read once before the first rule runs and never changes
afterwards; every component receives it explicitly instead of consulting
process-wide switches.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

RULE_NAMES: Tuple[str, ...] = (
    "imports",
    "loops",
    "methods",
    "lambdas",
    "inner_classes",
    "collection_interfaces",
    "console_output",
    "global_variables",
    "cheat_imports",
    "cheat_calls",
)

DEFAULT_ALLOWED_IMPORTS: Tuple[str, ...] = (
    "__future__",
    "collections",
    "dataclasses",
    "functools",
    "itertools",
    "math",
    "random",
    "re",
    "string",
    "typing",
)

# Reflection, process control and interpreter internals.
DEFAULT_FORBIDDEN_IMPORTS: Tuple[str, ...] = (
    "atexit",
    "builtins",
    "ctypes",
    "gc",
    "importlib",
    "inspect",
    "multiprocessing",
    "pty",
    "signal",
    "subprocess",
)

DEFAULT_FORBIDDEN_CALLS: Tuple[str, ...] = (
    "exit",
    "quit",
    "sys.exit",
    "os._exit",
    "os.abort",
    "os.kill",
    "os.system",
    "os.popen",
    "eval",
    "exec",
    "compile",
    "__import__",
)

DEFAULT_CONSOLE_CALLS: Tuple[str, ...] = ("print", "sys.stdout.write", "sys.stdout.writelines", "pprint")

DEFAULT_ITERATION_CALLS: Tuple[str, ...] = ("map", "filter", "reduce", "starmap", "forEach", "for_each")

DEFAULT_ABSTRACT_COLLECTIONS: Tuple[str, ...] = (
    "AbstractSet",
    "Collection",
    "Container",
    "Iterable",
    "Iterator",
    "Mapping",
    "MutableMapping",
    "MutableSequence",
    "MutableSet",
    "Sequence",
)


class RuleSettings(BaseModel):
    """Enable flag and penalty weight of one rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    penalty: int = Field(default=10, ge=0, description="Points deducted per occurrence (or once, see per_occurrence).")
    per_occurrence: bool = Field(default=True, description="Deduct for every violation instead of once per rule.")

    def deduction(self, occurrences: int) -> int:
        if occurrences <= 0:
            return 0
        return self.penalty * occurrences if self.per_occurrence else self.penalty


def _default_rules() -> Dict[str, RuleSettings]:
    # Loops, methods and lambdas are allowed unless an assignment asks otherwise.
    permissive = {"loops", "methods", "lambdas"}
    cheats = {"cheat_imports", "cheat_calls"}
    rules: Dict[str, RuleSettings] = {}
    for name in RULE_NAMES:
        if name in cheats:
            rules[name] = RuleSettings(enabled=True, penalty=0)
        else:
            rules[name] = RuleSettings(enabled=name not in permissive)
    return rules


class Policy(BaseModel):
    """Instructor policy: which rules apply, what they cost, and grading options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rules: Dict[str, RuleSettings] = Field(default_factory=_default_rules, validate_default=True)
    allowed_imports: Tuple[str, ...] = DEFAULT_ALLOWED_IMPORTS
    forbidden_imports: Tuple[str, ...] = DEFAULT_FORBIDDEN_IMPORTS
    forbidden_calls: Tuple[str, ...] = DEFAULT_FORBIDDEN_CALLS
    console_calls: Tuple[str, ...] = DEFAULT_CONSOLE_CALLS
    iteration_calls: Tuple[str, ...] = DEFAULT_ITERATION_CALLS
    abstract_collection_types: Tuple[str, ...] = DEFAULT_ABSTRACT_COLLECTIONS
    realistic: bool = Field(
        default=True,
        description="Real submissions are evaluated; cheat rules only run when this is set.",
    )
    zero_on_cheat: bool = Field(default=True, description="Force the final score to zero when cheating is detected.")
    max_score: int = Field(default=100, ge=1)
    syntax_error_penalty: int = Field(default=0, ge=0)
    result_scale: float = Field(default=10.0, gt=0, description="Divisor applied to the score in the result file.")

    @field_validator(
        "allowed_imports",
        "forbidden_imports",
        "forbidden_calls",
        "console_calls",
        "iteration_calls",
        "abstract_collection_types",
        mode="before",
    )
    @classmethod
    def strip_items(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())
        return value

    @model_validator(mode="before")
    @classmethod
    def merge_rule_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "rules" not in data:
            return data

        payload = dict(data)
        overrides = payload.get("rules") or {}
        if not isinstance(overrides, Mapping):
            raise ValueError("rules must be a mapping of rule name to settings")
        unknown = sorted(set(overrides) - set(RULE_NAMES))
        if unknown:
            raise ValueError(f"Unknown rules: {', '.join(unknown)}. Valid rules: {', '.join(RULE_NAMES)}")

        merged: Dict[str, Any] = {}
        for name, default in _default_rules().items():
            override = overrides.get(name)
            if override is None:
                merged[name] = default
            elif isinstance(override, bool):
                # Shorthand: `loops: true` toggles the rule without touching its weight.
                merged[name] = default.model_copy(update={"enabled": override})
            elif isinstance(override, RuleSettings):
                merged[name] = override
            elif isinstance(override, dict):
                merged[name] = {**default.model_dump(), **override}
            else:
                raise ValueError(f"Invalid settings for rule {name}: {override!r}")
        payload["rules"] = merged
        return payload

    @field_validator("rules")
    @classmethod
    def freeze_rules(cls, value: Dict[str, RuleSettings]) -> Mapping[str, RuleSettings]:
        # Item assignment on policy.rules raises TypeError.
        return MappingProxyType(dict(value))

    @field_serializer("rules")
    def dump_rules(self, rules: Mapping[str, RuleSettings]) -> Dict[str, Dict[str, Any]]:
        return {name: settings.model_dump() for name, settings in rules.items()}

    # ------------------------------------------------------------------

    def settings(self, rule: str) -> RuleSettings:
        try:
            return self.rules[rule]
        except KeyError:
            raise KeyError(f"Unknown rule {rule!r}") from None

    def is_enabled(self, rule: str) -> bool:
        return self.settings(rule).enabled

    def with_overrides(self, **changes: Any) -> "Policy":
        """Return a new validated policy with top-level fields replaced."""
        payload = self.model_dump()
        payload.update(changes)
        try:
            return Policy.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(f"Invalid policy overrides: {sorted(changes)}") from exc

    def with_rules(self, **toggles: bool | Dict[str, Any]) -> "Policy":
        """Return a new policy with the given rules switched on/off (or re-weighted)."""
        rules: Dict[str, Any] = {name: settings.model_dump() for name, settings in self.rules.items()}
        for name, value in toggles.items():
            rules[name] = value
        return self.with_overrides(rules=rules)

    @classmethod
    def strict(cls) -> "Policy":
        """Every structural prohibition switched on."""
        return cls(rules={name: True for name in RULE_NAMES})


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def load_policy(path: Path) -> Policy:
    """Parse a policy YAML file into a frozen Policy."""
    path = path.expanduser().resolve()
    data = read_yaml_file(path)
    # Allow the policy to live under a top-level `policy:` key next to other host settings.
    if isinstance(data.get("policy"), dict):
        data = data["policy"]
    try:
        return Policy.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid policy in {path}") from exc


def dump_policy(policy: Policy, path: Path) -> Path:
    """Write a policy as YAML so instructors can start from the defaults."""
    payload = policy.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)
    return path


__all__ = [
    "DEFAULT_ALLOWED_IMPORTS",
    "Policy",
    "RULE_NAMES",
    "RuleSettings",
    "dump_policy",
    "load_policy",
    "read_yaml_file",
]
