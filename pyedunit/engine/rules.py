"""Structural and cheat-detection rules.

Each rule inspects one parsable SourceUnit and yields Violations; it never
decides what a violation costs. Rules are stateless, so a single instance
can be shared by every evaluation.
"""

from __future__ import annotations

import ast
import re
from typing import Iterable, Iterator, Tuple

from pyedunit.core.config import Policy
from pyedunit.syntax import Node, NodeKind, Position, SourceUnit, dotted_name

from .models import Severity, Violation

ENTRY_POINT = "main"
CONSTANT_NAME = re.compile(r"^_?[A-Z][A-Z0-9_]*$")

_TYPE_REF_SITES = {
    "return": "return type",
    "parameter": "parameter type",
    "variable": "variable type",
}
_FREEZING_CALLS = {"frozenset", "tuple", "bytes", "range"}
_DECLARATION_CALLS = {"TypeVar", "NewType", "ParamSpec", "TypeVarTuple"}
_RECORD_DECORATORS = {"dataclass", "attrs", "define", "frozen"}
_RECORD_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag", "NamedTuple", "TypedDict", "Protocol", "BaseModel"}


def matches_prefix(name: str, prefixes: Iterable[str]) -> bool:
    """True when ``name`` equals a prefix or lives below it (dotted)."""
    for prefix in prefixes:
        if name == prefix or name.startswith(prefix + "."):
            return True
    return False


def last_segment(name: str) -> str:
    return name.rsplit(".", 1)[-1]


class Rule:
    """Base class for a named, independently toggleable rule."""

    name: str = ""
    severity: Severity = Severity.ORDINARY
    description: str = ""

    def applies(self, policy: Policy) -> bool:
        return policy.is_enabled(self.name)

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        raise NotImplementedError

    def violation(self, unit: SourceUnit, where: Node | Position, message: str) -> Violation:
        position = where if isinstance(where, Position) else where.position
        return Violation(
            rule=self.name,
            severity=self.severity,
            unit=unit.path,
            position=position,
            message=message,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ImportAllowListRule(Rule):
    name = "imports"
    description = "Only imports from the allow-list may be used."
    template = "Import of {module} is not allowed (allowed: {allowed})"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        allowed = ", ".join(policy.allowed_imports) or "none"
        for node in unit.select(NodeKind.IMPORT):
            if node.relative:
                continue
            rejected = [module for module in node.modules if not matches_prefix(module, policy.allowed_imports)]
            if rejected:
                yield self.violation(unit, node, self.template.format(module=", ".join(rejected), allowed=allowed))


class LoopRule(Rule):
    name = "loops"
    description = "Explicit loops and internal iteration calls are not allowed."
    loop_template = "{construct} is not allowed, use recursion instead"
    call_template = "internal iteration via {name}() is not allowed, use recursion instead"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.LOOP):
            yield self.violation(unit, node, self.loop_template.format(construct=node.label))
        iteration_calls = set(policy.iteration_calls)
        for node in unit.select(NodeKind.CALL):
            callee = node.name
            if last_segment(callee) in iteration_calls:
                yield self.violation(unit, node, self.call_template.format(name=last_segment(callee)))


class MethodRule(Rule):
    name = "methods"
    description = "No function definitions except the main() entry point."
    template = "No methods allowed except {entry}(): {name}()"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.METHOD):
            if node.name == ENTRY_POINT:
                continue
            yield self.violation(unit, node, self.template.format(entry=ENTRY_POINT, name=node.name))


class LambdaRule(Rule):
    name = "lambdas"
    description = "Lambda expressions are not allowed."
    template = "lambda expression is not allowed"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.LAMBDA):
            yield self.violation(unit, node, self.template)


class InnerClassRule(Rule):
    name = "inner_classes"
    description = "Classes must not be nested in classes or functions."
    class_template = "Inner classes are not allowed: {name}"
    member_template = "Inner classes are not allowed: {kind} {name} of {owner}"

    _members = (NodeKind.FIELD, NodeKind.METHOD, NodeKind.CONSTRUCTOR)

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.CLASS):
            if isinstance(node.scope, ast.Module):
                continue
            yield self.violation(unit, node, self.class_template.format(name=node.name))
            for member in node.children():
                if member.kind in self._members and member.scope is node.node:
                    yield self.violation(
                        unit,
                        member,
                        self.member_template.format(kind=member.kind.value, name=member.name, owner=node.name),
                    )


class CollectionInterfaceRule(Rule):
    name = "collection_interfaces"
    description = "Declared types must be concrete collections, not abstract collection interfaces."
    template = "Use a concrete collection instead of {name} as {site}"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        abstract = set(policy.abstract_collection_types)
        for node in unit.select(NodeKind.TYPE_REF):
            site = _TYPE_REF_SITES.get(node.role or "")
            if site is None:
                continue
            if last_segment(node.name) in abstract:
                yield self.violation(unit, node, self.template.format(name=node.name, site=site))


class ConsoleOutputRule(Rule):
    name = "console_output"
    description = "Writing to the console is not allowed."
    template = "Console output is not allowed: {name}()"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        console = set(policy.console_calls)
        for node in unit.select(NodeKind.CALL):
            if node.name in console:
                yield self.violation(unit, node, self.template.format(name=node.name))


class GlobalVariableRule(Rule):
    name = "global_variables"
    description = "Module and class level variables must be constants."
    template = "Global variables are not allowed: {name} (only constants)"

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.FIELD):
            if is_constant_field(node):
                continue
            yield self.violation(unit, node, self.template.format(name=node.name))


class ForbiddenImportRule(Rule):
    name = "cheat_imports"
    severity = Severity.CHEAT
    description = "Reflection and process control modules must not be imported."
    template = "[CHEAT] Forbidden import: {module}"

    def applies(self, policy: Policy) -> bool:
        return policy.realistic and policy.is_enabled(self.name)

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        for node in unit.select(NodeKind.IMPORT):
            if node.relative:
                continue
            forbidden = [module for module in node.modules if matches_prefix(module, policy.forbidden_imports)]
            if forbidden:
                yield self.violation(unit, node, self.template.format(module=", ".join(forbidden)))


class ForbiddenCallRule(Rule):
    name = "cheat_calls"
    severity = Severity.CHEAT
    description = "Process termination and dynamic code execution must not be called."
    template = "[CHEAT] Forbidden call: {name}()"

    def applies(self, policy: Policy) -> bool:
        return policy.realistic and policy.is_enabled(self.name)

    def check(self, unit: SourceUnit, policy: Policy) -> Iterator[Violation]:
        forbidden = set(policy.forbidden_calls)
        for node in unit.select(NodeKind.CALL):
            if node.name in forbidden:
                yield self.violation(unit, node, self.template.format(name=node.name))


DEFAULT_RULES: Tuple[Rule, ...] = (
    ImportAllowListRule(),
    LoopRule(),
    MethodRule(),
    LambdaRule(),
    InnerClassRule(),
    CollectionInterfaceRule(),
    ConsoleOutputRule(),
    GlobalVariableRule(),
    ForbiddenImportRule(),
    ForbiddenCallRule(),
)


# ----------------------------------------------------------------------
# Constant detection


def is_constant_field(node: Node) -> bool:
    """Whether a module or class level assignment binds a constant.

    Constants are ``Final`` annotations, UPPER_CASE names bound to immutable
    literals, dunder names, bare annotations and declarations such as
    ``TypeVar``. Annotated fields of record classes (dataclasses, enums,
    named tuples) describe instances and are exempt as well.
    """
    stmt = node.node
    names = node.targets
    if not names or all(name.startswith("__") and name.endswith("__") for name in names):
        return True
    if isinstance(stmt, ast.AnnAssign):
        if stmt.value is None or _is_final(stmt.annotation):
            return True
        if _in_record_class(node):
            return True
    if isinstance(node.scope, ast.ClassDef) and _is_enum_class(node.scope):
        return True
    value = stmt.value
    if isinstance(value, ast.Call) and last_segment(dotted_name(value.func) or "") in _DECLARATION_CALLS:
        return True
    return all(CONSTANT_NAME.match(last_segment(name)) for name in names) and is_immutable_literal(value)


def is_immutable_literal(expr: ast.AST | None, frozen: bool = False) -> bool:
    if expr is None:
        return False
    if isinstance(expr, ast.Constant):
        return True
    if isinstance(expr, ast.UnaryOp):
        return is_immutable_literal(expr.operand, frozen)
    if isinstance(expr, ast.BinOp):
        return is_immutable_literal(expr.left, frozen) and is_immutable_literal(expr.right, frozen)
    if isinstance(expr, ast.Tuple):
        return all(is_immutable_literal(element, frozen) for element in expr.elts)
    if frozen and isinstance(expr, (ast.List, ast.Set)):
        return all(is_immutable_literal(element, frozen) for element in expr.elts)
    if isinstance(expr, ast.Call) and isinstance(expr.func, ast.Name) and expr.func.id in _FREEZING_CALLS:
        return not expr.keywords and all(is_immutable_literal(arg, True) for arg in expr.args)
    return False


def _is_final(annotation: ast.AST) -> bool:
    if isinstance(annotation, ast.Subscript):
        annotation = annotation.value
    return last_segment(dotted_name(annotation) or "") == "Final"


def _in_record_class(node: Node) -> bool:
    scope = node.scope
    if not isinstance(scope, ast.ClassDef):
        return False
    for decorator in scope.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if last_segment(dotted_name(target) or "") in _RECORD_DECORATORS:
            return True
    return _is_enum_class(scope) or any(last_segment(dotted_name(base) or "") in _RECORD_BASES for base in scope.bases)


def _is_enum_class(scope: ast.ClassDef) -> bool:
    return any(last_segment(dotted_name(base) or "").endswith(("Enum", "Flag")) for base in scope.bases)


__all__ = [
    "CollectionInterfaceRule",
    "ConsoleOutputRule",
    "DEFAULT_RULES",
    "ENTRY_POINT",
    "ForbiddenCallRule",
    "ForbiddenImportRule",
    "GlobalVariableRule",
    "ImportAllowListRule",
    "InnerClassRule",
    "LambdaRule",
    "LoopRule",
    "MethodRule",
    "Rule",
    "is_constant_field",
    "is_immutable_literal",
    "matches_prefix",
]
