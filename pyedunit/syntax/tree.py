"""Read-only query view over the syntax tree of one submission file.

Submissions are parsed with :mod:`ast`; this module classifies the parsed
nodes into the small vocabulary the rules work with (classes, fields,
methods, imports, calls, loops, ...) and hands them out as lightweight
:class:`Node` views in document order.
"""

from __future__ import annotations

import ast
import logging
import tokenize
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional, Tuple

LOGGER = logging.getLogger("pyedunit.syntax")


class NodeKind(str, Enum):
    """Kinds of nodes that can be selected from a SourceUnit."""

    CLASS = "class"
    FIELD = "field"
    CONSTRUCTOR = "constructor"
    METHOD = "method"
    CALLABLE = "callable"
    IMPORT = "import"
    CALL = "call"
    LAMBDA = "lambda"
    LOOP = "loop"
    VARIABLE = "variable"
    TYPE_REF = "type_ref"

    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


# Composite kinds are resolved in a single traversal.
COMPOSITE_KINDS = {
    NodeKind.CALLABLE: frozenset({NodeKind.METHOD, NodeKind.CONSTRUCTOR}),
}

CONSTRUCTOR_NAMES = frozenset({"__init__", "__new__"})

_SCOPES = (ast.Module, ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)
_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)
_LOOP_LABELS = {
    ast.For: "for loop",
    ast.AsyncFor: "async for loop",
    ast.While: "while loop",
    ast.ListComp: "list comprehension",
    ast.SetComp: "set comprehension",
    ast.DictComp: "dict comprehension",
    ast.GeneratorExp: "generator expression",
}
_UNLOCATED = (1 << 30, 0)


@dataclass(frozen=True, order=True)
class Position:
    """File, 1-based line and 1-based column of a node."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceUnit:
    """One submission file, parsed or marked unparsable.

    ``tree`` is ``None`` for the unparsable sentinel; ``error`` then says why.
    """

    path: str
    tree: Optional[ast.Module] = field(default=None, repr=False, compare=False)
    error: Optional[str] = None
    error_line: int = 1
    error_column: int = 1

    @property
    def parsable(self) -> bool:
        return self.tree is not None

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def error_position(self) -> Position:
        return Position(self.path, self.error_line, self.error_column)

    def position(self, node: ast.AST) -> Position:
        line = getattr(node, "lineno", None) or 1
        column = (getattr(node, "col_offset", None) or 0) + 1
        return Position(self.path, line, column)

    def select(self, kind: NodeKind | str) -> Iterator["Node"]:
        return select(self, kind)


@dataclass(frozen=True, eq=False)
class Node:
    """A classified view of one ast node inside a SourceUnit."""

    kind: NodeKind
    node: ast.AST = field(repr=False)
    unit: SourceUnit = field(repr=False)
    ancestors: Tuple[ast.AST, ...] = field(default=(), repr=False)
    role: Optional[str] = None

    @property
    def position(self) -> Position:
        return self.unit.position(self.node)

    @property
    def line(self) -> int:
        return self.position.line

    @property
    def scope(self) -> Optional[ast.AST]:
        """Nearest enclosing module, class, function or lambda."""
        for ancestor in reversed(self.ancestors):
            if isinstance(ancestor, _SCOPES):
                return ancestor
        return None

    @property
    def parent(self) -> Optional[ast.AST]:
        return self.ancestors[-1] if self.ancestors else None

    @property
    def name(self) -> str:
        node = self.node
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            return node.name
        if self.kind in (NodeKind.FIELD, NodeKind.VARIABLE):
            return ", ".join(self.targets)
        if self.kind is NodeKind.IMPORT:
            return ", ".join(self.modules)
        if isinstance(node, ast.Call):
            return call_name(node)
        if self.kind is NodeKind.TYPE_REF:
            return dotted_name(node) or ""
        if isinstance(node, ast.Lambda):
            return "lambda"
        return _LOOP_LABELS.get(type(node), type(node).__name__)

    @property
    def label(self) -> str:
        """Human-readable construct name (e.g. 'for loop')."""
        return _LOOP_LABELS.get(type(self.node), self.kind.value.replace("_", " "))

    @property
    def targets(self) -> List[str]:
        node = self.node
        if isinstance(node, ast.Assign):
            raw = node.targets
        elif isinstance(node, ast.AnnAssign):
            raw = [node.target]
        else:
            return []
        names: List[str] = []
        for target in raw:
            elements = target.elts if isinstance(target, (ast.Tuple, ast.List)) else [target]
            for element in elements:
                if isinstance(element, ast.Starred):
                    element = element.value
                name = dotted_name(element)
                if name:
                    names.append(name)
        return names

    @property
    def modules(self) -> List[str]:
        """Dotted names referenced by an import statement."""
        node = self.node
        if isinstance(node, ast.Import):
            return [alias.name for alias in node.names]
        if isinstance(node, ast.ImportFrom):
            if node.level:
                return ["." * node.level + (node.module or "")]
            return [f"{node.module}.{alias.name}" for alias in node.names]
        return []

    @property
    def relative(self) -> bool:
        return isinstance(self.node, ast.ImportFrom) and bool(self.node.level)

    def enclosing(self, *kinds: NodeKind) -> Optional["Node"]:
        """Nearest ancestor classified as one of ``kinds``."""
        wanted = _expand(kinds)
        for index in range(len(self.ancestors) - 1, -1, -1):
            ancestor = self.ancestors[index]
            for kind, role in _classify(ancestor, self.ancestors[:index], None):
                if kind in wanted:
                    return Node(kind, ancestor, self.unit, self.ancestors[:index], role)
        return None

    def children(self, kind: NodeKind | str | None = None) -> Iterator["Node"]:
        """Classified descendants in document order, optionally of one kind."""
        wanted = _expand((NodeKind(kind),)) if kind is not None else None
        walker = _walk(self.node, self.ancestors, self.role if self.kind is NodeKind.TYPE_REF else None)
        next(walker)
        for node, ancestors, role in walker:
            for found, found_role in _classify(node, ancestors, role):
                if wanted is None or found in wanted:
                    yield Node(found, node, self.unit, ancestors, found_role)


# ----------------------------------------------------------------------
# Building


def build_source(path: Path | str, text: str) -> SourceUnit:
    """Parse in-memory source text; never raises."""
    label = str(path)
    try:
        tree = ast.parse(text, filename=label)
    except SyntaxError as exc:
        LOGGER.info("Could not parse %s: %s", label, exc.msg)
        return SourceUnit(
            path=label,
            error=f"{exc.msg} (line {exc.lineno})" if exc.lineno else str(exc.msg),
            error_line=exc.lineno or 1,
            error_column=exc.offset or 1,
        )
    except (ValueError, RecursionError, MemoryError) as exc:
        LOGGER.info("Could not parse %s: %s", label, exc)
        return SourceUnit(path=label, error=str(exc) or type(exc).__name__)
    return SourceUnit(path=label, tree=tree)


def build(path: Path | str) -> SourceUnit:
    """Read and parse one submission file; never raises.

    Unreadable or undecodable files and syntax errors all yield the
    unparsable sentinel.
    """
    try:
        with tokenize.open(str(path)) as handle:
            text = handle.read()
    except (OSError, SyntaxError, ValueError) as exc:
        LOGGER.info("Could not read %s: %s", path, exc)
        return SourceUnit(path=str(path), error=f"cannot read file: {exc}")
    return build_source(path, text)


# ----------------------------------------------------------------------
# Selection


def select(unit: SourceUnit, kind: NodeKind | str) -> Iterator[Node]:
    """Yield nodes of ``kind`` in document order.

    Empty for unparsable units. Each call starts a fresh traversal.
    """
    wanted = _expand((NodeKind(kind),))
    if unit.tree is None:
        return
    for node, ancestors, role in _walk(unit.tree, (), None):
        for found, found_role in _classify(node, ancestors, role):
            if found in wanted:
                yield Node(found, node, unit, ancestors, found_role)


def walk(unit: SourceUnit) -> Iterator[Node]:
    """Every classified node of a unit in document order."""
    if unit.tree is None:
        return
    for node, ancestors, role in _walk(unit.tree, (), None):
        for found, found_role in _classify(node, ancestors, role):
            yield Node(found, node, unit, ancestors, found_role)


def dotted_name(node: ast.AST) -> Optional[str]:
    """``a.b.c`` for Name/Attribute chains, None for anything else."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    return None


def call_name(node: ast.Call) -> str:
    """Dotted callee of a call; unresolvable receivers render as ``?``."""
    func = node.func
    resolved = dotted_name(func)
    if resolved:
        return resolved
    if isinstance(func, ast.Attribute):
        return f"?.{func.attr}"
    return "?"


def _expand(kinds: Tuple[NodeKind, ...]) -> FrozenSet[NodeKind]:
    expanded = set()
    for kind in kinds:
        expanded |= COMPOSITE_KINDS.get(kind, {kind})
    return frozenset(expanded)


def _location(node: ast.AST) -> Tuple[int, int]:
    if hasattr(node, "lineno"):
        return (node.lineno, node.col_offset)
    located = [(child.lineno, child.col_offset) for child in ast.walk(node) if hasattr(child, "lineno")]
    return min(located) if located else _UNLOCATED


def _ordered_children(node: ast.AST) -> List[Tuple[str, ast.AST]]:
    children: List[Tuple[str, ast.AST]] = []
    for name, value in ast.iter_fields(node):
        if isinstance(value, ast.AST):
            children.append((name, value))
        elif isinstance(value, list):
            children.extend((name, item) for item in value if isinstance(item, ast.AST))
    # Decorators and return annotations are stored after the body.
    return sorted(children, key=lambda child: _location(child[1]))


def _annotation_role(parent: ast.AST, field_name: str, ancestors: Tuple[ast.AST, ...]) -> Optional[str]:
    if field_name == "returns" and isinstance(parent, _FUNCTIONS):
        return "return"
    if field_name == "annotation" and isinstance(parent, ast.arg):
        return "parameter"
    if field_name == "annotation" and isinstance(parent, ast.AnnAssign):
        return "variable" if isinstance(_scope_of(ancestors), _FUNCTIONS) else "field"
    return None


def _walk(
    node: ast.AST,
    ancestors: Tuple[ast.AST, ...],
    role: Optional[str],
) -> Iterator[Tuple[ast.AST, Tuple[ast.AST, ...], Optional[str]]]:
    yield node, ancestors, role
    lineage = ancestors + (node,)
    for field_name, child in _ordered_children(node):
        child_role = role or _annotation_role(node, field_name, ancestors)
        yield from _walk(child, lineage, child_role)


def _scope_of(ancestors: Tuple[ast.AST, ...]) -> Optional[ast.AST]:
    for ancestor in reversed(ancestors):
        if isinstance(ancestor, _SCOPES):
            return ancestor
    return None


def _classify(
    node: ast.AST,
    ancestors: Tuple[ast.AST, ...],
    role: Optional[str],
) -> List[Tuple[NodeKind, Optional[str]]]:
    parent = ancestors[-1] if ancestors else None
    if isinstance(node, ast.ClassDef):
        return [(NodeKind.CLASS, None)]
    if isinstance(node, _FUNCTIONS):
        if node.name in CONSTRUCTOR_NAMES and isinstance(parent, ast.ClassDef):
            return [(NodeKind.CONSTRUCTOR, None)]
        return [(NodeKind.METHOD, None)]
    if isinstance(node, (ast.Assign, ast.AnnAssign)):
        scope = _scope_of(ancestors)
        if isinstance(scope, (ast.Module, ast.ClassDef)):
            return [(NodeKind.FIELD, None)]
        if isinstance(scope, _FUNCTIONS):
            return [(NodeKind.VARIABLE, None)]
        return []
    if isinstance(node, (ast.Import, ast.ImportFrom)):
        return [(NodeKind.IMPORT, None)]
    if isinstance(node, ast.Call):
        return [(NodeKind.CALL, None)]
    if isinstance(node, ast.Lambda):
        return [(NodeKind.LAMBDA, None)]
    if type(node) in _LOOP_LABELS:
        return [(NodeKind.LOOP, None)]
    if role and isinstance(node, (ast.Name, ast.Attribute)) and not isinstance(parent, ast.Attribute):
        return [(NodeKind.TYPE_REF, role)]
    return []


__all__ = [
    "Node",
    "NodeKind",
    "Position",
    "SourceUnit",
    "build",
    "build_source",
    "call_name",
    "dotted_name",
    "select",
    "walk",
]
