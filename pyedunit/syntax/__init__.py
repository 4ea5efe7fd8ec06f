"""Syntax tree view used by the rule engine and by author-written checks."""

from .tree import Node, NodeKind, Position, SourceUnit, build, build_source, call_name, dotted_name, select, walk

CLASS = NodeKind.CLASS
FIELD = NodeKind.FIELD
CONSTRUCTOR = NodeKind.CONSTRUCTOR
METHOD = NodeKind.METHOD
CALLABLE = NodeKind.CALLABLE
IMPORT = NodeKind.IMPORT
CALL = NodeKind.CALL
LAMBDA = NodeKind.LAMBDA
LOOP = NodeKind.LOOP
VARIABLE = NodeKind.VARIABLE
TYPE_REF = NodeKind.TYPE_REF

__all__ = [
    "CALL",
    "CALLABLE",
    "CLASS",
    "CONSTRUCTOR",
    "FIELD",
    "IMPORT",
    "LAMBDA",
    "LOOP",
    "METHOD",
    "Node",
    "NodeKind",
    "Position",
    "SourceUnit",
    "TYPE_REF",
    "VARIABLE",
    "build",
    "build_source",
    "call_name",
    "dotted_name",
    "select",
    "walk",
]
