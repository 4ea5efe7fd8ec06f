"""Test data DSL for check authors."""

from .data import DEFAULT_CHARS, DataGenerator, assert_equals, cases, repr_value, t

__all__ = ["DEFAULT_CHARS", "DataGenerator", "assert_equals", "cases", "repr_value", "t"]
