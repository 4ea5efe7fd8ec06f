"""Randomized test data helpers for author-written checks.

A :class:`DataGenerator` wraps one random source; the grading aggregator
creates a fresh generator per run (optionally seeded) and hands it to every
check, so runs never share random state.
"""

from __future__ import annotations

import random
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, TypeVar

import rstr

T = TypeVar("T")

DEFAULT_CHARS = "[a-zA-Z]"
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1


class DataGenerator:
    """Generates random characters, strings, numbers and lists."""

    def __init__(self, rng: Optional[random.Random] = None, *, seed: Optional[int] = None) -> None:
        self.random = rng if rng is not None else random.Random(seed)
        self._xeger = rstr.Rstr(self.random)

    def s(self, *patterns: str) -> str:
        """Concatenation of one random match per regular expression."""
        return "".join(self._xeger.xeger(pattern) for pattern in patterns)

    def s_range(self, min_len: int, max_len: int) -> str:
        """Random string of [a-zA-Z] characters, length in [min_len, max_len]."""
        if min_len < 0 or max_len < min_len:
            raise ValueError(f"Invalid length range [{min_len}, {max_len}]")
        return self.s(f"{DEFAULT_CHARS}{{{min_len},{max_len}}}")

    def c(self, pattern: str = DEFAULT_CHARS) -> str:
        """First character of a string generated from ``pattern``."""
        generated = self.s(pattern)
        if not generated:
            raise ValueError(f"Pattern {pattern!r} generated an empty string")
        return generated[0]

    def b(self) -> bool:
        return self.random.random() < 0.5

    def i(self, *bounds: int) -> int:
        """``i()`` any 32 bit int, ``i(max)`` in [0, max[, ``i(min, max)`` in [min, max[."""
        if not bounds:
            return self.random.randint(INT_MIN, INT_MAX)
        if len(bounds) == 1:
            return self.random.randrange(bounds[0])
        if len(bounds) == 2:
            low, high = bounds
            return low + self.random.randrange(high - low)
        raise TypeError(f"i() takes at most 2 bounds ({len(bounds)} given)")

    def d(self, *bounds: float) -> float:
        """``d()`` in [0.0, 1.0[, ``d(max)`` in [0.0, max[, ``d(min, max)`` in [min, max[."""
        if not bounds:
            return self.random.random()
        if len(bounds) == 1:
            return self.random.random() * bounds[0]
        if len(bounds) == 2:
            low, high = bounds
            return low + self.random.random() * (high - low)
        raise TypeError(f"d() takes at most 2 bounds ({len(bounds)} given)")

    def l(self, min_len: int, max_len: int, supplier: Callable[[], T]) -> List[T]:  # noqa: E743
        """List of random length in [min_len, max_len] filled by ``supplier``."""
        if min_len < 0 or max_len < min_len:
            raise ValueError(f"Invalid length range [{min_len}, {max_len}]")
        return self.l_fixed(self.i(min_len, max_len + 1), supplier)

    def l_fixed(self, length: int, supplier: Callable[[], T]) -> List[T]:
        if length < 0:
            raise ValueError(f"List length must not be negative: {length}")
        return [supplier() for _ in range(length)]


def t(*values: Any) -> Tuple[Any, ...]:
    """A test data tuple of two to eight values."""
    if not 2 <= len(values) <= 8:
        raise TypeError(f"t() builds tuples of 2 to 8 values ({len(values)} given)")
    return tuple(values)


def cases(*rows: T) -> List[T]:
    """A table of test data tuples for ``CheckContext.grading_each``."""
    return list(rows)


def repr_value(value: Any) -> str:
    """String form with visible whitespace; mappings are key-sorted."""
    if isinstance(value, str):
        return '"' + value.replace(" ", "⎵").replace("\t", "⇥").replace("\n", "↩\n") + '"'
    if isinstance(value, Mapping):
        entries = sorted((repr_value(key), repr_value(item)) for key, item in value.items())
        return "{" + ", ".join(f"{key}: {item}" for key, item in entries) + "}"
    if isinstance(value, (list, tuple)):
        inner = ", ".join(repr_value(item) for item in value)
        return f"({inner})" if isinstance(value, tuple) else f"[{inner}]"
    return str(value)


def assert_equals(expected: Any, actual: Any) -> bool:
    """Compare values by their string forms; mapping key order is ignored."""
    if isinstance(expected, Mapping) and isinstance(actual, Mapping):
        return _sorted_items(expected) == _sorted_items(actual)
    return str(expected) == str(actual)


def _sorted_items(mapping: Mapping[Any, Any]) -> Sequence[Tuple[str, str]]:
    return sorted((str(key), str(value)) for key, value in mapping.items())


__all__ = ["DEFAULT_CHARS", "DataGenerator", "assert_equals", "cases", "repr_value", "t"]
