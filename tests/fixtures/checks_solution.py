"""Checks for the solution.py fixture, loaded through ``pyedunit evaluate --checks``."""

import solution

from pyedunit.dsl import cases, t
from pyedunit.grading import CheckRegistry
from pyedunit.syntax import NodeKind

checks = CheckRegistry()


@checks.check("add() sums two numbers")
def add_sums(ctx):
    ctx.grading(20, "add(1, 2) == 3", lambda: solution.add(1, 2) == 3)
    ctx.grading(10, "add(-1, 1) == 0", lambda: solution.add(-1, 1) == 0)


@checks.check("shout() upper-cases and appends an exclamation mark")
def shout_works(ctx):
    data = cases(t("hi", "HI!"), t("a b", "A B!"), t("", "!"))
    ctx.grading_each(30, "shout() for fixed words", data, lambda text, expected: solution.shout(text) == expected)


@checks.check("count_vowels() on random words")
def vowels_random(ctx):
    words = ctx.data.l(5, 10, lambda: ctx.data.s_range(0, 12))
    ctx.grading_each(
        30,
        "count_vowels() for random words",
        words,
        lambda word: solution.count_vowels(word) == sum(1 for char in word.lower() if char in "aeiou"),
    )


@checks.check("three functions are defined")
def structure(ctx):
    ctx.grading(
        10,
        "solution.py defines add, shout and count_vowels",
        lambda: ctx.inspect(
            "solution.py",
            lambda unit: [node.name for node in unit.select(NodeKind.METHOD)] == ["add", "shout", "count_vowels"],
        ),
    )
