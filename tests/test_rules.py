from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from pyedunit.core.config import RULE_NAMES, Policy
from pyedunit.engine import RuleEngine, Severity
from pyedunit.syntax import Position, build, build_source

FIXTURES = Path(__file__).resolve().parent / "fixtures"
NIGHTMARE = FIXTURES / "nightmare.py"
EVIL = FIXTURES / "evil.py"


def _strict_policy(**overrides) -> Policy:
    return Policy.strict().with_overrides(allowed_imports=["math"], **overrides)


def _locations(report, rule: str) -> list[tuple[int, int]]:
    return [(v.position.line, v.position.column) for v in report.by_rule(rule)]


def _unit(source: str, name: str = "submission.py"):
    return build_source(name, dedent(source))


def test_nightmare_imports_and_methods() -> None:
    report = RuleEngine().evaluate(_strict_policy(), [build(NIGHTMARE)])

    assert _locations(report, "imports") == [(line, 1) for line in range(1, 7)]
    assert _locations(report, "methods") == [(21, 1), (25, 1), (34, 9)]
    assert all(v.position.line != 13 for v in report.violations), "main() must never be flagged"


def test_nightmare_positions_for_every_rule() -> None:
    report = RuleEngine().evaluate(_strict_policy(), [build(NIGHTMARE)])

    assert _locations(report, "loops") == [(15, 5), (17, 20)]
    assert _locations(report, "lambdas") == [(17, 24)]
    assert _locations(report, "console_output") == [(18, 5)]
    assert _locations(report, "collection_interfaces") == [(21, 29), (25, 21), (26, 10)]
    assert _locations(report, "inner_classes") == [(31, 5), (32, 9), (34, 9)]
    assert _locations(report, "global_variables") == [(9, 1), (32, 9)]
    assert _locations(report, "cheat_imports") == [(6, 1)]


def test_rendered_lines_carry_file_position_prefix() -> None:
    report = RuleEngine().evaluate(_strict_policy(), [build(NIGHTMARE)])
    lines = report.render()

    assert any(line.endswith("nightmare.py:15:5: for loop is not allowed, use recursion instead") for line in lines)
    assert any("nightmare.py:1:1: Import of os is not allowed" in line for line in lines)
    assert any("nightmare.py:18:5: Console output is not allowed: print()" in line for line in lines)


def test_loop_rule_reports_two_distinct_messages() -> None:
    unit = _unit(
        """
        def main(items):
            for item in items:
                pass
            items.forEach(handle)
        """
    )
    policy = Policy().with_rules(loops=True)
    report = RuleEngine().evaluate(policy, [unit])

    loops = report.by_rule("loops")
    assert len(loops) == 2
    assert loops[0].message != loops[1].message
    assert "for loop" in loops[0].message
    assert "forEach()" in loops[1].message

    disabled = RuleEngine().evaluate(policy.with_rules(loops=False), [unit])
    assert disabled.by_rule("loops") == []


def test_constant_is_exempt_but_adjacent_mutable_field_is_not() -> None:
    unit = _unit(
        """
        MAX_SIZE = 10
        cache = {}
        NAMES = ("a", "b")
        LOOKUP = {"a": 1}
        RATE: Final = 2
        __all__ = ["main"]
        """
    )
    report = RuleEngine().evaluate(Policy(), [unit])

    flagged = [v.message for v in report.by_rule("global_variables")]
    assert len(flagged) == 2
    assert "cache" in flagged[0]
    assert "LOOKUP" in flagged[1]


def test_record_classes_and_class_constants() -> None:
    unit = _unit(
        """
        from dataclasses import dataclass
        from enum import Enum


        @dataclass
        class Point:
            x: int = 0
            y: int = 0


        class Color(Enum):
            RED = 1


        class Counter:
            STEP = 1
            instances = []
        """
    )
    report = RuleEngine().evaluate(Policy(), [unit])

    assert [v.message for v in report.by_rule("global_variables")] == [
        "Global variables are not allowed: instances (only constants)"
    ]


def test_inner_class_with_two_members_yields_three_violations() -> None:
    unit = _unit(
        """
        class Outer:
            class Inner:
                def __init__(self):
                    self.value = 1

                def get(self):
                    return self.value
        """
    )
    report = RuleEngine().evaluate(Policy(), [unit])

    assert _locations(report, "inner_classes") == [(3, 5), (4, 9), (7, 9)]


def test_collection_interface_sites_report_type_position() -> None:
    unit = _unit(
        """
        import typing


        def first(values: typing.Sequence[int]) -> typing.Mapping:
            seen: typing.Iterable = values
            return {}


        class Holder:
            items: typing.Sequence = ()
        """
    )
    report = RuleEngine().evaluate(Policy().with_overrides(allowed_imports=["typing"]), [unit])

    found = report.by_rule("collection_interfaces")
    assert [(v.position.line, v.position.column) for v in found] == [(5, 19), (5, 44), (6, 11)]
    assert "parameter type" in found[0].message
    assert "return type" in found[1].message
    assert "variable type" in found[2].message


def test_cheat_rules_flag_imports_and_calls_without_deduction() -> None:
    policy = Policy().with_rules(
        imports=False,
        cheat_imports={"enabled": True, "penalty": 50},
        cheat_calls={"enabled": True, "penalty": 50},
    )
    report = RuleEngine().evaluate(policy, [build(EVIL)])

    cheats = report.cheats
    assert [(v.rule, v.position.line, v.position.column) for v in cheats] == [
        ("cheat_imports", 1, 1),
        ("cheat_imports", 2, 1),
        ("cheat_calls", 7, 5),
        ("cheat_calls", 8, 12),
    ]
    assert all(v.severity is Severity.CHEAT for v in cheats)
    assert all(v.message.startswith("[CHEAT]") for v in cheats)
    assert report.deduction == 0
    assert report.integrity_violated


def test_cheat_rules_are_gated_by_realistic_flag() -> None:
    report = RuleEngine().evaluate(Policy(realistic=False), [build(EVIL)])

    assert report.cheats == []
    assert not report.integrity_violated


@pytest.mark.parametrize("rule", RULE_NAMES)
def test_disabling_a_rule_removes_its_violations(rule: str) -> None:
    units = [build(NIGHTMARE), build(EVIL)]
    enabled = RuleEngine().evaluate(_strict_policy(), units)
    disabled = RuleEngine().evaluate(_strict_policy().with_rules(**{rule: False}), units)

    assert enabled.by_rule(rule), f"fixtures should trigger {rule}"
    assert disabled.by_rule(rule) == []
    others = [v for v in enabled.violations if v.rule != rule]
    assert list(disabled.violations) == others


def test_deduction_is_weight_times_occurrences() -> None:
    unit = _unit(
        """
        def main():
            print("a")
            print("b")
            f = lambda: 1
        """
    )
    policy = Policy().with_rules(
        console_output={"penalty": 5},
        lambdas={"enabled": True, "penalty": 7, "per_occurrence": False},
    )
    report = RuleEngine().evaluate(policy, [unit])

    assert report.counts == {"console_output": 2, "lambdas": 1}
    assert report.deduction == 2 * 5 + 7


def test_relative_imports_are_allowed() -> None:
    unit = _unit("from . import helpers\nfrom .util import tools\n")
    report = RuleEngine().evaluate(Policy().with_overrides(allowed_imports=[]), [unit])

    assert report.by_rule("imports") == []


def test_import_allow_list_uses_dotted_prefixes() -> None:
    unit = _unit("import math\nimport mathx\nfrom collections import deque\nimport collections.abc\n")
    report = RuleEngine().evaluate(Policy(), [unit])

    assert _locations(report, "imports") == [(2, 1)]
    assert report.by_rule("imports")[0].position == Position("submission.py", 2, 1)
