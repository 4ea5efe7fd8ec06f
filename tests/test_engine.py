import unittest
from pathlib import Path
from textwrap import dedent

from pyedunit.core.config import Policy
from pyedunit.engine import DEFAULT_RULES, SYNTAX_RULE, RuleEngine, evaluate
from pyedunit.engine.rules import LambdaRule
from pyedunit.syntax import build, build_source

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class ExplodingRule(LambdaRule):
    def check(self, unit, policy):
        raise RuntimeError("boom")


class RuleEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = Policy.strict().with_overrides(allowed_imports=["math"])
        self.units = [build(FIXTURES / "nightmare.py"), build(FIXTURES / "evil.py")]

    def test_evaluation_is_deterministic(self) -> None:
        first = RuleEngine().evaluate(self.policy, self.units)
        second = RuleEngine().evaluate(self.policy, self.units)

        self.assertEqual(first.violations, second.violations)
        self.assertEqual(first.deduction, second.deduction)
        self.assertEqual(first.render(), second.render())

    def test_shared_engine_does_not_accumulate_state(self) -> None:
        engine = RuleEngine()
        first = engine.evaluate(self.policy, self.units)
        second = engine.evaluate(self.policy, self.units)

        self.assertEqual(len(first.violations), len(second.violations))
        self.assertEqual(first.counts, second.counts)

    def test_violations_follow_unit_order_then_position(self) -> None:
        report = evaluate(self.policy, self.units)
        nightmare, evil = (str(unit.path) for unit in self.units)

        units = [violation.unit for violation in report.violations]
        self.assertEqual(units, sorted(units, key=[nightmare, evil].index))
        for path in (nightmare, evil):
            positions = [(v.position.line, v.position.column) for v in report.violations if v.unit == path]
            self.assertEqual(positions, sorted(positions))

        reversed_report = evaluate(self.policy, list(reversed(self.units)))
        self.assertEqual(reversed_report.violations[0].unit, evil)

    def test_unparsable_unit_yields_only_syntax_violation(self) -> None:
        broken = build(FIXTURES / "broken.py")
        report = RuleEngine().evaluate(self.policy, [broken, self.units[1]])

        from_broken = [v for v in report.violations if v.unit == broken.path]
        self.assertEqual(len(from_broken), 1)
        self.assertEqual(from_broken[0].rule, SYNTAX_RULE)
        self.assertEqual(from_broken[0].position.line, 1)
        self.assertTrue(from_broken[0].message.startswith("Could not parse file:"))
        self.assertTrue(report.by_rule("cheat_calls"), "other units are still evaluated")

    def test_syntax_violation_is_weighted_by_policy(self) -> None:
        broken = build(FIXTURES / "broken.py")

        free = RuleEngine().evaluate(Policy(), [broken])
        weighted = RuleEngine().evaluate(Policy(syntax_error_penalty=25), [broken])

        self.assertEqual(free.deduction, 0)
        self.assertEqual(weighted.deduction, 25)

    def test_failing_rule_becomes_diagnostic(self) -> None:
        rules = [rule for rule in DEFAULT_RULES if rule.name != "lambdas"] + [ExplodingRule()]
        with self.assertLogs("pyedunit.engine", level="WARNING"):
            report = RuleEngine(rules).evaluate(self.policy, self.units)

        self.assertEqual(len(report.diagnostics), 2)
        self.assertEqual({d.rule for d in report.diagnostics}, {"lambdas"})
        self.assertIn("RuntimeError: boom", report.diagnostics[0].message)
        self.assertTrue(report.by_rule("loops"), "remaining rules still run")
        self.assertEqual(report.by_rule("lambdas"), [])

    def test_duplicate_rule_names_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            RuleEngine([LambdaRule(), ExplodingRule()])

    def test_clean_submission_has_no_violations(self) -> None:
        report = RuleEngine().evaluate(Policy(), [build(FIXTURES / "solution.py")])

        self.assertEqual(report.violations, ())
        self.assertEqual(report.deduction, 0)
        self.assertFalse(report.integrity_violated)

    def test_in_memory_source_units(self) -> None:
        unit = build_source(
            "inline.py",
            dedent(
                """
                def main():
                    print("hi")
                """
            ),
        )
        report = RuleEngine().evaluate(Policy(), [unit])

        self.assertEqual([str(v.position) for v in report.violations], ["inline.py:3:5"])
        self.assertEqual(report.deduction, 10)


if __name__ == "__main__":
    unittest.main()
