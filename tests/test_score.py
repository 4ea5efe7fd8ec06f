import unittest

from pyedunit.grading import Grade, ScoreState, ScoreStateError, clamp


class ScoreStateTests(unittest.TestCase):
    def test_points_accumulate_until_finalized(self) -> None:
        state = ScoreState(100)
        state.add_grade(Grade("check", "a", 30, 30))
        state.add_grade(Grade("check", "b", 0, 20, passed=False))
        state.deduct(5)

        self.assertEqual(state.awarded, 30)
        self.assertEqual(state.possible, 50)
        self.assertEqual(state.raw, 25)
        self.assertFalse(state.finalized)
        self.assertEqual(state.finalize(), 25)
        self.assertEqual(state.final, 25)

    def test_finalize_clamps_once(self) -> None:
        high = ScoreState(100)
        high.add_grade(Grade("check", "bonus", 150, 150))
        self.assertEqual(high.finalize(), 100)

        low = ScoreState(100)
        low.deduct(40)
        self.assertEqual(low.finalize(), 0)

    def test_zero_overrides_earned_points(self) -> None:
        state = ScoreState(100)
        state.add_grade(Grade("check", "all", 90, 90))

        self.assertEqual(state.finalize(zero=True), 0)

    def test_finalized_state_is_read_only(self) -> None:
        state = ScoreState(10)
        state.finalize()

        with self.assertRaises(ScoreStateError):
            state.finalize()
        with self.assertRaises(ScoreStateError):
            state.add_grade(Grade("check", "late", 1, 1))
        with self.assertRaises(ScoreStateError):
            state.deduct(1)

    def test_final_requires_finalize(self) -> None:
        with self.assertRaises(ScoreStateError):
            ScoreState().final

    def test_invalid_grades_are_rejected(self) -> None:
        state = ScoreState()
        with self.assertRaises(ValueError):
            state.add_grade(Grade("check", "too much", 11, 10))
        with self.assertRaises(ValueError):
            state.add_grade(Grade("check", "negative", -1, 10))
        with self.assertRaises(ValueError):
            state.deduct(-3)
        with self.assertRaises(ValueError):
            ScoreState(0)

    def test_clamp(self) -> None:
        self.assertEqual(clamp(-5, 0, 100), 0)
        self.assertEqual(clamp(55, 0, 100), 55)
        self.assertEqual(clamp(120, 0, 100), 100)


if __name__ == "__main__":
    unittest.main()
