import unittest

from decoding.hint_engine import (
    HINT_PREFIX,
    MAX_HINT_WORDS,
    MIN_HINT_WORDS,
    HintMode,
    classify_mode,
    contrast_budget,
    has_contrast,
    improve_hints,
    is_weak,
    normalize_length,
    word_count,
)
from tests.helpers import make_step


def _assert_well_formed(test, steps):
    hints = [s.hint for s in steps]
    for hint in hints:
        test.assertTrue(hint.startswith(HINT_PREFIX), hint)
        test.assertFalse(hint[len(HINT_PREFIX):].lower().lstrip().startswith("hint:"), hint)
        test.assertGreaterEqual(word_count(hint), MIN_HINT_WORDS, hint)
        test.assertLessEqual(word_count(hint), MAX_HINT_WORDS, hint)
    test.assertEqual(len({h.strip().lower() for h in hints}), len(hints), hints)
    test.assertLessEqual(sum(1 for h in hints if has_contrast(h)), contrast_budget(len(hints)), hints)


class TestImproveHints(unittest.TestCase):
    def test_long_hint_with_punctuation_tail_stays_in_bounds(self):
        hint = "Hint: Use momentum conservation for this " + "- " * 14
        steps = improve_hints([make_step(1, question="Find the final velocity?", hint=hint)])
        _assert_well_formed(self, steps)
    def test_identical_weak_hints_become_unique(self):
        steps = [make_step(1, question="Find the acceleration of the cart?", hint="Consider the forces") for _ in range(6)]
        result = improve_hints(steps)
        _assert_well_formed(self, result)

    def test_contrast_budget_enforced(self):
        steps = [
            make_step(i + 1, hint=f"Hint: option {i} describes displacement unlike distance which ignores direction entirely")
            for i in range(6)
        ]
        result = improve_hints(steps)
        _assert_well_formed(self, result)
        self.assertLessEqual(sum(1 for s in result if has_contrast(s.hint)), 2)

    def test_no_contrast_allowed_below_three_steps(self):
        steps = [
            make_step(1, hint="Hint: unlike speed, velocity has direction so check the sign of each option."),
            make_step(2, hint="Hint: vs the average value, the instantaneous value comes from the tangent gradient."),
        ]
        result = improve_hints(steps)
        _assert_well_formed(self, result)
        self.assertFalse(any(has_contrast(s.hint) for s in result))

    def test_calculation_breakdown_drives_weak_hint(self):
        step = make_step(1, hint="", calc={"formula": "v = u + at", "substitution": "v = 0 + 9.8 × 2"})
        result = improve_hints([step])
        self.assertIn("v = u + at", result[0].hint)
        _assert_well_formed(self, result)

    def test_strong_hint_is_kept(self):
        text = "Hint: the gradient of a velocity-time graph gives acceleration, so read rise over run."
        result = improve_hints([make_step(1, hint=text)])
        self.assertEqual(result[0].hint, text)

    def test_inputs_are_not_mutated(self):
        step = make_step(1, hint="")
        improve_hints([step])
        self.assertEqual(step.hint, "")

    def test_mixed_modes_stay_well_formed(self):
        steps = [
            make_step(1, question="What is meant by inertia?", options=["Resistance to change in motion", "Mass times g", "Speed", "Energy"]),
            make_step(2, question="From the graph, which region shows constant velocity?", options=["Region A", "Region B", "Region C", "Region D"]),
            make_step(3, question="Which quantity is the independent variable in this investigation?", options=["Length", "Time", "Mass", "Current"]),
            make_step(4, question="Which stage comes next in the cycle?", options=["Melting", "Boiling", "Freezing", "Condensing"]),
            make_step(5, question="Why does ice melt faster on metal?", options=["Conduction", "Radiation", "Convection", "Evaporation"]),
        ]
        _assert_well_formed(self, improve_hints(steps, context="Thermal physics question"))


class TestClassifyMode(unittest.TestCase):
    def test_numeric_options_are_quantitative(self):
        self.assertEqual(classify_mode("Find v", ["1 m/s", "2 m/s", "3 m/s", "4 m/s"]), HintMode.QUANTITATIVE)

    def test_unit_in_stem_is_quantitative(self):
        self.assertEqual(classify_mode("A car travels at 20 m/s. Which statement is true?", ["a", "b", "c", "d"]), HintMode.QUANTITATIVE)

    def test_word_modes(self):
        words = ["a", "b", "c", "d"]
        self.assertEqual(classify_mode("What is meant by inertia?", words), HintMode.DEFINITION)
        self.assertEqual(classify_mode("From the graph, which region is flat?", words), HintMode.GRAPH)
        self.assertEqual(classify_mode("Which is the independent variable?", words), HintMode.EXPERIMENT)
        self.assertEqual(classify_mode("Which stage comes next?", words), HintMode.PROCESS)
        self.assertEqual(classify_mode("Why does ice float?", words), HintMode.CONCEPTUAL)


class TestHintPrimitives(unittest.TestCase):
    def test_is_weak(self):
        self.assertTrue(is_weak(None))
        self.assertTrue(is_weak("Too short"))
        self.assertTrue(is_weak("Think about the forces acting on the block"))
        self.assertTrue(is_weak("Maybe the gradient of the line matters here"))
        self.assertFalse(is_weak("A reflection in the mirror line keeps distances the same"))

    def test_is_weak_catches_inflected_phrases(self):
        self.assertTrue(is_weak("Considering the forces on the block gives the answer"))
        self.assertTrue(is_weak("Recalling the definition of momentum helps here"))
        self.assertTrue(is_weak("Start by trying each option in the equation"))
        self.assertTrue(is_weak("The student tries to balance the moments first"))
        self.assertFalse(is_weak("Every entry in the table is measured in newtons"))

    def test_trim_then_pad_when_tail_is_punctuation(self):
        hint = normalize_length("Hint: Use momentum conservation for this " + "- " * 14)
        self.assertTrue(hint.startswith("Hint: Use momentum conservation for this."))
        self.assertGreaterEqual(word_count(hint), MIN_HINT_WORDS)
        self.assertLessEqual(word_count(hint), MAX_HINT_WORDS)

    def test_punctuation_only_hint_gets_filler(self):
        hint = normalize_length("- - - ; ; :")
        self.assertTrue(hint.startswith("Hint: Check each option"))
        self.assertGreaterEqual(word_count(hint), MIN_HINT_WORDS)

    def test_normalize_length_single_prefix_and_padding(self):
        hint = normalize_length("Hint: Hint: use F = ma.")
        self.assertTrue(hint.startswith("Hint: use F = ma."))
        self.assertEqual(hint.count("Hint:"), 1)
        self.assertGreaterEqual(word_count(hint), MIN_HINT_WORDS)

    def test_normalize_length_trims(self):
        hint = normalize_length(" ".join(["word"] * 30))
        self.assertEqual(word_count(hint), MAX_HINT_WORDS)
        self.assertTrue(hint.endswith("."))

    def test_contrast_budget(self):
        self.assertEqual([contrast_budget(n) for n in (1, 2, 3, 5, 6, 8)], [0, 0, 1, 1, 2, 2])


if __name__ == "__main__":
    unittest.main()
