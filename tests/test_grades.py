import unittest

from reportcard.core.entities import GradeBand
from reportcard.core.grades import band_for_score, grade_for_score, letter_from_gpa


SCALE = [
    GradeBand(80, 100, "A+", 5.0),
    GradeBand(70, 79, "A", 4.0),
    GradeBand(60, 69, "A-", 3.5),
    GradeBand(50, 59, "B", 3.0),
    GradeBand(40, 49, "C", 2.0),
    GradeBand(33, 39, "D", 1.0),
    GradeBand(0, 32, "F", 0.0),
]


class FallbackTableTests(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(letter_from_gpa(5.0, []), "A+")
        self.assertEqual(letter_from_gpa(4.0, []), "A")
        self.assertEqual(letter_from_gpa(3.5, []), "A-")
        self.assertEqual(letter_from_gpa(3.0, []), "B")
        self.assertEqual(letter_from_gpa(2.0, []), "C")
        self.assertEqual(letter_from_gpa(1.0, []), "D")
        self.assertEqual(letter_from_gpa(0.99, []), "F")

    def test_outside_table(self):
        self.assertEqual(letter_from_gpa(5.5, []), "A+")
        self.assertEqual(letter_from_gpa(-1, []), "F")
        self.assertEqual(letter_from_gpa(3.49), "B")

    def test_missing_or_non_finite(self):
        for value in (None, "", "abc", float("nan"), float("inf")):
            self.assertEqual(letter_from_gpa(value), "—")

    def test_numeric_strings(self):
        self.assertEqual(letter_from_gpa("4.2"), "A")


class ScaleLookupTests(unittest.TestCase):
    def test_gpa_threshold(self):
        self.assertEqual(letter_from_gpa(4.5, SCALE), "A")
        self.assertEqual(letter_from_gpa(1.0, SCALE), "D")
        self.assertEqual(letter_from_gpa(0.0, SCALE), "F")

    def test_no_matching_band_uses_fallback(self):
        bands = [GradeBand(80, 100, "O", 4.0)]
        self.assertEqual(letter_from_gpa(2.5, bands), "C")

    def test_monotonic_letters(self):
        rank = {band.letter: i for i, band in enumerate(sorted(SCALE, key=lambda b: b.gpa))}
        previous = -1
        gpa = 0.0
        while gpa <= 5.5:
            current = rank[letter_from_gpa(gpa, SCALE)]
            self.assertGreaterEqual(current, previous)
            previous = current
            gpa = round(gpa + 0.05, 2)

    def test_score_band(self):
        self.assertEqual(band_for_score(85, SCALE).letter, "A+")
        self.assertEqual(band_for_score(70, SCALE).letter, "A")
        self.assertEqual(band_for_score(0, SCALE).letter, "F")

    def test_score_between_bands_drops_down(self):
        self.assertEqual(band_for_score(79.5, SCALE).letter, "A")

    def test_score_is_clamped(self):
        self.assertEqual(band_for_score(120, SCALE).letter, "A+")
        self.assertEqual(band_for_score(-5, SCALE).letter, "F")

    def test_score_without_scale(self):
        self.assertIsNone(band_for_score(50, []))
        self.assertEqual(grade_for_score(None, SCALE), (None, None))
        self.assertEqual(grade_for_score(55, SCALE), ("B", 3.0))


if __name__ == "__main__":
    unittest.main()
