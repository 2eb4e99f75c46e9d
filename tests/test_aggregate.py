import unittest

from reportcard.core.aggregate import aggregate, exam_rows, summarize
from reportcard.core.entities import Exam, SubjectMark, SubjectResult


FIRST = Exam(id="1", name="1st term", term_weight=0.25)
SECOND = Exam(id="2", name="2nd term", term_weight=0.25)
FINAL = Exam(id="3", name="Final", term_weight=0.5)
WEIGHTS = [(FIRST, 0.25), (SECOND, 0.25), (FINAL, 0.5)]


class AggregateTests(unittest.TestCase):
    def test_all_exams_present(self):
        marks = [
            {"math": SubjectMark(score=80, gpa=4.0)},
            {"math": SubjectMark(score=90, gpa=5.0)},
            {"math": SubjectMark(score=70, gpa=4.0)},
        ]
        result = aggregate(["math"], WEIGHTS, marks, subject_names={"math": "Math"})
        self.assertAlmostEqual(result["math"].score, 77.5)
        self.assertAlmostEqual(result["math"].gpa, 4.25)
        self.assertEqual(result["math"].letter, "A")
        self.assertEqual(result["math"].subject_name, "Math")

    def test_missing_exam_is_renormalized(self):
        marks = [
            {"math": SubjectMark(score=80)},
            {},
            {"math": SubjectMark(score=70)},
        ]
        result = aggregate(["math"], WEIGHTS, marks)
        self.assertAlmostEqual(result["math"].score, 73.33, places=2)
        self.assertIsNone(result["math"].gpa)
        self.assertEqual(result["math"].letter, "—")

    def test_subject_without_marks_is_omitted(self):
        marks = [{"math": SubjectMark(score=80)}, {}, {"bio": SubjectMark()}]
        result = aggregate(["math", "physics", "bio"], WEIGHTS, marks)
        self.assertEqual(set(result), {"math"})

    def test_subjects_only_in_marks_are_included(self):
        marks = [{}, {"art": SubjectMark(score=60, gpa=3.5)}, {}]
        result = aggregate([], WEIGHTS, marks)
        self.assertAlmostEqual(result["art"].score, 60)
        self.assertEqual(result["art"].subject_name, "art")

    def test_combined_score_stays_within_inputs(self):
        cases = [(55, None, 91), (12, 99, None), (None, 40, 40), (100, 0, 50)]
        for scores in cases:
            marks = [{"s": SubjectMark(score=v)} if v is not None else {} for v in scores]
            combined = aggregate(["s"], WEIGHTS, marks)["s"].score
            present = [v for v in scores if v is not None]
            self.assertGreaterEqual(combined, min(present))
            self.assertLessEqual(combined, max(present))

    def test_score_and_gpa_use_their_own_weights(self):
        marks = [
            {"math": SubjectMark(score=80, gpa=4.0)},
            {"math": SubjectMark(score=60)},
            {},
        ]
        result = aggregate(["math"], WEIGHTS, marks)
        self.assertAlmostEqual(result["math"].score, 70)
        self.assertAlmostEqual(result["math"].gpa, 4.0)

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            aggregate([], WEIGHTS, [{}])


class ExamRowsTests(unittest.TestCase):
    def test_union_with_placeholders(self):
        marks = {
            "math": SubjectMark(score=88, gpa=5.0, letter="A+"),
            "art": SubjectMark(score=45, gpa=2.0),
        }
        rows = exam_rows(["math", "bio"], marks, subject_names={"math": "Math", "bio": "Biology", "art": "Art"})
        self.assertEqual([r.subject_name for r in rows], ["Art", "Biology", "Math"])
        art, bio, math = rows
        self.assertEqual(art.letter, "C")
        self.assertIsNone(bio.score)
        self.assertEqual(bio.letter, "—")
        self.assertEqual(math.letter, "A+")


class SummaryTests(unittest.TestCase):
    def test_totals(self):
        rows = [
            SubjectResult("1", "Math", 80, 4.0, "A"),
            SubjectResult("2", "Bio", 70, 5.0, "A+"),
            SubjectResult("3", "Art", None, None, "—"),
        ]
        totals = summarize(rows)
        self.assertEqual(totals.count, 2)
        self.assertAlmostEqual(totals.total_score, 150)
        self.assertAlmostEqual(totals.average_gpa, 4.5)
        self.assertEqual(totals.letter, "A")

    def test_no_valid_rows(self):
        self.assertIsNone(summarize([SubjectResult("1", "Math", None, None, "—")]))
        self.assertIsNone(summarize([]))


if __name__ == "__main__":
    unittest.main()
