from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from reportcard.core.entities import PLACEHOLDER, Exam, GradeBand, SubjectMark, SubjectResult, Totals
from reportcard.core.grades import letter_from_gpa


def _subject_union(subject_ids: Iterable[str], marks_by_exam: Iterable[Mapping[str, SubjectMark]]) -> List[str]:
    seen: Dict[str, None] = {}
    for sid in subject_ids:
        if sid:
            seen[str(sid)] = None
    for marks in marks_by_exam:
        for sid in marks:
            if sid:
                seen[str(sid)] = None
    return list(seen)


def sort_rows(rows: Iterable[SubjectResult]) -> List[SubjectResult]:
    return sorted(rows, key=lambda r: (r.subject_name.casefold(), r.subject_id))


def aggregate(
    subject_ids: Iterable[str],
    exam_weights: Sequence[Tuple[Exam, float]],
    marks_by_exam: Sequence[Mapping[str, SubjectMark]],
    *,
    bands: Optional[Sequence[GradeBand]] = None,
    subject_names: Optional[Mapping[str, str]] = None,
) -> Dict[str, SubjectResult]:
    """
    Combine per-exam marks into a weighted grand total per subject.

    marks_by_exam[i] holds the marks for exam_weights[i]. Each quantity is
    divided by the weights of the exams that actually recorded it, so a
    missing mark is not counted as zero. Subjects with no recorded mark in any
    weighted exam are left out.
    """
    if len(exam_weights) != len(marks_by_exam):
        raise ValueError("exam_weights and marks_by_exam must have the same length")

    names = subject_names or {}
    results: Dict[str, SubjectResult] = {}

    for sid in _subject_union(subject_ids, marks_by_exam):
        score_sum = gpa_sum = 0.0
        score_weight = gpa_weight = 0.0

        for (_, weight), marks in zip(exam_weights, marks_by_exam):
            if weight <= 0:
                continue
            mark = marks.get(sid)
            if mark is None or not mark.is_recorded:
                continue
            if mark.score is not None:
                score_sum += mark.score * weight
                score_weight += weight
            if mark.gpa is not None:
                gpa_sum += mark.gpa * weight
                gpa_weight += weight

        if score_weight <= 0 and gpa_weight <= 0:
            continue

        score = score_sum / score_weight if score_weight > 0 else None
        gpa = gpa_sum / gpa_weight if gpa_weight > 0 else None
        results[sid] = SubjectResult(
            subject_id=sid,
            subject_name=names.get(sid) or sid,
            score=score,
            gpa=gpa,
            letter=letter_from_gpa(gpa, bands),
        )

    return results


def exam_rows(
    subject_ids: Iterable[str],
    marks: Mapping[str, SubjectMark],
    *,
    bands: Optional[Sequence[GradeBand]] = None,
    subject_names: Optional[Mapping[str, str]] = None,
) -> List[SubjectResult]:
    names = subject_names or {}
    rows = []
    for sid in _subject_union(subject_ids, [marks]):
        mark = marks.get(sid) or SubjectMark()
        if mark.letter:
            letter = mark.letter
        elif mark.gpa is not None:
            letter = letter_from_gpa(mark.gpa, bands)
        else:
            letter = PLACEHOLDER
        rows.append(
            SubjectResult(
                subject_id=sid,
                subject_name=names.get(sid) or sid,
                score=mark.score,
                gpa=mark.gpa,
                letter=letter,
            )
        )
    return sort_rows(rows)


def summarize(rows: Iterable[SubjectResult], *, bands: Optional[Sequence[GradeBand]] = None) -> Optional[Totals]:
    valid = [row for row in rows if row.score is not None or row.gpa is not None]
    if not valid:
        return None

    total_score = float(sum(row.score for row in valid if row.score is not None))
    gpas = [row.gpa for row in valid if row.gpa is not None]
    average_gpa = sum(gpas) / len(gpas) if gpas else None

    return Totals(
        total_score=total_score,
        average_gpa=average_gpa,
        letter=letter_from_gpa(average_gpa, bands),
        count=len(valid),
    )
