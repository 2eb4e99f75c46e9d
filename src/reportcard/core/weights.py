import logging
import re
import warnings
from typing import Iterable, List, Tuple

from reportcard.core.entities import Exam


logger = logging.getLogger(__name__)

FINAL_WEIGHT = 0.5
TERM_WEIGHT = 0.25

# Evaluated in order; the first matching pattern wins.
NAME_RULES: Tuple[Tuple[re.Pattern, float], ...] = (
    (re.compile(r"final|term\s*3|third", re.IGNORECASE), FINAL_WEIGHT),
    (re.compile(r"2nd|second|term\s*2", re.IGNORECASE), TERM_WEIGHT),
    (re.compile(r"1st|first|term\s*1", re.IGNORECASE), TERM_WEIGHT),
)


def weight_from_name(name: str) -> float:
    """
    Deprecated: infer an exam weight from its free-text name.

    Kept for exams created before term_weight existed. Unmatched names get 0
    and are left out of any weighted aggregate.
    """
    text = name or ""
    for pattern, weight in NAME_RULES:
        if pattern.search(text):
            return weight
    return 0.0


def weight_for_exam(exam: Exam) -> float:
    if exam.term_weight is not None:
        if not 0.0 <= exam.term_weight <= 1.0:
            raise ValueError(f"term_weight must be between 0 and 1, got {exam.term_weight}")
        return float(exam.term_weight)

    warnings.warn(
        "Inferring exam weight from its name is deprecated; set term_weight on the exam.",
        DeprecationWarning,
        stacklevel=2,
    )
    return weight_from_name(exam.name)


def weighted_exams(exams: Iterable[Exam]) -> List[Tuple[Exam, float]]:
    pairs = []
    for exam in exams:
        try:
            weight = weight_for_exam(exam)
        except ValueError as exc:
            logger.warning("Exam %s: %s; using its name instead", exam.id, exc)
            weight = weight_from_name(exam.name)
        if weight > 0:
            pairs.append((exam, weight))
    return pairs
