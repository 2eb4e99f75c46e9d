from typing import Any, Optional, Sequence, Tuple

from reportcard.core.entities import PLACEHOLDER, GradeBand, to_number


# (min_gpa, letter), highest threshold first
FALLBACK_GPA_TABLE: Tuple[Tuple[float, str], ...] = (
    (5.0, "A+"),
    (4.0, "A"),
    (3.5, "A-"),
    (3.0, "B"),
    (2.0, "C"),
    (1.0, "D"),
)
FALLBACK_LETTER = "F"


def clamp_0_100(value: float) -> float:
    return max(0.0, min(100.0, value))


def fallback_letter(gpa: float) -> str:
    for threshold, letter in FALLBACK_GPA_TABLE:
        if gpa >= threshold:
            return letter
    return FALLBACK_LETTER


def letter_from_gpa(gpa: Any, bands: Optional[Sequence[GradeBand]] = None) -> str:
    """
    GPA-threshold lookup used on report views.

    Picks the band with the largest gpa threshold that does not exceed gpa.
    Falls back to the fixed table when no band applies.
    """
    value = to_number(gpa)
    if value is None:
        return PLACEHOLDER

    if bands:
        for band in sorted(bands, key=lambda b: b.gpa, reverse=True):
            if value >= band.gpa:
                return band.letter

    return fallback_letter(value)


def band_for_score(score: Any, bands: Sequence[GradeBand]) -> Optional[GradeBand]:
    """Score-range lookup used when marks are graded against a scale."""
    value = to_number(score)
    if value is None or not bands:
        return None
    value = clamp_0_100(value)

    ordered = sorted(bands, key=lambda b: b.min_score, reverse=True)
    for band in ordered:
        if band.min_score <= value <= band.max_score:
            return band

    # scores between two bands (e.g. 79.5 with 70-79 and 80-100) drop to the lower one
    for band in ordered:
        if band.min_score <= value:
            return band
    return None


def grade_for_score(score: Any, bands: Sequence[GradeBand]) -> Tuple[Optional[str], Optional[float]]:
    band = band_for_score(score, bands)
    if band is None:
        return None, None
    return band.letter, band.gpa
