from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Optional


PLACEHOLDER = "—"


def to_number(value: Any) -> float | None:
    """Coerce a backend value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_id(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return to_id(value.get("id"))
    return str(value).strip()


def subject_id_of(row: Dict[str, Any]) -> str:
    if row.get("subject_id") is not None:
        return to_id(row["subject_id"])
    return to_id(row.get("subject"))


@dataclass(frozen=True)
class Exam:
    id: str
    name: str
    class_id: str = ""
    section_id: str = ""
    year: str = ""
    is_published: bool = False
    term_weight: float | None = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Exam":
        return cls(
            id=to_id(data.get("id")),
            name=str(data.get("name") or ""),
            class_id=to_id(data.get("class_name") if data.get("class_id") is None else data.get("class_id")),
            section_id=to_id(data.get("section") if data.get("section_id") is None else data.get("section_id")),
            year=to_id(data.get("year")),
            is_published=bool(data.get("is_published", False)),
            term_weight=to_number(data.get("term_weight")),
        )


@dataclass(frozen=True)
class Mark:
    id: str
    exam_id: str
    student_id: str
    subject_id: str
    score: float | None = None
    gpa: float | None = None
    letter: str | None = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Mark":
        letter = data.get("letter") or data.get("grade_letter")
        return cls(
            id=to_id(data.get("id")),
            exam_id=to_id(data.get("exam") if data.get("exam_id") is None else data.get("exam_id")),
            student_id=to_id(data.get("student") if data.get("student_id") is None else data.get("student_id")),
            subject_id=subject_id_of(data),
            score=to_number(data.get("score")),
            gpa=to_number(data.get("gpa")),
            letter=str(letter) if letter else None,
        )

    @property
    def is_recorded(self) -> bool:
        return self.score is not None or self.gpa is not None


@dataclass(frozen=True)
class GradeBand:
    min_score: float
    max_score: float
    letter: str
    gpa: float
    id: str = ""
    scale_id: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Optional["GradeBand"]:
        min_score = to_number(data.get("min_score"))
        max_score = to_number(data.get("max_score"))
        gpa = to_number(data.get("gpa"))
        letter = str(data.get("letter") or "").strip()
        if min_score is None or max_score is None or gpa is None or not letter:
            return None
        return cls(
            min_score=min_score,
            max_score=max_score,
            letter=letter,
            gpa=gpa,
            id=to_id(data.get("id")),
            scale_id=to_id(data.get("scale")),
        )


@dataclass(frozen=True)
class GradeScale:
    id: str
    name: str
    is_active: bool = False
    bands: tuple[GradeBand, ...] = ()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "GradeScale":
        bands = []
        for raw in data.get("bands") or []:
            band = GradeBand.from_api(raw)
            if band is not None:
                bands.append(band)
        return cls(
            id=to_id(data.get("id")),
            name=str(data.get("name") or ""),
            is_active=bool(data.get("is_active", False)),
            bands=tuple(bands),
        )


@dataclass(frozen=True)
class SubjectMark:
    score: float | None = None
    gpa: float | None = None
    letter: str | None = None
    mark_id: str = ""

    @property
    def is_recorded(self) -> bool:
        return self.score is not None or self.gpa is not None


@dataclass(frozen=True)
class SubjectResult:
    subject_id: str
    subject_name: str
    score: float | None
    gpa: float | None
    letter: str


@dataclass(frozen=True)
class Totals:
    total_score: float
    average_gpa: float | None
    letter: str
    count: int


@dataclass
class Report:
    student_id: str
    title: str
    rows: List[SubjectResult] = field(default_factory=list)
    totals: Totals | None = None
