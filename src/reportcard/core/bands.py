from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from reportcard.core.entities import to_number


BLOCKING = ("min", "max", "range", "letter", "gpa", "overlap")
WARNINGS = ("dup_letter", "dup_range")


@dataclass
class BandDraft:
    min_score: Any = ""
    max_score: Any = ""
    letter: Any = ""
    gpa: Any = ""
    id: str | None = None
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BandDraft":
        return cls(
            min_score=data.get("min_score", ""),
            max_score=data.get("max_score", ""),
            letter=data.get("letter", ""),
            gpa=data.get("gpa", ""),
            id=str(data["id"]) if data.get("id") not in (None, "") else None,
            deleted=bool(data.get("deleted") or data.get("_deleted")),
        )

    @property
    def is_blank(self) -> bool:
        return all(_blank(v) for v in (self.min_score, self.max_score, self.letter, self.gpa))


@dataclass
class BandErrors:
    flags: set = field(default_factory=set)

    def add(self, flag: str) -> None:
        self.flags.add(flag)

    def __contains__(self, flag: str) -> bool:
        return flag in self.flags

    @property
    def is_blocking(self) -> bool:
        return any(flag in self.flags for flag in BLOCKING)

    @property
    def has_warnings(self) -> bool:
        return any(flag in self.flags for flag in WARNINGS)


@dataclass(frozen=True)
class NormalizedBand:
    index: int
    min_score: float | None
    max_score: float | None
    letter: str
    gpa: float | None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize(row: BandDraft, index: int) -> NormalizedBand:
    return NormalizedBand(
        index=index,
        min_score=to_number(row.min_score),
        max_score=to_number(row.max_score),
        letter=str(row.letter or "").strip().upper(),
        gpa=to_number(row.gpa),
    )


def live_bands(rows: Sequence[BandDraft]) -> List[NormalizedBand]:
    return [normalize(row, i) for i, row in enumerate(rows) if not row.deleted and not row.is_blank]


def validate_bands(rows: Sequence[BandDraft]) -> List[BandErrors]:
    """
    Check every row of a grade-scale form.

    The result lines up with rows by index. Deleted and blank rows get an
    empty error set and take no part in the overlap or duplicate checks.
    """
    errors = [BandErrors() for _ in rows]
    live = live_bands(rows)

    for band in live:
        err = errors[band.index]
        if band.min_score is None or not 0 <= band.min_score <= 100:
            err.add("min")
        if band.max_score is None or not 0 <= band.max_score <= 100:
            err.add("max")
        if band.min_score is not None and band.max_score is not None and band.min_score > band.max_score:
            err.add("range")
        if not band.letter:
            err.add("letter")
        if band.gpa is None:
            err.add("gpa")

    by_letter: Dict[str, List[int]] = {}
    by_range: Dict[tuple, List[int]] = {}
    for band in live:
        if band.letter:
            by_letter.setdefault(band.letter, []).append(band.index)
        if band.min_score is not None and band.max_score is not None:
            by_range.setdefault((band.min_score, band.max_score), []).append(band.index)
    for indexes in by_letter.values():
        if len(indexes) > 1:
            for i in indexes:
                errors[i].add("dup_letter")
    for indexes in by_range.values():
        if len(indexes) > 1:
            for i in indexes:
                errors[i].add("dup_range")

    ranged = sorted(
        (b for b in live if not {"min", "max", "range"} & errors[b.index].flags),
        key=lambda b: b.min_score,
    )
    for prev, nxt in zip(ranged, ranged[1:]):
        if prev.max_score >= nxt.min_score:
            errors[prev.index].add("overlap")
            errors[nxt.index].add("overlap")

    return errors


def can_save(rows: Sequence[BandDraft], name: str | None = None) -> bool:
    if name is not None and not name.strip():
        return False
    if not live_bands(rows):
        return False
    return not any(err.is_blocking for err in validate_bands(rows))
