from dataclasses import dataclass
from typing import Optional


GRAND_TOTAL = "__grand__"


@dataclass
class SelectionState:
    """
    Which student and view a report is being built for.

    Every change bumps ``generation``. A report batch remembers the generation
    it started under and is thrown away if the selection moved on meanwhile.
    """

    student_id: Optional[str] = None
    exam_id: Optional[str] = None
    year: Optional[str] = None
    class_id: Optional[str] = None
    section_id: Optional[str] = None
    generation: int = 0

    @property
    def is_grand_total(self) -> bool:
        return self.exam_id == GRAND_TOTAL

    def select(
        self,
        *,
        student_id: Optional[str] = None,
        exam_id: Optional[str] = None,
        year: Optional[str] = None,
        class_id: Optional[str] = None,
        section_id: Optional[str] = None,
    ) -> int:
        if student_id is not None:
            self.student_id = student_id
        if exam_id is not None:
            self.exam_id = exam_id
        if year is not None:
            self.year = year
        if class_id is not None:
            self.class_id = class_id
        if section_id is not None:
            self.section_id = section_id
        self.generation += 1
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def clear(self) -> None:
        self.student_id = None
        self.exam_id = None
        self.year = None
        self.class_id = None
        self.section_id = None
        self.generation += 1
