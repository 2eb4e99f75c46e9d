import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from reportcard.config.settings import settings
from reportcard.core.aggregate import aggregate, exam_rows, sort_rows, summarize
from reportcard.core.entities import Exam, GradeBand, Report, SubjectMark
from reportcard.core.grades import grade_for_score
from reportcard.core.weights import weighted_exams
from reportcard.services.api_client import ApiClient, ApiServiceError
from reportcard.services.marks_service import MarksService, SubjectMarks
from reportcard.services.scale_service import ScaleService, ScaleServiceError
from reportcard.state.selection_state import SelectionState


logger = logging.getLogger(__name__)

GRAND_TOTAL_TITLE = "Grand total (25% + 25% + 50%)"
GPA_SOURCES = ("scale", "stored")


class ReportServiceError(Exception):
    pass


class ExamNotFoundError(ReportServiceError):
    pass


def grade_marks(marks: Mapping[str, SubjectMark], bands: Sequence[GradeBand], gpa_source: str) -> SubjectMarks:
    """Apply the gpa source of truth to a batch of fetched marks."""
    if gpa_source != "scale" or not bands:
        return dict(marks)

    graded: SubjectMarks = {}
    for sid, mark in marks.items():
        letter, gpa = grade_for_score(mark.score, bands)
        if letter is None:
            graded[sid] = mark
        else:
            graded[sid] = replace(mark, gpa=gpa, letter=letter)
    return graded


class ReportService:
    def __init__(
        self,
        client: ApiClient,
        marks: MarksService,
        scales: ScaleService,
        gpa_source: str = "scale",
    ) -> None:
        if gpa_source not in GPA_SOURCES:
            raise ReportServiceError(f"Unsupported gpa source: {gpa_source}. Use scale or stored.")
        self.client = client
        self.marks = marks
        self.scales = scales
        self.gpa_source = gpa_source

    @classmethod
    def from_settings(cls) -> "ReportService":
        client = ApiClient.from_settings()
        return cls(
            client,
            MarksService(client, settings.fetch_timeout),
            ScaleService(client),
            settings.gpa_source,
        )

    def list_exams(
        self,
        *,
        year: Optional[str] = None,
        class_id: Optional[str] = None,
        section_id: Optional[str] = None,
        published_only: bool = False,
    ) -> List[Exam]:
        try:
            exams = self.client.list_exams(year=year, class_id=class_id, section_id=section_id)
        except ApiServiceError as exc:
            raise ReportServiceError(f"Could not load exams: {exc}") from exc
        if published_only:
            exams = [exam for exam in exams if exam.is_published]
        return exams

    def active_bands(self) -> Tuple[GradeBand, ...]:
        try:
            scale = self.scales.active_scale()
        except ScaleServiceError as exc:
            logger.error("%s; using the fallback grade table", exc)
            return ()
        except ApiServiceError as exc:
            logger.warning("Grade scales unavailable (%s); using the fallback grade table", exc)
            return ()
        return scale.bands if scale else ()

    async def build_report(
        self,
        selection: SelectionState,
        *,
        subjects: Optional[Mapping[str, str]] = None,
        published_only: bool = False,
        per_subject: bool = False,
    ) -> Optional[Report]:
        """
        Build the report for the current selection.

        subjects maps known subject ids to display names. Returns None when the
        selection changed while marks were being fetched.
        """
        generation = selection.generation
        student_id = selection.student_id
        if not student_id or not selection.exam_id:
            raise ReportServiceError("A student and an exam must be selected.")

        names: Dict[str, str] = dict(subjects or {})
        exams = self.list_exams(
            year=selection.year,
            class_id=selection.class_id,
            section_id=selection.section_id,
            published_only=published_only,
        )
        bands = self.active_bands()

        if selection.is_grand_total:
            report = await self._grand_total(exams, student_id, names, bands)
        else:
            exam = next((e for e in exams if e.id == selection.exam_id), None)
            if exam is None:
                raise ExamNotFoundError(f"Exam {selection.exam_id} not found")
            report = await self._single_exam(exam, student_id, names, bands, per_subject)

        if not selection.is_current(generation):
            logger.debug("Discarding report for generation %s (now %s)", generation, selection.generation)
            return None
        return report

    async def _single_exam(
        self,
        exam: Exam,
        student_id: str,
        names: Dict[str, str],
        bands: Sequence[GradeBand],
        per_subject: bool,
    ) -> Report:
        if per_subject and names:
            fetched = await self.marks.fetch_marks_by_subject(exam, student_id, list(names))
        else:
            fetched = (await self.marks.fetch_for_exams([exam], student_id))[0]

        marks = grade_marks(fetched, bands, self.gpa_source)
        rows = exam_rows(names, marks, bands=bands, subject_names=names)
        return Report(student_id=student_id, title=exam.name, rows=rows, totals=summarize(rows, bands=bands))

    async def _grand_total(
        self,
        exams: Sequence[Exam],
        student_id: str,
        names: Dict[str, str],
        bands: Sequence[GradeBand],
    ) -> Report:
        pairs = weighted_exams(exams)
        if not pairs:
            return Report(student_id=student_id, title=GRAND_TOTAL_TITLE)

        fetched = await self.marks.fetch_for_exams([exam for exam, _ in pairs], student_id)
        marks_by_exam = [grade_marks(marks, bands, self.gpa_source) for marks in fetched]
        combined = aggregate(names, pairs, marks_by_exam, bands=bands, subject_names=names)
        rows = sort_rows(combined.values())
        return Report(student_id=student_id, title=GRAND_TOTAL_TITLE, rows=rows, totals=summarize(rows, bands=bands))
