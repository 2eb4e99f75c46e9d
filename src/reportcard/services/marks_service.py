import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from reportcard.config.settings import settings
from reportcard.core.entities import Exam, Mark, SubjectMark
from reportcard.services.api_client import ApiClient, ApiServiceError


logger = logging.getLogger(__name__)

SubjectMarks = Dict[str, SubjectMark]


def _to_subject_mark(mark: Mark) -> SubjectMark:
    return SubjectMark(score=mark.score, gpa=mark.gpa, letter=mark.letter, mark_id=mark.id)


class MarksService:
    """Reads marks for one student. Failures come back as empty results."""

    def __init__(self, client: ApiClient, timeout: Optional[float] = None) -> None:
        self.client = client
        self.timeout = settings.fetch_timeout if timeout is None else timeout

    @classmethod
    def from_settings(cls) -> "MarksService":
        return cls(ApiClient.from_settings(), settings.fetch_timeout)

    def fetch_subject_marks(self, exam: Exam, student_id: str) -> SubjectMarks:
        try:
            marks = self.client.list_marks(exam.id, student_id)
        except ApiServiceError as exc:
            logger.warning("Marks for exam %s, student %s unavailable: %s", exam.id, student_id, exc)
            return {}

        results: SubjectMarks = {}
        for mark in marks:
            if mark.subject_id:
                results[mark.subject_id] = _to_subject_mark(mark)
        return results

    def _fetch_one_subject(self, exam: Exam, student_id: str, subject_id: str) -> Optional[SubjectMark]:
        try:
            marks = self.client.list_marks(exam.id, student_id, subject_id)
        except ApiServiceError as exc:
            logger.warning(
                "Mark for exam %s, student %s, subject %s unavailable: %s",
                exam.id,
                student_id,
                subject_id,
                exc,
            )
            return None
        if not marks:
            return None
        return _to_subject_mark(marks[0])

    async def _bounded(self, call, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(call, *args), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("%s%s timed out after %ss", call.__name__, args, self.timeout)
            return None

    async def fetch_for_exams(self, exams: Sequence[Exam], student_id: str) -> List[SubjectMarks]:
        """Fetch every exam concurrently; slot i holds the marks of exams[i]."""
        results: List[SubjectMarks] = [{} for _ in exams]

        async def load(index: int, exam: Exam) -> None:
            marks = await self._bounded(self.fetch_subject_marks, exam, student_id)
            results[index] = marks or {}

        await asyncio.gather(*(load(i, exam) for i, exam in enumerate(exams)))
        return results

    async def fetch_marks_by_subject(
        self,
        exam: Exam,
        student_id: str,
        subject_ids: Sequence[str],
    ) -> SubjectMarks:
        results: Dict[str, Optional[SubjectMark]] = {sid: None for sid in subject_ids}

        async def load(subject_id: str) -> None:
            results[subject_id] = await self._bounded(self._fetch_one_subject, exam, student_id, subject_id)

        await asyncio.gather(*(load(sid) for sid in results))
        return {sid: mark for sid, mark in results.items() if mark is not None}
