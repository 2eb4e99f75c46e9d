from dataclasses import asdict
import logging
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from reportcard.config.settings import settings
from reportcard.core.bands import BandDraft, can_save, validate_bands
from reportcard.services.api_client import ApiClient, ApiServiceError
from reportcard.services.report_service import ExamNotFoundError, ReportService, ReportServiceError
from reportcard.services.scale_service import ScaleService, ScaleServiceError
from reportcard.state.selection_state import GRAND_TOTAL, SelectionState


logging.basicConfig(level=settings.log_level)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

app = FastAPI(title="Reportcard API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Number = Union[float, str, None]


class BandPayload(BaseModel):
    id: Optional[str] = None
    min_score: Number = ""
    max_score: Number = ""
    letter: str = ""
    gpa: Number = ""
    deleted: bool = False


class ScalePayload(BaseModel):
    name: str = ""
    bands: List[BandPayload] = Field(default_factory=list)


class MarksPayload(BaseModel):
    subject_id: str
    scores: Dict[str, Number]
    locked: List[str] = Field(default_factory=list)


class PublishPayload(BaseModel):
    is_published: bool


def _drafts(payload: ScalePayload) -> List[BandDraft]:
    return [BandDraft.from_dict(band.model_dump()) for band in payload.bands]


def _errors_payload(drafts: List[BandDraft]) -> List[List[str]]:
    return [sorted(err.flags) for err in validate_bands(drafts)]


def _subject_names(entries: List[str]) -> Dict[str, str]:
    """Parse repeated `subject` query values of the form `id` or `id:name`."""
    names: Dict[str, str] = {}
    for entry in entries:
        subject_id, _, name = entry.partition(":")
        subject_id = subject_id.strip()
        if subject_id:
            names[subject_id] = name.strip() or subject_id
    return names


async def _report(
    student_id: str,
    exam_id: str,
    year: Optional[str],
    class_id: Optional[str],
    section_id: Optional[str],
    published_only: bool,
    subjects: List[str],
) -> Dict:
    selection = SelectionState()
    selection.select(
        student_id=student_id,
        exam_id=exam_id,
        year=year,
        class_id=class_id,
        section_id=section_id,
    )
    try:
        reports = ReportService.from_settings()
        report = await reports.build_report(
            selection, subjects=_subject_names(subjects), published_only=published_only
        )
    except ExamNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (ReportServiceError, ApiServiceError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if report is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Selection changed")
    return asdict(report)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/reports/{student_id}/grand")
async def grand_total_report(
    student_id: str,
    year: Optional[str] = None,
    class_id: Optional[str] = None,
    section_id: Optional[str] = None,
    published_only: bool = False,
    subject: List[str] = Query(default=[]),
) -> Dict:
    return await _report(student_id, GRAND_TOTAL, year, class_id, section_id, published_only, subject)


@app.get("/reports/{student_id}/exams/{exam_id}")
async def exam_report(
    student_id: str,
    exam_id: str,
    year: Optional[str] = None,
    class_id: Optional[str] = None,
    section_id: Optional[str] = None,
    published_only: bool = False,
    subject: List[str] = Query(default=[]),
) -> Dict:
    return await _report(student_id, exam_id, year, class_id, section_id, published_only, subject)


@app.post("/grade-scales/validate")
def validate_scale(payload: ScalePayload) -> Dict:
    drafts = _drafts(payload)
    return {
        "errors": _errors_payload(drafts),
        "can_save": can_save(drafts, payload.name),
    }


@app.post("/grade-scales")
def create_scale(payload: ScalePayload) -> Dict:
    try:
        scales = ScaleService.from_settings()
        return {"id": scales.create_scale(payload.name, _drafts(payload))}
    except ScaleServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "errors": [sorted(e.flags) for e in exc.errors]},
        ) from exc


@app.put("/grade-scales/{scale_id}")
def save_scale(scale_id: str, payload: ScalePayload) -> Dict[str, str]:
    try:
        scales = ScaleService.from_settings()
        scales.save_scale(scale_id, payload.name, _drafts(payload))
        return {"status": "saved"}
    except ScaleServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "errors": [sorted(e.flags) for e in exc.errors]},
        ) from exc


@app.post("/grade-scales/{scale_id}/activate")
def activate_scale(scale_id: str) -> Dict[str, str]:
    try:
        scales = ScaleService.from_settings()
        scales.activate(scale_id)
        return {"status": "activated"}
    except ScaleServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.patch("/exams/{exam_id}/published")
def set_published(exam_id: str, payload: PublishPayload) -> Dict[str, str]:
    try:
        client = ApiClient.from_settings()
        client.set_exam_published(exam_id, payload.is_published)
        return {"status": "published" if payload.is_published else "unpublished"}
    except ApiServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.post("/exams/{exam_id}/marks")
def save_marks(exam_id: str, payload: MarksPayload) -> Dict[str, int]:
    try:
        client = ApiClient.from_settings()
    except ApiServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    ok, failed = client.save_marks(exam_id, payload.subject_id, payload.scores, locked=payload.locked)
    return {"saved": ok, "failed": failed}
