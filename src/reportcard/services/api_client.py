import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import requests
from requests import RequestException

from reportcard.config.settings import settings
from reportcard.core.entities import Exam, GradeScale, Mark, to_id, to_number
from reportcard.core.grades import clamp_0_100


logger = logging.getLogger(__name__)


class ApiServiceError(Exception):
    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def _rows(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return [row for row in data["results"] if isinstance(row, dict)]
    return []


class ApiClient:
    EXAMS_PATH = "/exams/"
    MARKS_PATH = "/exam-marks/"
    SCALES_PATH = "/grade-scales/"
    BANDS_PATH = "/grade-bands/"

    def __init__(self, base_url: str, token: str = "", timeout: float = 15.0) -> None:
        if not base_url:
            raise ApiServiceError("Missing REPORTCARD_API_BASE_URL in environment")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "ApiClient":
        return cls(settings.api_base_url, settings.api_token, settings.http_timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            res = requests.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except RequestException as exc:
            raise ApiServiceError(f"{method} {path} failed: {exc}") from exc

        if res.status_code >= 400:
            try:
                data = res.json()
            except ValueError:
                data = {}
            detail = data.get("detail") if isinstance(data, dict) else None
            raise ApiServiceError(str(detail or f"{method} {path} returned {res.status_code}"), res.status_code)

        if res.status_code == 204 or not res.content:
            return None
        try:
            return res.json()
        except ValueError as exc:
            raise ApiServiceError(f"{method} {path} returned invalid JSON") from exc

    # Exams

    def list_exams(
        self,
        *,
        year: Optional[str] = None,
        class_id: Optional[str] = None,
        section_id: Optional[str] = None,
    ) -> List[Exam]:
        params = {}
        if year:
            params["year"] = year
        if class_id:
            params["class_name"] = class_id
        if section_id:
            params["section"] = section_id
        data = self._request("GET", self.EXAMS_PATH, params=params)
        return [Exam.from_api(row) for row in _rows(data)]

    def set_exam_published(self, exam_id: str, published: bool) -> None:
        self._request("PATCH", f"{self.EXAMS_PATH}{exam_id}/", payload={"is_published": published})

    def rename_exam(self, exam_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            raise ApiServiceError("Exam name is required.")
        self._request("PATCH", f"{self.EXAMS_PATH}{exam_id}/", payload={"name": name})

    # Marks

    def list_marks(self, exam_id: str, student_id: str, subject_id: Optional[str] = None) -> List[Mark]:
        params = {"exam": exam_id, "student": student_id}
        if subject_id:
            params["subject"] = subject_id
        data = self._request("GET", self.MARKS_PATH, params=params)
        return [Mark.from_api(row) for row in _rows(data)]

    def upsert_mark(
        self,
        exam_id: str,
        student_id: str,
        subject_id: str,
        score: float,
        *,
        mark_id: Optional[str] = None,
    ) -> None:
        value = clamp_0_100(float(score))
        if mark_id:
            self._request("PATCH", f"{self.MARKS_PATH}{mark_id}/", payload={"score": value})
            return

        common = {"exam": exam_id, "student": student_id, "subject": subject_id}
        try:
            self._request("POST", self.MARKS_PATH, payload={**common, "score": value})
            return
        except ApiServiceError as exc:
            # the backend rejects duplicates, so fall back to patching the existing row
            logger.info("POST mark failed (%s), looking up existing mark", exc)

        existing = self.list_marks(exam_id, student_id, subject_id)
        if not existing or not existing[0].id:
            raise ApiServiceError(
                f"Could not save mark for student {student_id}, subject {subject_id}"
            )
        self._request("PATCH", f"{self.MARKS_PATH}{existing[0].id}/", payload={"score": value})

    def save_marks(
        self,
        exam_id: str,
        subject_id: str,
        scores: Mapping[str, Any],
        *,
        locked: Iterable[str] = (),
    ) -> Tuple[int, int]:
        locked_ids = {to_id(sid) for sid in locked}
        ok = failed = 0
        for student_id, raw in scores.items():
            sid = to_id(student_id)
            if sid in locked_ids:
                continue
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            value = to_number(raw)
            if value is None:
                failed += 1
                continue
            try:
                self.upsert_mark(exam_id, sid, subject_id, value)
                ok += 1
            except ApiServiceError as exc:
                logger.warning("Saving mark for student %s failed: %s", sid, exc)
                failed += 1
        return ok, failed

    # Grade scales

    def list_grade_scales(self) -> List[GradeScale]:
        data = self._request("GET", self.SCALES_PATH)
        return [GradeScale.from_api(row) for row in _rows(data)]

    def create_scale(self, name: str, is_active: bool = False) -> str:
        data = self._request("POST", self.SCALES_PATH, payload={"name": name, "is_active": is_active})
        scale_id = to_id((data or {}).get("id"))
        if not scale_id:
            raise ApiServiceError("Grade scale was created without an id")
        return scale_id

    def update_scale(self, scale_id: str, **fields: Any) -> None:
        self._request("PATCH", f"{self.SCALES_PATH}{scale_id}/", payload=fields)

    def delete_scale(self, scale_id: str) -> None:
        self._request("DELETE", f"{self.SCALES_PATH}{scale_id}/")

    def create_band(self, scale_id: str, band: Dict[str, Any]) -> None:
        self._request("POST", self.BANDS_PATH, payload={"scale": scale_id, **band})

    def update_band(self, band_id: str, band: Dict[str, Any]) -> None:
        self._request("PATCH", f"{self.BANDS_PATH}{band_id}/", payload=band)

    def delete_band(self, band_id: str) -> None:
        self._request("DELETE", f"{self.BANDS_PATH}{band_id}/")
