import logging
from typing import Dict, List, Optional, Sequence

from reportcard.core.bands import BandDraft, BandErrors, NormalizedBand, can_save, live_bands, validate_bands
from reportcard.core.entities import GradeScale
from reportcard.services.api_client import ApiClient, ApiServiceError


logger = logging.getLogger(__name__)


class ScaleServiceError(Exception):
    def __init__(self, detail: str, errors: Optional[List[BandErrors]] = None) -> None:
        super().__init__(detail)
        self.errors = errors or []


def _band_payload(band: NormalizedBand) -> Dict:
    return {
        "min_score": band.min_score,
        "max_score": band.max_score,
        "letter": band.letter,
        "gpa": band.gpa,
    }


class ScaleService:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls) -> "ScaleService":
        try:
            return cls(ApiClient.from_settings())
        except ApiServiceError as exc:
            raise ScaleServiceError(str(exc)) from exc

    def list_scales(self) -> List[GradeScale]:
        return self.client.list_grade_scales()

    def active_scale(self) -> Optional[GradeScale]:
        active = [scale for scale in self.list_scales() if scale.is_active]
        if len(active) > 1:
            ids = ", ".join(scale.id for scale in active)
            raise ScaleServiceError(f"More than one grade scale is active: {ids}")
        return active[0] if active else None

    def _check(self, name: str, rows: Sequence[BandDraft]) -> None:
        if not can_save(rows, name):
            raise ScaleServiceError("Grade scale has invalid bands.", validate_bands(rows))

    def create_scale(self, name: str, rows: Sequence[BandDraft]) -> str:
        self._check(name, rows)
        try:
            scale_id = self.client.create_scale(name.strip(), is_active=False)
            for band in live_bands(rows):
                self.client.create_band(scale_id, _band_payload(band))
        except ApiServiceError as exc:
            raise ScaleServiceError(str(exc)) from exc
        logger.info("Created grade scale %s (%s)", scale_id, name.strip())
        return scale_id

    def save_scale(self, scale_id: str, name: str, rows: Sequence[BandDraft]) -> None:
        self._check(name, rows)
        live = {band.index: band for band in live_bands(rows)}
        try:
            self.client.update_scale(scale_id, name=name.strip())
            for index, row in enumerate(rows):
                if row.deleted:
                    if row.id:
                        self.client.delete_band(row.id)
                    continue
                band = live.get(index)
                if band is None:
                    continue
                if row.id:
                    self.client.update_band(row.id, _band_payload(band))
                else:
                    self.client.create_band(scale_id, _band_payload(band))
        except ApiServiceError as exc:
            raise ScaleServiceError(str(exc)) from exc

    def activate(self, scale_id: str) -> None:
        """Make scale_id the only active scale, undoing deactivations on failure."""
        deactivated: List[str] = []
        try:
            previous = [s.id for s in self.list_scales() if s.is_active and s.id != scale_id]
            for other in previous:
                self.client.update_scale(other, is_active=False)
                deactivated.append(other)
            self.client.update_scale(scale_id, is_active=True)
        except ApiServiceError as exc:
            self._reactivate(deactivated)
            raise ScaleServiceError(str(exc)) from exc
        logger.info("Activated grade scale %s", scale_id)

    def _reactivate(self, scale_ids: Sequence[str]) -> None:
        for other in scale_ids:
            try:
                self.client.update_scale(other, is_active=True)
            except ApiServiceError as exc:
                logger.error("Could not re-activate grade scale %s: %s", other, exc)
