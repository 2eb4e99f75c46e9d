import unittest

from reportcard.core.bands import BandDraft
from reportcard.core.entities import GradeScale
from reportcard.services.api_client import ApiServiceError
from reportcard.services.scale_service import ScaleService, ScaleServiceError


class FakeClient:
    def __init__(self, scales=(), fail_activate=None, fail_deactivate=None):
        self.scales = list(scales)
        self.fail_activate = fail_activate
        self.fail_deactivate = fail_deactivate
        self.calls = []

    def list_grade_scales(self):
        return self.scales

    def create_scale(self, name, is_active=False):
        self.calls.append(("create_scale", name, is_active))
        return "10"

    def create_band(self, scale_id, band):
        self.calls.append(("create_band", scale_id, band["letter"]))

    def update_band(self, band_id, band):
        self.calls.append(("update_band", band_id, band["letter"]))

    def delete_band(self, band_id):
        self.calls.append(("delete_band", band_id))

    def update_scale(self, scale_id, **fields):
        self.calls.append(("update_scale", scale_id, fields))
        if fields.get("is_active") and scale_id == self.fail_activate:
            raise ApiServiceError("nope", 500)
        if fields.get("is_active") is False and scale_id == self.fail_deactivate:
            raise ApiServiceError("nope", 500)


class ScaleServiceTests(unittest.TestCase):
    def test_active_scale(self):
        client = FakeClient([GradeScale("1", "a"), GradeScale("2", "b", is_active=True)])
        self.assertEqual(ScaleService(client).active_scale().id, "2")
        self.assertIsNone(ScaleService(FakeClient([GradeScale("1", "a")])).active_scale())

    def test_more_than_one_active_scale(self):
        client = FakeClient([GradeScale("1", "a", True), GradeScale("2", "b", True)])
        with self.assertRaises(ScaleServiceError):
            ScaleService(client).active_scale()

    def test_activate_deactivates_others(self):
        client = FakeClient([GradeScale("1", "a", True), GradeScale("2", "b")])
        ScaleService(client).activate("2")
        self.assertEqual(
            client.calls,
            [
                ("update_scale", "1", {"is_active": False}),
                ("update_scale", "2", {"is_active": True}),
            ],
        )

    def test_failed_activation_restores_previous(self):
        client = FakeClient([GradeScale("1", "a", True), GradeScale("2", "b")], fail_activate="2")
        with self.assertRaises(ScaleServiceError):
            ScaleService(client).activate("2")
        self.assertEqual(client.calls[-1], ("update_scale", "1", {"is_active": True}))

    def test_failed_deactivation_restores_already_deactivated(self):
        scales = [GradeScale("1", "a", True), GradeScale("2", "b", True), GradeScale("3", "c")]
        client = FakeClient(scales, fail_deactivate="2")
        with self.assertRaises(ScaleServiceError):
            ScaleService(client).activate("3")
        self.assertEqual(
            client.calls,
            [
                ("update_scale", "1", {"is_active": False}),
                ("update_scale", "2", {"is_active": False}),
                ("update_scale", "1", {"is_active": True}),
            ],
        )

    def test_create_scale(self):
        client = FakeClient()
        rows = [BandDraft(0, 49, "f", 0), BandDraft(), BandDraft(50, 100, "a", 5)]
        self.assertEqual(ScaleService(client).create_scale(" Default ", rows), "10")
        self.assertEqual(
            client.calls,
            [
                ("create_scale", "Default", False),
                ("create_band", "10", "F"),
                ("create_band", "10", "A"),
            ],
        )

    def test_create_rejects_invalid_bands(self):
        client = FakeClient()
        rows = [BandDraft(0, 50, "F", 0), BandDraft(40, 100, "A", 5)]
        with self.assertRaises(ScaleServiceError) as ctx:
            ScaleService(client).create_scale("Default", rows)
        self.assertIn("overlap", ctx.exception.errors[0])
        self.assertEqual(client.calls, [])

    def test_save_scale(self):
        client = FakeClient()
        rows = [
            BandDraft(0, 49, "F", 0, id="5"),
            BandDraft(0, 100, "X", 0, id="6", deleted=True),
            BandDraft(50, 100, "A", 5),
        ]
        ScaleService(client).save_scale("3", "Edited", rows)
        self.assertEqual(
            client.calls,
            [
                ("update_scale", "3", {"name": "Edited"}),
                ("update_band", "5", "F"),
                ("delete_band", "6"),
                ("create_band", "3", "A"),
            ],
        )


if __name__ == "__main__":
    unittest.main()
