from __future__ import annotations

from unittest import TestCase
from unittest.mock import patch

from support import BIKE_ID, MISSING_ID, OTHER_USER_ID, ApiTestCase, bike_row

from bikecare.services.bike_service import BikeService, next_service


class BikeListTests(ApiTestCase):
    def test_empty_list_has_zero_total(self) -> None:
        response = self.get("/api/bikes")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"bikes": [], "total": 0})

    def test_invalid_status_filter_is_rejected(self) -> None:
        response = self.get("/api/bikes?status=stolen")

        self.assertEqual(response.status_code, 400)
        body = response.get_json()
        self.assertEqual(body["message"], "Invalid request data")
        self.assertEqual(body["details"][0]["field"], "status")


class BikeDetailTests(ApiTestCase):
    tables = {
        "bikes": [
            bike_row(),
            bike_row(
                id="1a2b3c4d-0000-4000-8000-00000000beef",
                user_id=OTHER_USER_ID,
                name="Someone else's bike",
                created_at="2025-04-01T10:00:00+00:00",
            ),
        ],
        "service_records": [
            {"id": "s1", "bike_id": BIKE_ID, "cost": 120.5},
            {"id": "s2", "bike_id": BIKE_ID, "cost": None},
        ],
        "service_reminders": [
            {
                "id": "r1",
                "bike_id": BIKE_ID,
                "service_type": "lancuch",
                "triggered_at_mileage": 2000,
                "interval_km": 3050,
                "target_mileage": 5050,
                "completed_at": None,
            },
            {
                "id": "r2",
                "bike_id": BIKE_ID,
                "service_type": "opony",
                "triggered_at_mileage": 1000,
                "interval_km": 1000,
                "target_mileage": 2000,
                "completed_at": "2025-02-01T00:00:00+00:00",
            },
        ],
    }

    def test_list_only_returns_callers_bikes(self) -> None:
        response = self.get("/api/bikes")

        payload = response.get_json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["bikes"][0]["id"], BIKE_ID)

    def test_bike_includes_computed_fields(self) -> None:
        response = self.get(f"/api/bikes/{BIKE_ID}")

        self.assertEqual(response.status_code, 200)
        bike = response.get_json()
        self.assertEqual(bike["total_cost"], 120.5)
        self.assertEqual(bike["active_reminders_count"], 1)
        self.assertEqual(
            bike["next_service"],
            {"service_type": "lancuch", "target_mileage": 5050, "km_remaining": 50, "status": "upcoming"},
        )

    def test_malformed_bike_id_short_circuits_before_store(self) -> None:
        response = self.get("/api/bikes/not-a-uuid")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json(),
            {"error": "Bad Request", "message": "Invalid bike ID format"},
        )
        self.assertEqual(self.store.total_calls, 0)

    def test_other_users_bike_is_not_found(self) -> None:
        response = self.get("/api/bikes/1a2b3c4d-0000-4000-8000-00000000beef")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["message"], "Bike not found")

    def test_update_requires_at_least_one_field(self) -> None:
        response = self.put(f"/api/bikes/{BIKE_ID}", {})

        self.assertEqual(response.status_code, 400)

    def test_update_rejects_unknown_fields(self) -> None:
        response = self.put(f"/api/bikes/{BIKE_ID}", {"colour": "red"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["details"][0]["field"], "colour")

    def test_update_rejects_null_for_required_columns(self) -> None:
        response = self.put(f"/api/bikes/{BIKE_ID}", {"name": None, "type": None, "status": None})

        self.assertEqual(response.status_code, 400)
        self.assertIn("name", response.get_json()["details"][0]["message"])
        self.assertEqual(self.store.total_calls, 0)
        self.assertEqual(self.store.rows("bikes")[0]["name"], bike_row()["name"])

    def test_update_allows_clearing_notes(self) -> None:
        response = self.put(f"/api/bikes/{BIKE_ID}", {"notes": None, "purchase_date": None})

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.get_json()["notes"])

    def test_unexpected_exception_returns_generic_error(self) -> None:
        with patch.object(BikeService, "list_bikes", side_effect=KeyError("secret-col")):
            with self.assertLogs("bikecare.utils.responses", "ERROR"):
                response = self.get("/api/bikes")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.get_json(),
            {"error": "Internal Server Error", "message": "An unexpected error occurred"},
        )
        self.assertNotIn(b"secret-col", response.data)

    def test_unserializable_payload_still_returns_json(self) -> None:
        with patch.object(BikeService, "list_bikes", return_value={"bikes": [object()]}):
            with self.assertLogs("bikecare.utils.responses", "ERROR"):
                response = self.get("/api/bikes")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"], "Internal Server Error")

    def test_update_changes_name(self) -> None:
        response = self.put(f"/api/bikes/{BIKE_ID}", {"name": "  Endurace CF  "})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["name"], "Endurace CF")

    def test_update_missing_bike_is_not_found(self) -> None:
        response = self.put(f"/api/bikes/{MISSING_ID}", {"name": "Ghost"})

        self.assertEqual(response.status_code, 404)

    def test_mileage_cannot_decrease(self) -> None:
        response = self.patch(f"/api/bikes/{BIKE_ID}/mileage", {"current_mileage": 4000})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json()["message"],
            "New mileage (4000) cannot be less than current mileage (5000)",
        )

    def test_mileage_update_returns_summary(self) -> None:
        response = self.patch(f"/api/bikes/{BIKE_ID}/mileage", {"current_mileage": 5200})

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(set(payload), {"id", "current_mileage", "updated_at"})
        self.assertEqual(payload["current_mileage"], 5200)

    def test_delete_bike(self) -> None:
        response = self.delete(f"/api/bikes/{BIKE_ID}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"message": "Bike deleted"})
        self.assertEqual(self.get(f"/api/bikes/{BIKE_ID}").status_code, 404)


class BikeCreateTests(ApiTestCase):
    def test_create_bike_returns_201(self) -> None:
        response = self.post("/api/bikes", {"name": "Grizl", "type": "gravelowy", "current_mileage": 120})

        self.assertEqual(response.status_code, 201)
        bike = response.get_json()
        self.assertEqual(bike["name"], "Grizl")
        self.assertEqual(bike["status"], "active")
        self.assertIsNone(bike["next_service"])
        self.assertEqual(bike["total_cost"], 0)

    def test_create_bike_validates_type(self) -> None:
        response = self.post("/api/bikes", {"name": "Grizl", "type": "fatbike"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.total_calls, 0)

    def test_invalid_json_body_is_rejected(self) -> None:
        response = self.client.post(
            "/api/bikes",
            data="{not json",
            content_type="application/json",
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["message"], "Request body must be a valid JSON object")


class NextServiceTests(TestCase):
    def test_overdue_reminder_wins(self) -> None:
        reminders = [
            {"service_type": "lancuch", "target_mileage": 6000, "completed_at": None},
            {"service_type": "opony", "target_mileage": 4800, "completed_at": None},
        ]

        result = next_service(reminders, 5000)

        self.assertEqual(result["service_type"], "opony")
        self.assertEqual(result["status"], "overdue")
        self.assertEqual(result["km_remaining"], -200)

    def test_target_falls_back_to_interval(self) -> None:
        reminders = [{"service_type": "kaseta", "triggered_at_mileage": 1000, "interval_km": 9000}]

        result = next_service(reminders, 5000)

        self.assertEqual(result["target_mileage"], 10000)
        self.assertEqual(result["status"], "active")

    def test_no_open_reminders(self) -> None:
        self.assertIsNone(next_service([{"target_mileage": 10, "completed_at": "2025-01-01"}], 0))
