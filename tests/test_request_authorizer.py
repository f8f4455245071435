from __future__ import annotations

from support import BIKE_ID, MISSING_ID, ApiTestCase, make_token

UNAUTHORIZED = {"error": "Unauthorized", "message": "Authentication required"}

PROTECTED_ROUTES = [
    ("GET", "/api/default-intervals"),
    ("GET", "/api/bikes"),
    ("POST", "/api/bikes"),
    ("GET", f"/api/bikes/{BIKE_ID}"),
    ("PUT", f"/api/bikes/{BIKE_ID}"),
    ("DELETE", f"/api/bikes/{BIKE_ID}"),
    ("PATCH", f"/api/bikes/{BIKE_ID}/mileage"),
    ("GET", f"/api/bikes/{BIKE_ID}/services"),
    ("POST", f"/api/bikes/{BIKE_ID}/services"),
    ("GET", f"/api/bikes/{BIKE_ID}/services/stats"),
    ("GET", f"/api/bikes/{BIKE_ID}/services/{MISSING_ID}"),
    ("PUT", f"/api/bikes/{BIKE_ID}/services/{MISSING_ID}"),
    ("DELETE", f"/api/bikes/{BIKE_ID}/services/{MISSING_ID}"),
    ("GET", f"/api/bikes/{BIKE_ID}/reminders"),
    ("POST", f"/api/bikes/{BIKE_ID}/reminders"),
    ("PUT", f"/api/bikes/{BIKE_ID}/reminders/{MISSING_ID}/complete"),
    ("DELETE", f"/api/bikes/{BIKE_ID}/reminders/{MISSING_ID}"),
    ("GET", "/api/locations"),
    ("POST", "/api/locations"),
    ("PUT", f"/api/locations/{MISSING_ID}"),
    ("DELETE", f"/api/locations/{MISSING_ID}"),
    ("GET", "/api/profile"),
    ("PUT", "/api/profile"),
    ("GET", "/api/profile/export"),
]


class RequestAuthorizerTests(ApiTestCase):
    def test_every_protected_route_rejects_anonymous_requests(self) -> None:
        for method, path in PROTECTED_ROUTES:
            with self.subTest(method=method, path=path):
                response = self.client.open(path, method=method, json={})

                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.mimetype, "application/json")
                self.assertEqual(response.get_json(), UNAUTHORIZED)

        self.assertEqual(self.store.total_calls, 0)

    def test_malformed_identifier_is_still_unauthorized_without_token(self) -> None:
        response = self.client.get("/api/bikes/not-a-uuid")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), UNAUTHORIZED)

    def test_invalid_signature_is_treated_as_anonymous(self) -> None:
        token = make_token(secret="someone-else")
        response = self.get("/api/bikes", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.store.total_calls, 0)

    def test_expired_token_is_rejected(self) -> None:
        token = make_token(expires_in=-60)
        response = self.get("/api/bikes", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 401)

    def test_non_bearer_scheme_is_rejected(self) -> None:
        response = self.get("/api/bikes", headers={"Authorization": f"Basic {make_token()}"})

        self.assertEqual(response.status_code, 401)

    def test_session_cookie_authenticates_request(self) -> None:
        self.client.set_cookie("sb-access-token", make_token())
        response = self.client.get("/api/bikes")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"bikes": [], "total": 0})
