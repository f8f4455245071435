"""Shared fixtures for the API test cases."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from unittest import TestCase

import jwt

from bikecare import create_app
from bikecare.config import Settings

from fakes import FakeStore

JWT_SECRET = "test-secret"
USER_ID = "6f1c7c3e-2b1d-4a7e-9a57-2a4f0d1b9c11"
OTHER_USER_ID = "0b7d2f4e-8c9a-4d3b-a1e6-5f2c8b7d9e00"
BIKE_ID = "9d4e3b2a-1c0f-4e8d-b7a6-5f4e3d2c1b0a"
MISSING_ID = "00000000-0000-4000-8000-000000000000"


def make_token(user_id: str = USER_ID, secret: str = JWT_SECRET, expires_in: int = 3600) -> str:
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def make_settings(**overrides: Any) -> Settings:
    values = {
        "supabase_url": "https://example.supabase.co",
        "supabase_key": "anon-key",
        "jwt_secret": JWT_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


class ApiTestCase(TestCase):
    """Builds an app around a :class:`FakeStore` and an authenticated client."""

    tables: Dict[str, Any] = {}
    settings_overrides: Dict[str, Any] = {}

    def setUp(self) -> None:
        self.store = FakeStore(self.tables)
        self.app = create_app(settings=make_settings(**self.settings_overrides), store=self.store)
        self.app.config.update(TESTING=True)
        self.client = self.app.test_client()
        self.headers = {"Authorization": f"Bearer {make_token()}"}

    def get(self, path: str, headers: Optional[Dict[str, str]] = None):
        return self.client.get(path, headers=self.headers if headers is None else headers)

    def post(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return self.client.post(path, json=body, headers=self.headers if headers is None else headers)

    def put(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return self.client.put(path, json=body, headers=self.headers if headers is None else headers)

    def patch(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return self.client.patch(path, json=body, headers=self.headers if headers is None else headers)

    def delete(self, path: str, headers: Optional[Dict[str, str]] = None):
        return self.client.delete(path, headers=self.headers if headers is None else headers)


def bike_row(**overrides: Any) -> Dict[str, Any]:
    row = {
        "id": BIKE_ID,
        "user_id": USER_ID,
        "name": "Canyon Endurace",
        "type": "szosowy",
        "purchase_date": None,
        "current_mileage": 5000,
        "status": "active",
        "notes": None,
        "created_at": "2025-03-01T10:00:00+00:00",
        "updated_at": "2025-03-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row
