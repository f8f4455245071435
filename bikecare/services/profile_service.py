"""User profile access and data export."""

from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models import UpdateProfileCommand
from ..utils.errors import NotFoundError
from .bike_service import to_bike_dto
from .location_service import to_location_dto
from .reminder_service import to_reminder_dto
from .service_record_service import to_service_dto
from .store import Query

logger = logging.getLogger(__name__)

PSEUDONYM_ADJECTIVES = ("szybki", "wolny", "dzielny", "silny", "zwinny")
PSEUDONYM_NOUNS = ("kolarz", "rowerzysta", "pedal", "jezdziec", "rajdowiec")
PSEUDONYM_ATTEMPTS = 10


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_profile_row(user_id: str, display_name: Optional[str] = None) -> Dict[str, Any]:
    now = _utcnow()
    return {
        "id": user_id,
        "display_name": display_name,
        "thermal_preferences": None,
        "share_with_community": False,
        "units": "metric",
        "default_location_id": None,
        "created_at": now,
        "updated_at": now,
    }


def to_profile_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "display_name": row.get("display_name"),
        "thermal_preferences": row.get("thermal_preferences"),
        "pseudonym": row.get("pseudonym"),
        "share_with_community": bool(row.get("share_with_community")),
        "units": row.get("units") or "metric",
        "default_location_id": row.get("default_location_id"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


class ProfileService:
    def __init__(self, store: Any, rng: Optional[random.Random] = None) -> None:
        self._store = store
        self._rng = rng or random.Random()

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        """Return the caller's profile, creating a default one on first access."""

        row = self._store.fetch_one(Query("profiles").eq("id", user_id))
        if row is None:
            row = self._store.insert("profiles", default_profile_row(user_id))
            logger.info("profiles.create.default", extra={"user_id": user_id})
        return to_profile_dto(row)

    def update_profile(self, user_id: str, command: UpdateProfileCommand) -> Dict[str, Any]:
        current = self.get_profile(user_id)
        values = command.changes()

        if values.get("default_location_id"):
            owned = self._store.fetch_one(
                Query("user_locations", columns="id")
                .eq("id", values["default_location_id"])
                .eq("user_id", user_id)
            )
            if owned is None:
                raise NotFoundError("Location not found")

        if values.get("share_with_community") and not current.get("pseudonym"):
            values["pseudonym"] = self._generate_pseudonym()

        values["updated_at"] = _utcnow()
        updated = self._store.update(Query("profiles").eq("id", user_id), values)
        if not updated:
            raise NotFoundError("Profile not found")

        logger.info("profiles.update.success", extra={"user_id": user_id, "fields": sorted(values)})
        return to_profile_dto(updated[0])

    def export_data(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_profile(user_id)

        bikes = self._store.fetch(
            Query("bikes").eq("user_id", user_id).order("created_at", ascending=True)
        ).rows
        mileage_by_bike = {row.get("id"): row.get("current_mileage") or 0 for row in bikes}

        services: List[Dict[str, Any]] = []
        reminders: List[Dict[str, Any]] = []
        if bikes:
            bike_ids = list(mileage_by_bike)
            services = [
                to_service_dto(row)
                for row in self._store.fetch(
                    Query("service_records").in_("bike_id", bike_ids).order("service_date", ascending=True)
                ).rows
            ]
            reminders = [
                to_reminder_dto(row, mileage_by_bike.get(row.get("bike_id"), 0))
                for row in self._store.fetch(
                    Query("service_reminders").in_("bike_id", bike_ids).order("created_at", ascending=True)
                ).rows
            ]

        locations = self._store.fetch(
            Query("user_locations").eq("user_id", user_id).order("created_at", ascending=True)
        ).rows

        logger.info(
            "profiles.export.success",
            extra={"user_id": user_id, "bikes": len(bikes), "services": len(services)},
        )
        return {
            "profile": profile,
            "bikes": [to_bike_dto(row) for row in bikes],
            "services": services,
            "reminders": reminders,
            "locations": [to_location_dto(row) for row in locations],
            "exported_at": _utcnow(),
        }

    def create_placeholder_profile(self, user_id: str, display_name: str = "Test User") -> Dict[str, Any]:
        row = self._store.insert("profiles", default_profile_row(user_id, display_name))
        logger.info("profiles.placeholder.created", extra={"user_id": user_id})
        return to_profile_dto(row)

    def _generate_pseudonym(self) -> str:
        for _ in range(PSEUDONYM_ATTEMPTS):
            candidate = "{}_{}_{}".format(
                self._rng.choice(PSEUDONYM_ADJECTIVES),
                self._rng.choice(PSEUDONYM_NOUNS),
                self._rng.randint(1000, 9999),
            )
            taken = self._store.fetch_one(
                Query("profiles", columns="id").eq("pseudonym", candidate)
            )
            if taken is None:
                return candidate
        return f"kolarz_{uuid.uuid4().hex[:8]}"
