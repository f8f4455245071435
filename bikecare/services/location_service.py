"""Saved user locations.

Coordinates live in a PostGIS column, so inserts and coordinate changes go
through the ``insert_location`` and ``update_location_coordinates`` database
functions. Everything else is plain table access.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models import CreateLocationCommand, UpdateLocationCommand
from ..utils.errors import ConflictError, NotFoundError
from .store import Query, StoreError

logger = logging.getLogger(__name__)

# Decimal places kept for stored coordinates (roughly 100 m).
COORDINATE_PRECISION = 3


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def round_coordinate(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), COORDINATE_PRECISION)


def to_location_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "location": {
            "latitude": round_coordinate(row.get("latitude")),
            "longitude": round_coordinate(row.get("longitude")),
        },
        "city": row.get("city"),
        "country_code": row.get("country_code"),
        "is_default": bool(row.get("is_default")),
        "label": row.get("label"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


class LocationService:
    def __init__(self, store: Any) -> None:
        self._store = store

    def list_locations(self, user_id: str, default_only: bool = False) -> List[Dict[str, Any]]:
        query = Query("user_locations").eq("user_id", user_id)
        if default_only:
            query.eq("is_default", True)
        query.order("created_at", ascending=False)
        return [to_location_dto(row) for row in self._store.fetch(query).rows]

    def create_location(self, user_id: str, command: CreateLocationCommand) -> Dict[str, Any]:
        if command.is_default:
            self._clear_default(user_id)

        location_id = self._store.rpc(
            "insert_location",
            {
                "p_user_id": user_id,
                "p_latitude": round_coordinate(command.latitude),
                "p_longitude": round_coordinate(command.longitude),
                "p_city": command.city,
                "p_country_code": command.country_code,
                "p_is_default": command.is_default,
                "p_label": command.label,
            },
        )
        if not location_id:
            raise StoreError("insert_location returned no id")

        row = self._require_location(user_id, str(location_id))
        logger.info(
            "locations.create.success",
            extra={"user_id": user_id, "location_id": row.get("id"), "is_default": command.is_default},
        )
        return to_location_dto(row)

    def update_location(self, user_id: str, location_id: str, command: UpdateLocationCommand) -> Dict[str, Any]:
        self._require_location(user_id, location_id)

        if command.is_default:
            self._clear_default(user_id, keep_id=location_id)

        if command.latitude is not None and command.longitude is not None:
            self._store.rpc(
                "update_location_coordinates",
                {
                    "p_location_id": location_id,
                    "p_user_id": user_id,
                    "p_latitude": round_coordinate(command.latitude),
                    "p_longitude": round_coordinate(command.longitude),
                },
            )

        values = {
            key: value
            for key, value in command.changes().items()
            if key not in ("latitude", "longitude")
        }
        if values:
            values["updated_at"] = _utcnow()
            self._store.update(
                Query("user_locations").eq("id", location_id).eq("user_id", user_id), values
            )

        return to_location_dto(self._require_location(user_id, location_id))

    def delete_location(self, user_id: str, location_id: str) -> Dict[str, Any]:
        locations = self._store.fetch(
            Query("user_locations", columns="id, is_default").eq("user_id", user_id)
        ).rows

        target = next((row for row in locations if str(row.get("id")) == location_id), None)
        if target is None:
            raise NotFoundError("Location not found")
        if len(locations) == 1:
            raise ConflictError("Cannot delete the last location. User must have at least one location.")
        if target.get("is_default"):
            raise ConflictError("Cannot delete default location. Set another location as default first.")

        self._store.delete(Query("user_locations").eq("id", location_id).eq("user_id", user_id))
        logger.info("locations.delete.success", extra={"user_id": user_id, "location_id": location_id})
        return {"message": "Location deleted"}

    def _clear_default(self, user_id: str, keep_id: Optional[str] = None) -> None:
        query = Query("user_locations").eq("user_id", user_id).eq("is_default", True)
        if keep_id:
            query.neq("id", keep_id)
        self._store.update(query, {"is_default": False})

    def _require_location(self, user_id: str, location_id: str) -> Dict[str, Any]:
        row = self._store.fetch_one(
            Query("user_locations").eq("id", location_id).eq("user_id", user_id)
        )
        if row is None:
            raise NotFoundError("Location not found")
        return row
