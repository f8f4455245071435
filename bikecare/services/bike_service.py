"""Bike management: CRUD on ``bikes`` plus computed maintenance fields."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models import BikeListParams, CreateBikeCommand, UpdateBikeCommand, UpdateMileageCommand
from ..utils.errors import BadRequestError, NotFoundError
from .store import Query

logger = logging.getLogger(__name__)

BIKE_COLUMNS = (
    "*, service_records(cost), "
    "service_reminders(id, service_type, target_mileage, completed_at, triggered_at_mileage, interval_km)"
)

# Reminders this close to their target mileage are flagged as upcoming.
UPCOMING_THRESHOLD_KM = 100


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def next_service(reminders: List[Dict[str, Any]], current_mileage: int) -> Optional[Dict[str, Any]]:
    """Return the most urgent open reminder for a bike, or ``None``."""

    candidates = []
    for reminder in reminders:
        if reminder.get("completed_at"):
            continue
        target = reminder.get("target_mileage")
        if target is None:
            target = (reminder.get("triggered_at_mileage") or 0) + (reminder.get("interval_km") or 0)
        km_remaining = target - current_mileage
        if km_remaining < 0:
            status = "overdue"
        elif km_remaining <= UPCOMING_THRESHOLD_KM:
            status = "upcoming"
        else:
            status = "active"
        candidates.append(
            {
                "service_type": reminder.get("service_type"),
                "target_mileage": target,
                "km_remaining": km_remaining,
                "status": status,
            }
        )

    if not candidates:
        return None
    return min(candidates, key=lambda item: item["km_remaining"])


def to_bike_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    current_mileage = row.get("current_mileage") or 0
    reminders = row.get("service_reminders") or []
    records = row.get("service_records") or []

    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "type": row.get("type"),
        "purchase_date": row.get("purchase_date"),
        "current_mileage": row.get("current_mileage"),
        "status": row.get("status"),
        "notes": row.get("notes"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "next_service": next_service(reminders, current_mileage),
        "active_reminders_count": sum(1 for r in reminders if not r.get("completed_at")),
        "total_cost": sum((record.get("cost") or 0) for record in records),
    }


class BikeService:
    def __init__(self, store: Any) -> None:
        self._store = store

    def list_bikes(self, user_id: str, params: BikeListParams) -> Dict[str, Any]:
        query = Query("bikes", columns=BIKE_COLUMNS).eq("user_id", user_id)
        if params.status:
            query.eq("status", params.status)
        if params.type:
            query.eq("type", params.type)
        query.order("created_at", ascending=False)

        bikes = [to_bike_dto(row) for row in self._store.fetch(query).rows]
        return {"bikes": bikes, "total": len(bikes)}

    def get_bike(self, user_id: str, bike_id: str) -> Dict[str, Any]:
        row = self._store.fetch_one(
            Query("bikes", columns=BIKE_COLUMNS).eq("user_id", user_id).eq("id", bike_id)
        )
        if row is None:
            raise NotFoundError("Bike not found")
        return to_bike_dto(row)

    def create_bike(self, user_id: str, command: CreateBikeCommand) -> Dict[str, Any]:
        data = command.model_dump(mode="json")
        inserted = self._store.insert(
            "bikes",
            {
                "user_id": user_id,
                "name": data["name"],
                "type": data["type"],
                "purchase_date": data.get("purchase_date"),
                "current_mileage": data.get("current_mileage") or 0,
                "status": "active",
                "notes": data.get("notes"),
            },
        )
        logger.info(
            "bikes.create.success",
            extra={"user_id": user_id, "bike_id": inserted.get("id"), "type": data["type"]},
        )
        return self.get_bike(user_id, inserted["id"])

    def update_bike(self, user_id: str, bike_id: str, command: UpdateBikeCommand) -> Dict[str, Any]:
        values = command.changes()
        values["updated_at"] = _utcnow()
        updated = self._store.update(
            Query("bikes").eq("user_id", user_id).eq("id", bike_id), values
        )
        if not updated:
            raise NotFoundError("Bike not found")
        return self.get_bike(user_id, bike_id)

    def update_mileage(self, user_id: str, bike_id: str, command: UpdateMileageCommand) -> Dict[str, Any]:
        current = self._store.fetch_one(
            Query("bikes", columns="id, current_mileage").eq("user_id", user_id).eq("id", bike_id)
        )
        if current is None:
            raise NotFoundError("Bike not found")

        current_mileage = current.get("current_mileage") or 0
        if command.current_mileage < current_mileage:
            raise BadRequestError(
                f"New mileage ({command.current_mileage}) cannot be less than "
                f"current mileage ({current_mileage})"
            )

        updated = self._store.update(
            Query("bikes").eq("user_id", user_id).eq("id", bike_id),
            {"current_mileage": command.current_mileage, "updated_at": _utcnow()},
        )
        if not updated:
            raise NotFoundError("Bike not found")

        row = updated[0]
        return {
            "id": row.get("id"),
            "current_mileage": row.get("current_mileage"),
            "updated_at": row.get("updated_at"),
        }

    def delete_bike(self, user_id: str, bike_id: str) -> Dict[str, Any]:
        deleted = self._store.delete(Query("bikes").eq("user_id", user_id).eq("id", bike_id))
        if not deleted:
            raise NotFoundError("Bike not found")
        logger.info("bikes.delete.success", extra={"user_id": user_id, "bike_id": bike_id})
        return {"message": "Bike deleted"}
