"""Service reminders and the default interval reference table."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..models import CompleteReminderCommand, CreateReminderCommand, ReminderListParams
from ..utils.errors import ConflictError, NotFoundError
from .store import Query

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_COLUMNS = "service_type, default_interval_km, description, created_at, updated_at"

# Open reminders within this distance of their target are due now.
ACTIVE_THRESHOLD_KM = 200


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def reminder_status(completed_at: Any, km_remaining: int) -> str:
    if completed_at:
        return "completed"
    if km_remaining < 0:
        return "overdue"
    if km_remaining <= ACTIVE_THRESHOLD_KM:
        return "active"
    return "upcoming"


def to_reminder_dto(row: Dict[str, Any], current_mileage: int) -> Dict[str, Any]:
    triggered = row.get("triggered_at_mileage") or 0
    interval = row.get("interval_km") or 0
    target = triggered + interval
    km_remaining = target - current_mileage

    return {
        "id": row.get("id"),
        "bike_id": row.get("bike_id"),
        "service_type": row.get("service_type"),
        "triggered_at_mileage": triggered,
        "interval_km": interval,
        "target_mileage": target,
        "current_mileage": current_mileage,
        "km_remaining": km_remaining,
        "status": reminder_status(row.get("completed_at"), km_remaining),
        "completed_at": row.get("completed_at"),
        "completed_service_id": row.get("completed_service_id"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


class ReminderService:
    def __init__(self, store: Any) -> None:
        self._store = store

    def list_default_intervals(self) -> List[Dict[str, Any]]:
        query = Query("default_service_intervals", columns=DEFAULT_INTERVAL_COLUMNS).order(
            "default_interval_km", ascending=True
        )
        return self._store.fetch(query).rows

    def list_reminders(self, user_id: str, bike_id: str, params: ReminderListParams) -> List[Dict[str, Any]]:
        bike = self._verify_bike_ownership(user_id, bike_id)
        current_mileage = bike.get("current_mileage") or 0

        query = Query("service_reminders").eq("bike_id", bike_id)
        if params.status in ("active", "overdue"):
            query.is_null("completed_at")
        elif params.status == "completed":
            query.not_null("completed_at")
        if params.service_type:
            query.eq("service_type", params.service_type)

        field, _, direction = params.sort.rpartition("_")
        descending = direction == "desc"
        if field == "created_at":
            query.order("created_at", ascending=not descending)

        reminders = [to_reminder_dto(row, current_mileage) for row in self._store.fetch(query).rows]
        if params.status == "overdue":
            reminders = [item for item in reminders if item["status"] == "overdue"]
        if field == "km_remaining":
            reminders.sort(key=lambda item: item["km_remaining"], reverse=descending)
        return reminders

    def create_reminder(self, user_id: str, bike_id: str, command: CreateReminderCommand) -> Dict[str, Any]:
        bike = self._verify_bike_ownership(user_id, bike_id)
        current_mileage = bike.get("current_mileage") or 0

        existing = self._store.fetch_one(
            Query("service_reminders", columns="id")
            .eq("bike_id", bike_id)
            .eq("service_type", command.service_type)
            .is_null("completed_at")
        )
        if existing is not None:
            raise ConflictError(
                f"Active reminder for service type '{command.service_type}' already exists for this bike"
            )

        row = self._store.insert(
            "service_reminders",
            {
                "bike_id": bike_id,
                "service_type": command.service_type,
                "interval_km": command.interval_km,
                "triggered_at_mileage": current_mileage,
            },
        )
        logger.info(
            "reminders.create.success",
            extra={"user_id": user_id, "bike_id": bike_id, "reminder_id": row.get("id")},
        )
        return to_reminder_dto(row, current_mileage)

    def complete_reminder(
        self,
        user_id: str,
        bike_id: str,
        reminder_id: str,
        command: CompleteReminderCommand,
    ) -> Dict[str, Any]:
        bike = self._verify_bike_ownership(user_id, bike_id)
        service_id = str(command.completed_service_id)

        reminder = self._store.fetch_one(
            Query("service_reminders").eq("id", reminder_id).eq("bike_id", bike_id)
        )
        if reminder is None:
            raise NotFoundError("Reminder not found")
        if reminder.get("completed_at"):
            raise ConflictError("Reminder is already completed")

        record = self._store.fetch_one(
            Query("service_records", columns="id").eq("id", service_id).eq("bike_id", bike_id)
        )
        if record is None:
            raise NotFoundError(f"Service record with ID {service_id} not found for this bike")

        now = _utcnow()
        updated = self._store.update(
            Query("service_reminders").eq("id", reminder_id).eq("bike_id", bike_id),
            {"completed_at": now, "completed_service_id": service_id, "updated_at": now},
        )
        if not updated:
            raise NotFoundError("Reminder not found")

        logger.info(
            "reminders.complete.success",
            extra={"user_id": user_id, "bike_id": bike_id, "reminder_id": reminder_id},
        )
        return to_reminder_dto(updated[0], bike.get("current_mileage") or 0)

    def delete_reminder(self, user_id: str, bike_id: str, reminder_id: str) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        deleted = self._store.delete(
            Query("service_reminders").eq("id", reminder_id).eq("bike_id", bike_id)
        )
        if not deleted:
            raise NotFoundError("Reminder not found")
        return {"message": "Reminder deleted"}

    def _verify_bike_ownership(self, user_id: str, bike_id: str) -> Dict[str, Any]:
        bike = self._store.fetch_one(
            Query("bikes", columns="id, current_mileage").eq("id", bike_id).eq("user_id", user_id)
        )
        if bike is None:
            raise NotFoundError("Bike not found")
        return bike
