"""Service record management and cost statistics."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import (
    CreateServiceCommand,
    ServiceListParams,
    ServiceStatsParams,
    UpdateServiceCommand,
)
from ..utils.errors import BadRequestError, NotFoundError
from .store import Query, StoreError

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "PLN"
ALL_TIME_START = date(2020, 1, 1)
PERIOD_DAYS = {"month": 30, "quarter": 90, "year": 365}
TIMELINE_MONTHS = 12

SORT_COLUMNS = {
    "service_date": "service_date",
    "mileage": "mileage_at_service",
    "cost": "cost",
}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_service_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "bike_id": row.get("bike_id"),
        "service_date": row.get("service_date"),
        "mileage_at_service": row.get("mileage_at_service"),
        "service_type": row.get("service_type"),
        "service_location": row.get("service_location"),
        "cost": row.get("cost"),
        "currency": row.get("currency"),
        "notes": row.get("notes"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def stats_date_range(params: ServiceStatsParams, today: Optional[date] = None) -> Tuple[date, date]:
    today = today or datetime.now(timezone.utc).date()
    if params.from_date and params.to_date:
        return params.from_date, params.to_date

    days = PERIOD_DAYS.get(params.period)
    if days is None:
        return ALL_TIME_START, today
    return today - timedelta(days=days), today


def summarize_services(records: Iterable[Dict[str, Any]], start: date, end: date) -> Dict[str, Any]:
    """Aggregate service rows into totals, breakdowns and a monthly timeline."""

    records = list(records)
    total_cost = 0.0
    by_type: Dict[str, Dict[str, float]] = {}
    by_location = {
        "warsztat": {"count": 0, "total_cost": 0.0},
        "samodzielnie": {"count": 0, "total_cost": 0.0},
    }
    by_month: Dict[str, Dict[str, float]] = {}
    mileages: List[int] = []

    for record in records:
        cost = float(record.get("cost") or 0)
        total_cost += cost

        type_entry = by_type.setdefault(record.get("service_type") or "inne", {"count": 0, "total_cost": 0.0})
        type_entry["count"] += 1
        type_entry["total_cost"] += cost

        location = record.get("service_location") or "samodzielnie"
        location_entry = by_location.setdefault(location, {"count": 0, "total_cost": 0.0})
        location_entry["count"] += 1
        location_entry["total_cost"] += cost

        month = str(record.get("service_date") or "")[:7]
        if month:
            month_entry = by_month.setdefault(month, {"cost": 0.0, "services": 0})
            month_entry["cost"] += cost
            month_entry["services"] += 1

        if record.get("mileage_at_service") is not None:
            mileages.append(record["mileage_at_service"])

    total_mileage = max(mileages) - min(mileages) if len(mileages) > 1 else 0
    cost_per_km = round(total_cost / total_mileage, 2) if total_mileage > 0 else 0

    breakdown_by_type = sorted(
        (
            {
                "service_type": service_type,
                "count": int(entry["count"]),
                "total_cost": entry["total_cost"],
                "avg_cost": round(entry["total_cost"] / entry["count"], 2) if entry["count"] else 0,
                "percentage": round(entry["total_cost"] / total_cost * 100, 2) if total_cost > 0 else 0,
            }
            for service_type, entry in by_type.items()
        ),
        key=lambda item: item["total_cost"],
        reverse=True,
    )

    timeline = [
        {"month": month, "cost": entry["cost"], "services": int(entry["services"])}
        for month, entry in sorted(by_month.items(), reverse=True)
    ][:TIMELINE_MONTHS]

    return {
        "period": {"from": start.isoformat(), "to": end.isoformat()},
        "total_cost": total_cost,
        "total_services": len(records),
        "cost_per_km": cost_per_km,
        "total_mileage": total_mileage,
        "breakdown_by_type": breakdown_by_type,
        "breakdown_by_location": by_location,
        "timeline": timeline,
    }


class ServiceRecordService:
    """Business logic for ``service_records`` scoped to a user's bike."""

    def __init__(self, store: Any) -> None:
        self._store = store

    def list_services(self, user_id: str, bike_id: str, params: ServiceListParams) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)

        query = Query("service_records", count=True).eq("bike_id", bike_id)
        if params.service_type:
            query.eq("service_type", params.service_type)
        if params.service_location:
            query.eq("service_location", params.service_location)
        if params.from_date:
            query.gte("service_date", params.from_date.isoformat())
        if params.to_date:
            query.lte("service_date", params.to_date.isoformat())

        field, _, direction = params.sort.rpartition("_")
        query.order(SORT_COLUMNS[field], ascending=direction == "asc")
        query.page(params.limit, params.offset)

        result = self._store.fetch(query)
        total = result.count if result.count is not None else len(result.rows)
        return {
            "services": [to_service_dto(row) for row in result.rows],
            "total": total,
            "has_more": total > params.offset + params.limit,
        }

    def get_service(self, user_id: str, bike_id: str, service_id: str) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        return to_service_dto(self._require_service(bike_id, service_id))

    def create_service(self, user_id: str, bike_id: str, command: CreateServiceCommand) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        self._check_mileage_order(bike_id, command.service_type, command.mileage_at_service)

        row = self._store.insert(
            "service_records",
            {
                "bike_id": bike_id,
                "service_date": command.service_date.isoformat(),
                "mileage_at_service": command.mileage_at_service,
                "service_type": command.service_type,
                "service_location": command.service_location,
                "cost": command.cost,
                "currency": DEFAULT_CURRENCY if command.cost else None,
                "notes": command.notes,
            },
        )

        if command.create_reminder and command.reminder_interval_km:
            try:
                self._store.insert(
                    "service_reminders",
                    {
                        "bike_id": bike_id,
                        "service_type": command.service_type,
                        "triggered_at_mileage": command.mileage_at_service,
                        "interval_km": command.reminder_interval_km,
                        "target_mileage": command.mileage_at_service + command.reminder_interval_km,
                    },
                )
            except StoreError:
                # The service record is already persisted; a missing reminder is recoverable.
                logger.warning(
                    "services.create.reminder_failed",
                    extra={"user_id": user_id, "bike_id": bike_id, "service_id": row.get("id")},
                )

        logger.info(
            "services.create.success",
            extra={"user_id": user_id, "bike_id": bike_id, "service_id": row.get("id")},
        )
        return to_service_dto(row)

    def update_service(
        self,
        user_id: str,
        bike_id: str,
        service_id: str,
        command: UpdateServiceCommand,
    ) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        existing = self._require_service(bike_id, service_id)

        if command.mileage_at_service is not None:
            self._check_mileage_order(
                bike_id,
                command.service_type or existing.get("service_type"),
                command.mileage_at_service,
                exclude_id=service_id,
            )

        values = command.changes()
        if "cost" in values:
            values["currency"] = DEFAULT_CURRENCY if values["cost"] else None
        values["updated_at"] = _utcnow()

        updated = self._store.update(
            Query("service_records").eq("id", service_id).eq("bike_id", bike_id), values
        )
        if not updated:
            raise NotFoundError("Service record not found")
        return to_service_dto(updated[0])

    def delete_service(self, user_id: str, bike_id: str, service_id: str) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        self._require_service(bike_id, service_id)

        # Reminders completed by this record keep their history without the link.
        self._store.update(
            Query("service_reminders").eq("completed_service_id", service_id),
            {"completed_service_id": None},
        )
        self._store.delete(Query("service_records").eq("id", service_id).eq("bike_id", bike_id))
        logger.info(
            "services.delete.success",
            extra={"user_id": user_id, "bike_id": bike_id, "service_id": service_id},
        )
        return {"message": "Service record deleted"}

    def get_stats(
        self,
        user_id: str,
        bike_id: str,
        params: ServiceStatsParams,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        self._verify_bike_ownership(user_id, bike_id)
        start, end = stats_date_range(params, today)

        query = (
            Query(
                "service_records",
                columns="service_date, service_type, service_location, cost, mileage_at_service",
            )
            .eq("bike_id", bike_id)
            .gte("service_date", start.isoformat())
            .lte("service_date", end.isoformat())
            .order("service_date", ascending=False)
        )
        return summarize_services(self._store.fetch(query).rows, start, end)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _verify_bike_ownership(self, user_id: str, bike_id: str) -> Dict[str, Any]:
        bike = self._store.fetch_one(
            Query("bikes", columns="id, current_mileage").eq("id", bike_id).eq("user_id", user_id)
        )
        if bike is None:
            raise NotFoundError("Bike not found")
        return bike

    def _require_service(self, bike_id: str, service_id: str) -> Dict[str, Any]:
        row = self._store.fetch_one(
            Query("service_records").eq("id", service_id).eq("bike_id", bike_id)
        )
        if row is None:
            raise NotFoundError("Service record not found")
        return row

    def _check_mileage_order(
        self,
        bike_id: str,
        service_type: Optional[str],
        mileage: int,
        exclude_id: Optional[str] = None,
    ) -> None:
        query = Query("service_records", columns="mileage_at_service").eq("bike_id", bike_id)
        if service_type:
            query.eq("service_type", service_type)
        if exclude_id:
            query.neq("id", exclude_id)
        query.order("mileage_at_service", ascending=False)

        last = self._store.fetch_one(query)
        last_mileage = last.get("mileage_at_service") if last else None
        if last_mileage is not None and mileage < last_mileage:
            raise BadRequestError(
                f"Mileage ({mileage}) cannot be lower than the previous service ({last_mileage})"
            )
