"""In-memory stand-in for :class:`bikecare.services.store.SupabaseStore`."""

from __future__ import annotations

import copy
import re
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bikecare.services.store import Query, StoreError, StoreResult

EMBED_PATTERN = re.compile(r"(\w+)\(")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: Dict[str, Any], op: str, column: str, value: Any) -> bool:
    actual = row.get(column)
    if op == "eq":
        return actual == value
    if op == "neq":
        return actual != value
    if op == "gte":
        return actual is not None and actual >= value
    if op == "lte":
        return actual is not None and actual <= value
    if op == "in_":
        return actual in value
    if op == "is_null":
        return actual is None
    if op == "not_null":
        return actual is not None
    raise ValueError(f"Unsupported filter operator: {op}")


class FakeStore:
    """Dictionary-backed store that records how often it was called.

    ``fail_with`` makes every call raise :class:`StoreError`, mimicking an
    unreachable database.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.calls: Counter = Counter()
        self.fail_with: Optional[str] = None
        self.rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "insert_location": self._insert_location,
            "update_location_coordinates": self._update_location_coordinates,
            "get_auth_users_count": lambda params: len(self.tables.get("profiles", [])),
        }

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    # ------------------------------------------------------------------
    # Store interface
    # ------------------------------------------------------------------
    def fetch(self, query: Query) -> StoreResult:
        self._record("fetch")
        matched = [row for row in self.rows(query.table) if self._where(row, query.filters)]
        for column, ascending in reversed(query.ordering):
            matched.sort(
                key=lambda row: (row.get(column) is None, row.get(column) or 0),
                reverse=not ascending,
            )

        total = len(matched)
        if query.limit is not None:
            matched = matched[query.offset:query.offset + query.limit]

        rows = [self._embed(query, copy.deepcopy(row)) for row in matched]
        return StoreResult(rows=rows, count=total if query.count else None)

    def fetch_one(self, query: Query) -> Optional[Dict[str, Any]]:
        query.limit = 1
        rows = self.fetch(query).rows
        return rows[0] if rows else None

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._record("insert")
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", _now())
        stored.setdefault("updated_at", stored["created_at"])
        self.rows(table).append(stored)
        return copy.deepcopy(stored)

    def update(self, query: Query, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._record("update")
        updated = []
        for row in self.rows(query.table):
            if self._where(row, query.filters):
                row.update(values)
                updated.append(copy.deepcopy(row))
        return updated

    def delete(self, query: Query) -> List[Dict[str, Any]]:
        self._record("delete")
        keep, removed = [], []
        for row in self.rows(query.table):
            (removed if self._where(row, query.filters) else keep).append(row)
        self.tables[query.table] = keep
        return removed

    def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        self._record("rpc")
        return self.rpc_handlers[name](params)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _record(self, method: str) -> None:
        self.calls[method] += 1
        if self.fail_with:
            raise StoreError(self.fail_with, code="XX000")

    @staticmethod
    def _where(row: Dict[str, Any], filters) -> bool:
        return all(_matches(row, op, column, value) for op, column, value in filters)

    def _embed(self, query: Query, row: Dict[str, Any]) -> Dict[str, Any]:
        if query.table != "bikes":
            return row
        for related in EMBED_PATTERN.findall(query.columns):
            row[related] = [
                copy.deepcopy(item) for item in self.rows(related) if item.get("bike_id") == row.get("id")
            ]
        return row

    def _insert_location(self, params: Dict[str, Any]) -> str:
        row = self.insert(
            "user_locations",
            {
                "user_id": params["p_user_id"],
                "latitude": params["p_latitude"],
                "longitude": params["p_longitude"],
                "city": params["p_city"],
                "country_code": params["p_country_code"],
                "is_default": params["p_is_default"],
                "label": params["p_label"],
            },
        )
        return row["id"]

    def _update_location_coordinates(self, params: Dict[str, Any]) -> None:
        for row in self.rows("user_locations"):
            if row.get("id") == params["p_location_id"] and row.get("user_id") == params["p_user_id"]:
                row["latitude"] = params["p_latitude"]
                row["longitude"] = params["p_longitude"]
