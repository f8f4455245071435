"""Supabase-backed data access for the bikecare API.

Route handlers never talk to the Supabase client directly. They describe a
read with a :class:`Query` and hand it to a store, which keeps the handlers
testable against an in-memory double and keeps PostgREST error handling in
one place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx
from postgrest.exceptions import APIError
from postgrest.types import CountMethod
from supabase import Client, ClientOptions, create_client

from ..config import Settings
from ..utils.auth import AuthError

logger = logging.getLogger(__name__)

# PostgREST reports "no rows" for single-row lookups with this code.
NO_ROWS_CODE = "PGRST116"

FILTER_OPERATORS = {"eq", "neq", "gte", "lte", "in_", "is_null", "not_null"}


class StoreError(Exception):
    """Raised when the hosted database reports a failure."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class Query:
    """Declarative description of a filtered, ordered, paginated read."""

    table: str
    columns: str = "*"
    filters: List[Tuple[str, str, Any]] = field(default_factory=list)
    ordering: List[Tuple[str, bool]] = field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0
    count: bool = False

    def _where(self, op: str, column: str, value: Any = None) -> "Query":
        self.filters.append((op, column, value))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._where("eq", column, value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._where("neq", column, value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._where("gte", column, value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._where("lte", column, value)

    def in_(self, column: str, values: List[Any]) -> "Query":
        return self._where("in_", column, list(values))

    def is_null(self, column: str) -> "Query":
        return self._where("is_null", column)

    def not_null(self, column: str) -> "Query":
        return self._where("not_null", column)

    def order(self, column: str, ascending: bool = True) -> "Query":
        self.ordering.append((column, ascending))
        return self

    def page(self, limit: int, offset: int = 0) -> "Query":
        self.limit = limit
        self.offset = offset
        return self


@dataclass
class StoreResult:
    rows: List[Dict[str, Any]]
    count: Optional[int] = None


class SupabaseStore:
    """Store implementation over the synchronous Supabase client.

    The client is process-wide and safe to share between concurrent requests.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStore":
        if not settings.has_supabase:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be configured.")

        options = ClientOptions(postgrest_client_timeout=settings.timeout_seconds)
        client = create_client(settings.supabase_url, settings.supabase_key, options=options)
        logger.info("Supabase client initialised for %s", settings.supabase_url)
        return cls(client)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def fetch(self, query: Query) -> StoreResult:
        count = CountMethod.exact if query.count else None
        builder = self._client.table(query.table).select(query.columns, count=count)
        builder = _apply_filters(builder, query.filters)
        for column, ascending in query.ordering:
            builder = builder.order(column, desc=not ascending)
        if query.limit is not None:
            builder = builder.range(query.offset, query.offset + query.limit - 1)

        response = self._execute(builder, f"select {query.table}")
        if response is None:
            return StoreResult(rows=[], count=0 if query.count else None)
        return StoreResult(rows=list(response.data or []), count=response.count)

    def fetch_one(self, query: Query) -> Optional[Dict[str, Any]]:
        query.limit = 1
        rows = self.fetch(query).rows
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        response = self._execute(self._client.table(table).insert(row), f"insert {table}")
        rows = list(getattr(response, "data", None) or [])
        if not rows:
            raise StoreError(f"Insert into {table} returned no rows")
        return rows[0]

    def update(self, query: Query, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        builder = _apply_filters(self._client.table(query.table).update(values), query.filters)
        response = self._execute(builder, f"update {query.table}")
        return list(getattr(response, "data", None) or [])

    def delete(self, query: Query) -> List[Dict[str, Any]]:
        builder = _apply_filters(self._client.table(query.table).delete(), query.filters)
        response = self._execute(builder, f"delete {query.table}")
        return list(getattr(response, "data", None) or [])

    def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        response = self._execute(self._client.rpc(name, params), f"rpc {name}")
        return getattr(response, "data", None)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def get_auth_user_id(self, token: str) -> Optional[str]:
        """Return the id of the user owning ``token`` according to Supabase Auth."""

        try:
            response = self._client.auth.get_user(token)
        except Exception as exc:  # pragma: no cover - network dependent
            logger.warning("auth.get_user_failed", exc_info=True)
            raise AuthError("Authentication failed.") from exc

        user = getattr(response, "user", None)
        return getattr(user, "id", None) if user else None

    def _execute(self, builder: Any, label: str) -> Any:
        try:
            return builder.execute()
        except APIError as exc:
            if exc.code == NO_ROWS_CODE:
                return None
            logger.error(
                "store.request_failed",
                extra={"operation": label, "code": exc.code, "detail": exc.message},
            )
            raise StoreError(f"{label} failed", code=exc.code) from exc
        except httpx.HTTPError as exc:
            logger.error("store.transport_failed", extra={"operation": label}, exc_info=True)
            raise StoreError(f"{label} failed") from exc


def _apply_filters(builder: Any, filters: List[Tuple[str, str, Any]]) -> Any:
    for op, column, value in filters:
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if op == "is_null":
            builder = builder.is_(column, "null")
        elif op == "not_null":
            builder = builder.not_.is_(column, "null")
        else:
            builder = getattr(builder, op)(column, value)
    return builder
