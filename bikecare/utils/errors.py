"""Client-facing error types raised by services and route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(eq=False)
class ApiError(Exception):
    """Base class for errors that map onto a JSON error envelope."""

    message: str
    status_code: int = 500
    error: str = "Internal Server Error"
    details: Optional[List[Dict[str, str]]] = None

    def __str__(self) -> str:  # pragma: no cover - dataclass convenience
        return self.message


class BadRequestError(ApiError):
    def __init__(self, message: str, details: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message=message, status_code=400, error="Bad Request", details=details)


class NotFoundError(ApiError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message=message, status_code=404, error="Not Found")


class ConflictError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=409, error="Conflict")
