"""JSON envelopes and the shared request handling path for API routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from flask import Response, current_app, g, jsonify, request
from pydantic import ValidationError

from ..services.store import StoreError
from .auth import authorize
from .errors import ApiError, BadRequestError

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred"


@dataclass
class RequestContext:
    """Per-request inputs handed to every data access operation."""

    user_id: Optional[str]
    store: Any


def current_context() -> RequestContext:
    return RequestContext(user_id=getattr(g, "user_id", None), store=current_app.store)


def json_response(payload: Any, status: int = 200) -> Response:
    response = jsonify(payload)
    response.status_code = status
    return response


def error_response(
    status: int,
    error: str,
    message: str,
    details: Optional[List[Dict[str, str]]] = None,
) -> Response:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    return json_response(body, status)


def validation_details(exc: ValidationError) -> List[Dict[str, str]]:
    details = []
    for item in exc.errors():
        field = ".".join(str(part) for part in item.get("loc", ())) or "body"
        details.append({"field": field, "message": item.get("msg", "Invalid value")})
    return details


def read_json_body() -> Dict[str, Any]:
    """Return the request body as a JSON object or raise a 400."""

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequestError("Request body must be a valid JSON object")
    return payload


def query_args() -> Dict[str, str]:
    """Query parameters with blank values dropped so defaults apply."""

    return {key: value for key, value in request.args.items() if value.strip()}


def handle_request(
    operation: Callable[[RequestContext], Any],
    *,
    success_status: int = 200,
    failure_message: str = GENERIC_FAILURE_MESSAGE,
) -> Response:
    """Authorize the request, run ``operation`` and wrap its outcome.

    ``operation`` receives the :class:`RequestContext` and returns the JSON
    payload for the success envelope, or a ``(payload, status)`` tuple when
    the status depends on the outcome. Client errors keep their own status and
    message; store failures and unexpected exceptions become a generic 500
    and are logged here, never echoed to the client.
    """

    context = current_context()
    denied = authorize(context)
    if denied is not None:
        return denied

    log_extra = {"user_id": context.user_id, "path": request.path, "method": request.method}

    try:
        result = operation(context)
        if isinstance(result, tuple):
            payload, status = result
        else:
            payload, status = result, success_status
        return json_response(payload, status)
    except ApiError as exc:
        logger.info("api.client_error", extra={**log_extra, "status": exc.status_code})
        return error_response(exc.status_code, exc.error, exc.message, exc.details)
    except ValidationError as exc:
        logger.info("api.validation_failed", extra=log_extra)
        return error_response(400, "Bad Request", "Invalid request data", validation_details(exc))
    except StoreError as exc:
        logger.error("api.store_failure", extra={**log_extra, "code": exc.code})
        return error_response(500, "Internal Server Error", failure_message)
    except Exception:
        logger.exception("api.unhandled_error", extra=log_extra)
        return error_response(500, "Internal Server Error", GENERIC_FAILURE_MESSAGE)
