"""Runtime configuration for the bikecare API.

Values are read from the process environment (optionally seeded from a
``.env`` file by :func:`bikecare.create_app`).

ENVIRONMENT:
- SUPABASE_URL: project URL of the hosted database
- SUPABASE_KEY: API key (falls back to SUPABASE_ANON_KEY, then
  SUPABASE_SERVICE_ROLE_KEY)
- SUPABASE_JWT_SECRET (optional): verifies access tokens locally
- SUPABASE_TIMEOUT_SECONDS (optional): upper bound for a single store call
- ENABLE_DEV_ROUTES (optional): registers the diagnostic endpoints
- FLASK_ENV / VERCEL_ENV: production detection
- LOG_LEVEL (optional): root log level name
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS: float = 10.0
DEFAULT_JWT_AUDIENCE = "authenticated"


def _bool_from_env(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def _float_from_env(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, value)
        return default
    return parsed if parsed > 0 else default


@dataclass
class Settings:
    """Application settings resolved once at startup."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_audience: str = DEFAULT_JWT_AUDIENCE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    enable_dev_routes: bool = False
    is_production: bool = False
    log_level: str = "INFO"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> "Settings":
        flask_env = os.environ.get("FLASK_ENV", "").lower()
        is_production = flask_env in {"production", "prod"} or bool(
            os.environ.get("VERCEL_ENV") == "production"
        )

        return cls(
            supabase_url=_first_env("SUPABASE_URL", "SUPABASE_PROJECT_URL"),
            supabase_key=_first_env(
                "SUPABASE_KEY", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_ROLE_KEY"
            ),
            jwt_secret=_first_env("SUPABASE_JWT_SECRET"),
            jwt_audience=os.environ.get("SUPABASE_JWT_AUDIENCE", DEFAULT_JWT_AUDIENCE),
            timeout_seconds=_float_from_env(
                "SUPABASE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS
            ),
            enable_dev_routes=_bool_from_env("ENABLE_DEV_ROUTES", False),
            is_production=is_production,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
