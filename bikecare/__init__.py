"""Flask application factory."""

import logging
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask

from .config import Settings
from .services.store import SupabaseStore
from .utils.auth import load_authenticated_user
from .utils.logs import setup_logging
from .utils.responses import error_response

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(_exc):
        return error_response(404, "Not Found", "Resource not found")

    @app.errorhandler(405)
    def method_not_allowed(_exc):
        return error_response(405, "Method Not Allowed", "Method not allowed for this resource")


def create_app(settings: Optional[Settings] = None, store: Any = None) -> Flask:
    """Configure and return the Flask application.

    ``settings`` defaults to :meth:`Settings.from_env`. ``store`` defaults to
    a :class:`~bikecare.services.store.SupabaseStore` built from those
    settings; tests pass an in-memory store instead.
    """

    load_dotenv()

    if settings is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level)

    if settings.enable_dev_routes and settings.is_production:
        raise RuntimeError("ENABLE_DEV_ROUTES must not be set in production.")

    if store is None:
        store = SupabaseStore.from_settings(settings)

    app = Flask(__name__)
    app.json.sort_keys = True
    app.settings = settings
    app.store = store

    app.before_request(load_authenticated_user)
    _register_error_handlers(app)

    from .routes import api_bp

    app.register_blueprint(api_bp)

    if settings.enable_dev_routes:
        from .dev_routes import dev_bp

        app.register_blueprint(dev_bp)
        logger.warning("Development diagnostic routes are enabled")

    return app
