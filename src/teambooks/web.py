"""Flask application factory and the JSON error boundary."""

from __future__ import annotations

from flask import Flask, jsonify

from .config import BaseConfig, DevConfig
from .errors import TeambooksError
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)

_CONFIG_MAP = {
    "development": DevConfig,
    "default": BaseConfig,
}


def _resolve_config(config: BaseConfig | str | None) -> BaseConfig:
    """Accept a config instance or an environment name."""

    if isinstance(config, BaseConfig):
        return config
    if not config:
        return BaseConfig()
    return _CONFIG_MAP.get(config.lower(), BaseConfig)()


def register_error_handlers(app: Flask) -> None:
    """Translate core errors into ``{"error", "code"}`` JSON responses."""

    @app.errorhandler(TeambooksError)
    def _handle_core_error(error: TeambooksError):
        if error.status_code >= 500:
            logger.error("Unhandled core error", exc_info=error)
        else:
            logger.info(
                "Request rejected",
                extra={"code": error.code, "status": error.status_code, "reason": error.message},
            )
        return jsonify(error.to_dict()), error.status_code


def create_app(config: BaseConfig | str | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__, instance_relative_config=True)
    config_obj = _resolve_config(config)
    app.config.from_object(config_obj)
    app.config["TEAMBOOKS_CONFIG"] = config_obj

    setup_logging(config_obj)

    # Imported lazily so model metadata is only touched when an app is built.
    from .extensions import init_db

    init_db(app)
    register_error_handlers(app)

    from . import cli as _cli

    _cli.init_app(app)
    return app
