"""Database wiring for the Flask boundary."""

from __future__ import annotations

from flask import Flask, current_app
from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database

EXTENSION_KEY = "teambooks"


def init_db(app: Flask) -> None:
    """Create the engine from the app's config and make sure the schema exists."""

    config: BaseConfig = app.config["TEAMBOOKS_CONFIG"]
    engine = create_db_engine(config)
    init_database(engine)
    app.extensions[EXTENSION_KEY] = {
        "engine": engine,
        "session_factory": create_session_factory(engine),
    }


def _state(app: Flask | None = None) -> dict:
    app = app or current_app
    try:
        return app.extensions[EXTENSION_KEY]
    except KeyError:  # pragma: no cover - misconfigured app
        raise RuntimeError("Database engine not initialized") from None


def get_engine(app: Flask | None = None) -> Engine:
    """Return the initialized engine."""

    return _state(app)["engine"]


def get_session_factory(app: Flask | None = None) -> SessionFactory:
    """Return the session factory services should be called with."""

    return _state(app)["session_factory"]
