"""Database and ledger wiring for the Flask application."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import Flask, current_app, jsonify, request
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .config import BaseConfig
from .errors import RecouvrementError, StorageError
from .infra import database
from .logging_config import get_logger
from .services.ledger import PaymentLedger

logger = get_logger("extensions")

EXTENSION_KEY = "recouvrement"


def init_db(app: Flask) -> None:
    """Create the engine, the schema and the payment ledger for *app*."""

    config: BaseConfig = app.config["RECOUVREMENT_CONFIG"]
    engine, _ = database.bootstrap_database(config)
    app.extensions[EXTENSION_KEY] = {
        "engine": engine,
        "ledger": PaymentLedger(engine, use_case_locks=config.use_case_locks()),
    }


def init_error_handlers(app: Flask) -> None:
    """Render domain errors as JSON with their HTTP status."""

    @app.errorhandler(RecouvrementError)
    def _domain_error(exc: RecouvrementError):
        logger.info(
            "Request rejected",
            extra={"path": request.path, "error": exc.code, "detail": str(exc)},
        )
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def _storage_error(exc: SQLAlchemyError):
        logger.exception("Unhandled storage failure", extra={"path": request.path})
        error = StorageError("storage failure")
        return jsonify(error.to_dict()), error.status_code


def get_engine() -> Engine:
    """Return the engine bound to the current app."""

    state = current_app.extensions.get(EXTENSION_KEY)
    if state is None:  # pragma: no cover - exercised in integration tests
        raise RuntimeError("Database engine not initialized")
    return state["engine"]


def get_ledger() -> PaymentLedger:
    """Return the payment ledger bound to the current app."""

    return current_app.extensions[EXTENSION_KEY]["ledger"]


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transactional scope on the current app's engine."""

    with database.session_scope(get_engine()) as session:
        yield session


def current_actor() -> str:
    """Actor id supplied by the caller; authentication happens upstream."""

    config: BaseConfig = current_app.config["RECOUVREMENT_CONFIG"]
    return (request.headers.get("X-Actor-Id") or "").strip() or config.DEFAULT_ACTOR
