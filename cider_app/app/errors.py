"""Error taxonomy shared by the service modules and the JSON error handlers.

Service functions raise these; the blueprints let them propagate and the
handlers registered in :func:`register_error_handlers` turn them into JSON.
"""
from __future__ import annotations

from typing import Any

from flask import Flask, current_app, jsonify
from flask_babel import gettext as _
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from . import db


class CiderError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFound(CiderError):
    """The row does not exist or the acting user may not see it.

    Both cases are reported identically so that non-members cannot test
    for the existence of another tenant's rows.
    """

    status_code = 404

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or _("Not found"))


class Forbidden(CiderError):
    """A member tried something their role does not allow."""

    status_code = 403

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or _("You do not have permission to do that"))


class ValidationFailed(CiderError):
    """Input rejected at the boundary, before anything reaches the store."""

    status_code = 400

    def __init__(self, errors: dict[str, list[str]] | None = None, message: str | None = None) -> None:
        super().__init__(message or _("Validation failed"), details=errors or None)
        self.errors = errors or {}


class Conflict(CiderError):
    status_code = 409


class StoreError(CiderError):
    """The store rejected or failed the write; message is shown verbatim."""

    status_code = 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CiderError)
    def handle_cider_error(exc: CiderError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code


def store_failure(exc: SQLAlchemyError) -> CiderError:
    """Map a failed write to the error surfaced to the caller.

    The store's own message is passed through; integrity violations
    (unique, foreign key, check constraints) become 409.
    """
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    if isinstance(exc, IntegrityError):
        return Conflict(message)
    return StoreError(message)


def commit_or_raise(action: str, *args) -> None:
    """Commit the session; on failure roll back, log ``action`` and raise the mapped error."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("DB error during " + action, *args)
        raise store_failure(exc)
