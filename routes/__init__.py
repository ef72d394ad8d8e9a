"""Shared helpers for route blueprints."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import MultiDict

from database import db
from models.user import User
from services.tenant_service import resolve_company_id

__all__ = [
    "commit_session",
    "cron_secret_valid",
    "current_company_id",
    "current_user_id",
    "form_changes",
    "form_from_json",
    "json_error",
    "json_form_error",
    "request_payload",
    "service_error",
]

CRON_SECRET_HEADER = "X-Cron-Secret"


def json_error(message: str, *, status: int = 400, errors: Mapping[str, Any] | None = None):
    """Return the JSON error envelope used by every API endpoint."""

    body: dict[str, Any] = {
        "success": False,
        "statusCode": status,
        "message": message,
        "path": request.path,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    if errors:
        body["errors"] = errors
    current_app.logger.warning("[%s] %s -> status %s: %s", request.method, request.path, status, message)
    return jsonify(body), status


def json_form_error(form, message: str = "Please correct the errors below."):
    return json_error(message, status=400, errors=form.errors)


def service_error(exc: Exception):
    """Roll back and translate the built-in exceptions services raise."""

    db.session.rollback()
    if isinstance(exc, LookupError):
        return json_error(str(exc) or "Not found.", status=404)
    if isinstance(exc, PermissionError):
        return json_error(str(exc) or "Forbidden.", status=403)
    return json_error(str(exc) or "Invalid request.", status=400)


def commit_session(failure_message: str):
    """Commit the unit of work; on failure roll back and return an error response."""

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error(failure_message, exc_info=True)
        return json_error(failure_message, status=500)
    return None


def request_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object.")
    return payload


def _formdata_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def form_from_json(form_class, payload: Mapping[str, Any]):
    """Build a form whose fields are filled from a JSON object.

    ``null`` becomes an empty submission so optional fields read as cleared.
    Nested objects and arrays are ignored.
    """

    formdata = MultiDict(
        (key, _formdata_value(value))
        for key, value in payload.items()
        if not isinstance(value, (dict, list))
    )
    return form_class(formdata=formdata, meta={"csrf": False})


def form_changes(form, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Validated values for the fields the client actually sent."""

    changes: dict[str, Any] = {}
    for name, field in form._fields.items():
        if name not in payload:
            continue
        value = field.data
        if isinstance(value, str):
            value = value.strip() or None
        changes[name] = value
    return changes


def current_company_id() -> int:
    return resolve_company_id(request.headers.get("X-Company-Id"))


def current_user_id(company_id: int | None = None) -> int | None:
    """The acting user from ``X-User-Id``; authentication is not enforced."""

    raw = request.headers.get("X-User-Id")
    if raw is None or raw == "":
        return None
    try:
        user_id = int(raw)
    except ValueError as exc:
        raise ValueError("Invalid user id") from exc
    user = db.session.get(User, user_id)
    if user is None or (company_id is not None and user.company_id != company_id):
        raise LookupError("User not found.")
    return user.id


def cron_secret_valid() -> bool:
    expected = current_app.config.get("CRON_SECRET")
    supplied = request.headers.get(CRON_SECRET_HEADER)
    if not expected or not supplied:
        return False
    return hmac.compare_digest(str(expected), supplied)
