"""Notification endpoints: in-app inbox, Telegram and push triggers."""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from database import db
from forms import RegisterTokenForm, TelegramTestForm
from routes import (
    commit_session,
    cron_secret_valid,
    current_company_id,
    current_user_id,
    form_from_json,
    json_error,
    json_form_error,
    request_payload,
    service_error,
)
from services.notification_service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
    serialize_notifications,
)
from services.push_service import register_token, send_due_notifications
from services.telegram_service import (
    MODES,
    TelegramConfigurationError,
    TelegramError,
    send_notifications,
    send_test_message,
)
from utils.capabilities import get_capabilities

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _is_truthy(value) -> bool:
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _require_user() -> int:
    company_id = current_company_id()
    user_id = current_user_id(company_id)
    if user_id is None:
        raise ValueError("A user is required for this request (X-User-Id).")
    return user_id


@notifications_bp.route("", methods=["GET"])
def list_notifications():
    try:
        user_id = _require_user()
    except (LookupError, PermissionError, ValueError) as exc:
        return service_error(exc)
    unread_only = _is_truthy(request.args.get("unreadOnly", "false"))
    notifications = get_notifications(user_id, unread_only=unread_only)
    return jsonify({"success": True, "notifications": serialize_notifications(notifications)})


@notifications_bp.route("/unread-count", methods=["GET"])
def unread_count():
    try:
        user_id = _require_user()
    except (LookupError, PermissionError, ValueError) as exc:
        return service_error(exc)
    return jsonify({"success": True, "count": get_unread_count(user_id)})


@notifications_bp.route("/<int:notification_id>/read", methods=["PATCH"])
def mark_notification_read(notification_id: int):
    try:
        user_id = _require_user()
        notification = mark_as_read(notification_id, user_id)
    except (LookupError, PermissionError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update the notification. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "notification": notification.to_dict()})


@notifications_bp.route("/read-all", methods=["PATCH"])
def mark_all_notifications_read():
    try:
        user_id = _require_user()
        updated = mark_all_as_read(user_id)
    except (LookupError, PermissionError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to update notifications. Please try again.")
    if error:
        return error
    return jsonify({"success": True, "updated": updated})


@notifications_bp.route("/telegram/trigger", methods=["POST"])
def trigger_telegram():
    if not cron_secret_valid():
        return json_error("Invalid cron secret", status=401)

    mode = request.args.get("mode", "daily")
    if mode not in MODES:
        return json_error("mode must be daily or hourly", status=400)
    try:
        result = send_notifications(mode, capabilities=get_capabilities(current_app, db))
    except (TelegramConfigurationError, ValueError) as exc:
        logging.error("Telegram %s run aborted: %s", mode, exc)
        return json_error(str(exc), status=500)
    return jsonify(result)


@notifications_bp.route("/telegram/test", methods=["POST"])
def trigger_telegram_test():
    require_secret = _is_truthy(current_app.config.get("TELEGRAM_TEST_REQUIRE_SECRET", "true"))
    if require_secret and not cron_secret_valid():
        return json_error("Invalid cron secret", status=401)

    try:
        payload = request_payload()
    except ValueError as exc:
        return json_error(str(exc))
    form = form_from_json(TelegramTestForm, payload)
    if not form.validate():
        return json_form_error(form)

    text = (form.text.data or "").strip()
    try:
        result = send_test_message(text) if text else send_test_message()
    except TelegramConfigurationError as exc:
        return json_error(str(exc), status=500)
    except TelegramError as exc:
        logging.error("Telegram test message failed: %s", exc)
        return json_error(str(exc), status=502)
    return jsonify(result)


@notifications_bp.route("/push/trigger", methods=["POST"])
def trigger_push():
    if not cron_secret_valid():
        return json_error("Invalid cron secret", status=401)
    return jsonify(send_due_notifications())


@notifications_bp.route("/push/register-token", methods=["POST"])
def register_push_token():
    try:
        user_id = _require_user()
        payload = request_payload()
    except (LookupError, PermissionError, ValueError) as exc:
        return service_error(exc)

    form = form_from_json(RegisterTokenForm, payload)
    if not form.validate():
        return json_form_error(form)

    try:
        register_token(user_id, form.token.data)
    except (LookupError, ValueError) as exc:
        return service_error(exc)

    error = commit_session("Unable to register the device token. Please try again.")
    if error:
        return error
    return jsonify({"success": True})
