"""Due-date reminders delivered through a Telegram bot.

Two modes are run by an external cron trigger:

``daily``
    tasks due in exactly 7 or 1 KST calendar days, at most one message per
    task per KST day.
``hourly``
    tasks due today or already overdue, re-sent once the task's reminder
    interval has elapsed. No hourly message is sent during quiet hours.

Runs are expected one at a time; nothing guards two concurrent runs from
messaging the same task between the candidate read and the
``last_notified_at`` write.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from http.client import RemoteDisconnected
from typing import Any, Optional
from urllib import error as urllib_error, request as urllib_request

from flask import current_app
from markupsafe import escape
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from database import db
from models.task import DEFAULT_REMINDER_INTERVAL_MIN, Task, TaskStatus
from utils.capabilities import Capabilities
from utils.date_kst import (
    as_utc,
    d_day_difference,
    d_day_label,
    format_kst,
    is_quiet_hour,
    kst_day_range,
    kst_start_of_day,
    to_db,
    utc_now,
    was_notified_today,
)

TELEGRAM_API_BASE = "https://api.telegram.org"
DAILY_REMINDER_DAYS = (7, 1)
DEFAULT_QUIET_HOURS = (20, 9)
MODES = ("daily", "hourly")


class TelegramConfigurationError(RuntimeError):
    """Raised when the bot token or chat id is missing."""


class TelegramError(RuntimeError):
    """Raised when the Telegram API rejects a message."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _require_credentials(missing_message: str) -> tuple[str, str]:
    token = current_app.config.get("TELEGRAM_BOT_TOKEN")
    chat_id = current_app.config.get("TELEGRAM_CHAT_ID")
    if not token or not chat_id:
        logging.error(missing_message)
        raise TelegramConfigurationError(missing_message)
    return token, str(chat_id)


def _config_hour(key: str, default: int) -> int:
    raw = current_app.config.get(key)
    if raw is None or raw == "":
        return default
    try:
        hour = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer hour (0-23)") from exc
    if not 0 <= hour <= 23:
        raise ValueError(f"{key} must be an integer hour (0-23)")
    return hour


def get_quiet_hours() -> tuple[int, int]:
    return (
        _config_hour("TELEGRAM_QUIET_HOURS_START", DEFAULT_QUIET_HOURS[0]),
        _config_hour("TELEGRAM_QUIET_HOURS_END", DEFAULT_QUIET_HOURS[1]),
    )


def send_telegram_message(token: str, chat_id: str, text: str) -> None:
    """POST an HTML message to the bot API; raise ``TelegramError`` on failure."""

    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }
    request = urllib_request.Request(
        f"{TELEGRAM_API_BASE}/bot{token}/sendMessage",
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib_request.urlopen(request, timeout=20) as response:
            status = response.getcode()
            raw = response.read()
    except urllib_error.HTTPError as error:
        status = error.code
        raw = error.read()
    except RemoteDisconnected as error:
        raise TelegramError("Telegram closed the connection unexpectedly.") from error
    except urllib_error.URLError as error:
        raise TelegramError("Unable to reach Telegram.") from error
    except OSError as error:
        raise TelegramError(f"Telegram request failed: {error}") from error

    body = raw.decode("utf-8", errors="replace") if raw else ""
    if status >= 400:
        raise TelegramError(f"Telegram API error: {status} {body}", status, body)


def build_message(task: Task, diff_days: int) -> str:
    project = task.project
    project_name = escape(project.name if project is not None else "프로젝트")
    status_label = "⏰ 마감 지남" if diff_days < 0 else "📌 마감 예정"
    return "\n".join(
        [
            f"<b>{d_day_label(diff_days)}</b> | <b>{project_name}</b>",
            f"• 태스크: {escape(task.title)}",
            f"• 마감: {format_kst(task.due_date)}",
            f"• 상태: {status_label}",
        ]
    )


def should_send_hourly(last_notified_at: Optional[datetime], interval_min: Optional[int], now: datetime) -> bool:
    if last_notified_at is None:
        return True
    interval = timedelta(minutes=interval_min or DEFAULT_REMINDER_INTERVAL_MIN)
    return now - as_utc(last_notified_at) >= interval


def fetch_target_tasks(mode: str, now: datetime, *, filter_enabled: bool = True) -> list[Task]:
    """Candidate tasks for a run, earliest due first."""

    conditions = [
        Task.deleted_at.is_(None),
        Task.status != TaskStatus.COMPLETED.value,
        Task.due_date.isnot(None),
    ]
    if filter_enabled:
        conditions.append(Task.notification_enabled.is_(True))

    if mode == "daily":
        windows = [kst_day_range(days, now) for days in DAILY_REMINDER_DAYS]
        conditions.append(
            or_(
                *[
                    and_(Task.due_date >= to_db(start), Task.due_date < to_db(end))
                    for start, end in windows
                ]
            )
        )
    else:
        today_end = kst_start_of_day(now, 1)
        conditions.append(Task.due_date < to_db(today_end))

    return Task.query.filter(*conditions).order_by(Task.due_date.asc(), Task.id.asc()).all()


def _result(mode: str, *, total: int = 0, sent: int = 0, skipped: int = 0, failures=None, reason=None):
    result: dict[str, Any] = {
        "mode": mode,
        "total": total,
        "sent": sent,
        "skipped": skipped,
        "failures": failures if failures is not None else [],
    }
    if reason:
        result["reason"] = reason
    return result


def send_notifications(
    mode: str,
    *,
    now: Optional[datetime] = None,
    capabilities: Optional[Capabilities] = None,
) -> dict[str, Any]:
    """Run one scheduling pass and return a summary of what happened."""

    if mode not in MODES:
        raise ValueError("mode must be daily or hourly")

    token, chat_id = _require_credentials(
        "Telegram configuration missing (TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID)"
    )
    now = utc_now() if now is None else as_utc(now)
    capabilities = capabilities or Capabilities()

    if not capabilities.task_notification_column:
        logging.warning("Task notification columns are missing; skipping %s run", mode)
        return _result(mode, reason="notifications-unavailable")

    if mode == "hourly":
        quiet_start, quiet_end = get_quiet_hours()
        if is_quiet_hour(now, quiet_start, quiet_end):
            logging.info("Hourly Telegram run skipped during quiet hours (%s-%s KST)", quiet_start, quiet_end)
            return _result(mode, reason="quiet-hours")

    today_start = kst_start_of_day(now)
    tasks = fetch_target_tasks(mode, now)

    sent = 0
    skipped = 0
    failures: list[str] = []

    for task in tasks:
        diff_days = d_day_difference(task.due_date, today_start)

        if mode == "daily":
            if diff_days not in DAILY_REMINDER_DAYS or was_notified_today(task.last_notified_at, today_start):
                skipped += 1
                continue
        elif diff_days > 0 or not should_send_hourly(task.last_notified_at, task.reminder_interval_min, now):
            skipped += 1
            continue

        task_id = task.id
        try:
            send_telegram_message(token, chat_id, build_message(task, diff_days))
            task.last_notified_at = to_db(now)
            db.session.commit()
        except TelegramError as exc:
            failures.append(f"{task_id}: {exc}")
            logging.error("Failed to send Telegram notification for task %s: %s", task_id, exc)
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            failures.append(f"{task_id}: {exc}")
            logging.error("Unable to record Telegram notification for task %s: %s", task_id, exc, exc_info=True)
            continue
        sent += 1

    logging.info("Telegram %s run: %s candidates, %s sent, %s skipped, %s failed", mode, len(tasks), sent, skipped, len(failures))
    return _result(mode, total=len(tasks), sent=sent, skipped=skipped, failures=failures)


def send_test_message(text: str = "Telegram notification test") -> dict[str, Any]:
    token, chat_id = _require_credentials("Telegram test failed: bot token or chat id missing")
    send_telegram_message(token, chat_id, text)
    return {"success": True}
