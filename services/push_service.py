"""Firebase Cloud Messaging reminders sent to every device of a task's company."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from flask import current_app

from database import db
from models.project import Project, ProjectStage
from models.task import DEFAULT_REMINDER_INTERVAL_MIN, Task, TaskStatus
from models.user import User
from utils.date_kst import as_utc, d_day_difference, d_day_label, kst_start_of_day, to_db, utc_now

FIREBASE_APP_NAME = "solarpm"
PUSH_REMINDER_DAYS = (7, 1, 0)
ANDROID_CHANNEL_ID = "task_reminder"


def _get_firebase_app() -> Optional[firebase_admin.App]:
    """Return the initialised Firebase app, or ``None`` when unconfigured."""

    project_id = current_app.config.get("FIREBASE_PROJECT_ID")
    client_email = current_app.config.get("FIREBASE_CLIENT_EMAIL")
    private_key = current_app.config.get("FIREBASE_PRIVATE_KEY")
    if not (project_id and client_email and private_key):
        logging.warning("Firebase service account is not configured; push notifications are disabled")
        return None

    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    certificate = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": project_id,
            "client_email": client_email,
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )
    return firebase_admin.initialize_app(certificate, name=FIREBASE_APP_NAME)


def _is_due_for_push(task: Task, diff_days: int, now: datetime) -> bool:
    if diff_days >= 0 and diff_days not in PUSH_REMINDER_DAYS:
        return False
    if diff_days == 0 and task.last_notified_at is not None:
        interval = timedelta(minutes=task.reminder_interval_min or DEFAULT_REMINDER_INTERVAL_MIN)
        if now - as_utc(task.last_notified_at) < interval:
            return False
    return True


def build_push_message(task: Task, token: str, diff_days: int) -> messaging.Message:
    project = task.project
    label = d_day_label(diff_days)
    return messaging.Message(
        fid=token,
        notification=messaging.Notification(
            title=f"🔔 Solar PM: {label}",
            body=f"[{project.name if project else ''}] {task.title}",
        ),
        data={
            "taskId": str(task.id),
            "projectId": str(project.id) if project else "",
            "dDay": str(diff_days),
        },
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                sound="default",
                channel_id=ANDROID_CHANNEL_ID,
            ),
        ),
    )


def _recipients(task: Task) -> list[User]:
    project = task.project
    if project is None:
        return []
    return (
        User.query.filter(User.company_id == project.company_id, User.fcm_token.isnot(None))
        .order_by(User.id)
        .all()
    )


def send_due_notifications(now: Optional[datetime] = None) -> dict[str, Any]:
    firebase_app = _get_firebase_app()
    if firebase_app is None:
        return {"success": True, "disabled": True, "sent": 0}

    now = utc_now() if now is None else as_utc(now)
    today_start = kst_start_of_day(now)

    tasks = (
        Task.active()
        .join(ProjectStage, Task.project_stage_id == ProjectStage.id)
        .join(Project, ProjectStage.project_id == Project.id)
        .filter(
            Task.notification_enabled.is_(True),
            Task.status != TaskStatus.COMPLETED.value,
            Task.due_date.isnot(None),
            Project.deleted_at.is_(None),
        )
        .order_by(Task.due_date.asc(), Task.id.asc())
        .all()
    )

    sent = 0
    for task in tasks:
        diff_days = d_day_difference(task.due_date, today_start)
        if not _is_due_for_push(task, diff_days, now):
            continue

        for user in _recipients(task):
            try:
                messaging.send(build_push_message(task, user.fcm_token, diff_days), app=firebase_app)
            except (exceptions.FirebaseError, ValueError) as exc:
                logging.error("Failed to send push notification for task %s to user %s: %s", task.id, user.id, exc)
                continue
            sent += 1
            logging.info("Sent push notification for task %s to user %s", task.id, user.id)

        task.last_notified_at = to_db(now)
        db.session.commit()

    return {"success": True, "sent": sent, "timestamp": now.isoformat()}


def register_token(user_id: int, token: str) -> User:
    token = (token or "").strip()
    if not token:
        raise ValueError("FCM token is required.")
    user = db.session.get(User, user_id)
    if user is None:
        raise LookupError("User not found.")
    user.fcm_token = token
    return user
