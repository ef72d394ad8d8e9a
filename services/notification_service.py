"""Utilities for creating and presenting in-app notifications."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from database import db
from models.notification import Notification, NotificationType
from models.task import Task, status_label

NOTIFICATION_LIST_LIMIT = 50


def create_notification(
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    *,
    project_id: int | None = None,
    task_id: int | None = None,
) -> Notification:
    """Queue a notification for the user; the caller commits."""

    notification = Notification(
        user_id=user_id,
        project_id=project_id,
        task_id=task_id,
        notification_type=notification_type.value,
        title=title,
        message=message,
    )
    db.session.add(notification)
    return notification


def notify_task_assigned(task: Task) -> Notification | None:
    if task.assignee_id is None:
        return None
    project = task.project
    return create_notification(
        task.assignee_id,
        NotificationType.TASK_ASSIGNED,
        "새 태스크 배정",
        f"[{project.name if project else ''}] {task.title}",
        project_id=project.id if project else None,
        task_id=task.id,
    )


def notify_task_status_changed(task: Task, old_status: str) -> Notification | None:
    if task.assignee_id is None:
        return None
    project = task.project
    return create_notification(
        task.assignee_id,
        NotificationType.TASK_STATUS_CHANGED,
        "태스크 상태 변경",
        f"{task.title}: {status_label(old_status)} → {status_label(task.status)}",
        project_id=project.id if project else None,
        task_id=task.id,
    )


def get_notifications(user_id: int, *, unread_only: bool = False, limit: int = NOTIFICATION_LIST_LIMIT) -> list[Notification]:
    """Return the newest notifications of the user."""

    query = Notification.query.filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def get_unread_count(user_id: int) -> int:
    return Notification.query.filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def load_notification(notification_id: int, user_id: int) -> Notification:
    """Return a notification owned by the user or raise an error."""

    notification = db.session.get(Notification, notification_id)
    if notification is None:
        raise LookupError("Notification not found.")
    if notification.user_id != user_id:
        raise PermissionError("You do not have access to this notification.")
    return notification


def mark_as_read(notification_id: int, user_id: int) -> Notification:
    notification = load_notification(notification_id, user_id)
    notification.mark_read()
    return notification


def mark_all_as_read(user_id: int) -> int:
    """Mark every unread notification of the user as read; return how many changed."""

    return Notification.query.filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).update(
        {Notification.is_read: True, Notification.read_at: datetime.utcnow()},
        synchronize_session=False,
    )


def serialize_notifications(notifications: Iterable[Notification]) -> list[dict[str, object]]:
    return [notification.to_dict() for notification in notifications]
