"""Notification models for in-app alerts."""
from __future__ import annotations
from datetime import datetime
from enum import StrEnum

from database import db
from utils.date_kst import isoformat_utc


class NotificationType(StrEnum):
    """Supported notification categories."""

    TASK_ASSIGNED = "task_assigned"
    TASK_STATUS_CHANGED = "task_status_changed"
    DUE_REMINDER = "due_reminder"


class Notification(db.Model):
    """Persisted message for a user."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=True, index=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=True, index=True)
    notification_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    read_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", back_populates="notifications")

    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    @property
    def type_enum(self) -> NotificationType:
        """Return the notification type as an enum value."""

        return NotificationType(self.notification_type)

    def mark_read(self) -> None:
        """Record that the notification has been seen."""

        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.utcnow()

    def to_dict(self) -> dict[str, object]:
        """Return a serialized representation of the notification."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "task_id": self.task_id,
            "notification_type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": isoformat_utc(self.created_at),
            "read_at": isoformat_utc(self.read_at),
        }
