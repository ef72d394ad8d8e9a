"""A task represents one permitting or construction step inside a project stage

A Task belongs to exactly one ProjectStage
A Task is created from a template when the project is created, or manually
A Task is never destroyed; deleting it stamps deleted_at
Only active, non-deleted Tasks count towards the stage status and progress
A Task with notifications enabled and a due date receives reminders until it
is completed, deleted or its notifications are turned off

"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db
from models.mixins import SoftDeleteMixin, TimestampMixin
from utils.date_kst import isoformat_utc

DEFAULT_REMINDER_INTERVAL_MIN = 60


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    COMPLETED = "completed"
    DELAYED = "delayed"


STATUS_LABELS = {
    TaskStatus.PENDING.value: "대기",
    TaskStatus.IN_PROGRESS.value: "진행중",
    TaskStatus.WAITING.value: "회신대기",
    TaskStatus.COMPLETED.value: "완료",
    TaskStatus.DELAYED.value: "지연",
}


def status_label(status: str | None) -> str:
    if status is None:
        return ""
    return STATUS_LABELS.get(status, status)


class Task(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_stage_id = db.Column(
        db.Integer, db.ForeignKey("project_stages.id"), nullable=False, index=True
    )
    template_id = db.Column(db.Integer, db.ForeignKey("task_templates.id"), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=TaskStatus.PENDING.value)
    due_date = db.Column(db.DateTime, nullable=True, index=True)
    start_date = db.Column(db.DateTime, nullable=True)
    completed_date = db.Column(db.DateTime, nullable=True)
    is_mandatory = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    waiting_for = db.Column(db.String(255), nullable=True)
    notification_enabled = db.Column(db.Boolean, nullable=False, default=True)
    last_notified_at = db.Column(db.DateTime, nullable=True)
    reminder_interval_min = db.Column(
        db.Integer, nullable=False, default=DEFAULT_REMINDER_INTERVAL_MIN
    )

    stage = db.relationship("ProjectStage", back_populates="tasks")
    assignee = db.relationship("User", back_populates="assigned_tasks")
    histories = db.relationship(
        "TaskHistory",
        back_populates="task",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    checklist_items = db.relationship(
        "ChecklistItem",
        back_populates="task",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.order",
    )

    @property
    def status_enum(self) -> TaskStatus:
        return TaskStatus(self.status)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    @property
    def project(self):
        return self.stage.project if self.stage is not None else None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "project_stage_id": self.project_stage_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "status_label": status_label(self.status),
            "due_date": isoformat_utc(self.due_date),
            "start_date": isoformat_utc(self.start_date),
            "completed_date": isoformat_utc(self.completed_date),
            "is_mandatory": self.is_mandatory,
            "is_active": self.is_active,
            "assignee_id": self.assignee_id,
            "waiting_for": self.waiting_for,
            "notification_enabled": self.notification_enabled,
            "last_notified_at": isoformat_utc(self.last_notified_at),
            "reminder_interval_min": self.reminder_interval_min,
        }

    def __repr__(self):
        return f"<Task {self.title}>"


class TaskHistory(db.Model):
    """Activity log entry for a task."""

    __tablename__ = "task_histories"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    action = db.Column(db.String(40), nullable=False)
    old_value = db.Column(db.String(40), nullable=True)
    new_value = db.Column(db.String(40), nullable=True)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    task = db.relationship("Task", back_populates="histories")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "user": self.user.to_summary() if self.user else None,
            "action": self.action,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "comment": self.comment,
            "created_at": isoformat_utc(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<TaskHistory task={self.task_id} action={self.action}>"
