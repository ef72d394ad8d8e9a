"""Task lifecycle: creation, edits, status changes and the activity log.

Every mutation re-derives the owning stage's status and bumps the project's
``updated_at``. Callers commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from database import db
from models.project import Project, ProjectStage
from models.task import DEFAULT_REMINDER_INTERVAL_MIN, Task, TaskHistory, TaskStatus, status_label
from models.user import User
from services.notification_service import notify_task_assigned, notify_task_status_changed
from services.stage_status import refresh_stage_status

HISTORY_PREVIEW_LIMIT = 10


def get_task(task_id: int, company_id: int) -> Task:
    """Return a non-deleted task of the company or raise ``LookupError``."""

    task = (
        Task.active()
        .join(ProjectStage, Task.project_stage_id == ProjectStage.id)
        .join(Project, ProjectStage.project_id == Project.id)
        .filter(
            Task.id == task_id,
            ProjectStage.deleted_at.is_(None),
            Project.deleted_at.is_(None),
            Project.company_id == company_id,
        )
        .one_or_none()
    )
    if task is None:
        raise LookupError("Task not found.")
    return task


def _get_stage(stage_id: int, company_id: int) -> ProjectStage:
    stage = (
        ProjectStage.active()
        .join(Project, ProjectStage.project_id == Project.id)
        .filter(
            ProjectStage.id == stage_id,
            Project.deleted_at.is_(None),
            Project.company_id == company_id,
        )
        .one_or_none()
    )
    if stage is None:
        raise LookupError("Stage not found.")
    return stage


def _validate_assignee(assignee_id: int | None, company_id: int) -> int | None:
    if assignee_id is None:
        return None
    user = db.session.get(User, assignee_id)
    if user is None or user.company_id != company_id:
        raise ValueError("Assignee must be a member of the company.")
    return user.id


def _record_history(
    task: Task,
    user_id: int | None,
    action: str,
    old_value: str | None = None,
    new_value: str | None = None,
    comment: str | None = None,
) -> TaskHistory:
    history = TaskHistory(
        task_id=task.id,
        user_id=user_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        comment=comment,
    )
    db.session.add(history)
    return history


def _touch_project(stage_id: int) -> None:
    stage = db.session.get(ProjectStage, stage_id)
    if stage is None or stage.project is None:
        return
    stage.project.updated_at = datetime.utcnow()


def _after_mutation(stage_id: int) -> None:
    db.session.flush()
    refresh_stage_status(stage_id)
    _touch_project(stage_id)


def create_task(data: Mapping[str, Any], company_id: int, user_id: int | None = None) -> Task:
    stage = _get_stage(data["project_stage_id"], company_id)
    task = Task(
        project_stage_id=stage.id,
        title=data["title"],
        description=data.get("description"),
        due_date=data.get("due_date"),
        assignee_id=_validate_assignee(data.get("assignee_id"), company_id),
        is_mandatory=bool(data.get("is_mandatory", False)),
        is_active=bool(data.get("is_active", True)),
        waiting_for=data.get("waiting_for"),
    )
    if data.get("notification_enabled") is not None:
        task.notification_enabled = bool(data["notification_enabled"])
    if data.get("reminder_interval_min"):
        task.reminder_interval_min = data["reminder_interval_min"]
    db.session.add(task)
    db.session.flush()

    _record_history(task, user_id, "created", None, "created")
    notify_task_assigned(task)
    _after_mutation(stage.id)
    logging.info("Task %s created in stage %s", task.id, stage.id)
    return task


def update_task(task_id: int, changes: Mapping[str, Any], company_id: int, user_id: int | None = None) -> Task:
    """Apply the supplied fields; keys that are absent stay unchanged."""

    task = get_task(task_id, company_id)
    change_notes: list[str] = []

    if "title" in changes and changes["title"] and changes["title"] != task.title:
        change_notes.append(f"제목: {task.title} → {changes['title']}")
        task.title = changes["title"]

    assignee_changed = False
    if "assignee_id" in changes and changes["assignee_id"] != task.assignee_id:
        task.assignee_id = _validate_assignee(changes["assignee_id"], company_id)
        change_notes.append("담당자 변경")
        assignee_changed = True

    for field in (
        "description",
        "due_date",
        "is_mandatory",
        "waiting_for",
        "notification_enabled",
        "reminder_interval_min",
    ):
        if field in changes:
            setattr(task, field, changes[field])
    if task.reminder_interval_min is None:
        task.reminder_interval_min = DEFAULT_REMINDER_INTERVAL_MIN

    if change_notes:
        _record_history(task, user_id, "updated", comment=", ".join(change_notes))
    if assignee_changed:
        notify_task_assigned(task)

    _after_mutation(task.project_stage_id)
    return task


def update_task_status(task_id: int, data: Mapping[str, Any], company_id: int, user_id: int | None = None) -> Task:
    task = get_task(task_id, company_id)
    old_status = task.status
    new_status = TaskStatus(data["status"]).value

    task.status = new_status
    if new_status == TaskStatus.COMPLETED.value:
        if old_status != new_status:
            task.completed_date = datetime.utcnow()
    else:
        task.completed_date = None
    if "waiting_for" in data:
        task.waiting_for = data["waiting_for"]
    if "due_date" in data:
        task.due_date = data["due_date"]

    comment = data.get("memo") or f"상태 변경: {status_label(old_status)} → {status_label(new_status)}"
    _record_history(task, user_id, "status_changed", old_status, new_status, comment)
    if old_status != new_status and task.assignee_id != user_id:
        notify_task_status_changed(task, old_status)

    _after_mutation(task.project_stage_id)
    logging.info("Task %s status %s -> %s", task.id, old_status, new_status)
    return task


def update_task_active(task_id: int, is_active: bool, company_id: int, user_id: int | None = None) -> Task:
    task = get_task(task_id, company_id)
    if task.is_active != is_active:
        task.is_active = is_active
        _record_history(task, user_id, "activated" if is_active else "deactivated")
    _after_mutation(task.project_stage_id)
    return task


def delete_task(task_id: int, company_id: int, user_id: int | None = None) -> Task:
    task = get_task(task_id, company_id)
    task.soft_delete()
    _record_history(task, user_id, "deleted")
    _after_mutation(task.project_stage_id)
    return task


def serialize_task_detail(task: Task) -> dict[str, Any]:
    payload = task.to_dict()
    stage = task.stage
    project = task.project
    payload["assignee"] = task.assignee.to_summary() if task.assignee else None
    payload["stage"] = {"id": stage.id, "name": stage.name} if stage else None
    payload["project"] = {"id": project.id, "name": project.name} if project else None
    payload["histories"] = [
        history.to_dict()
        for history in task.histories.order_by(TaskHistory.created_at.desc(), TaskHistory.id.desc())
        .limit(HISTORY_PREVIEW_LIMIT)
        .all()
    ]
    payload["checklist"] = [item.to_dict() for item in task.checklist_items]
    return payload
