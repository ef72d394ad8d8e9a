"""Project creation from templates, progress reporting, cloning and activity."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping

from cryptography.fernet import InvalidToken

from database import db
from models.project import Project, ProjectStage, ProjectStatus, StageStatus
from models.task import Task, TaskHistory, TaskStatus
from models.template import StageTemplate
from services.checklist_template_service import add_items_from_template
from services.risk_service import round_half_up
from services.site_password import rotate_ciphertext

ACTIVITY_LOG_LIMIT = 20
PROJECT_FIELDS = (
    "name",
    "address",
    "capacity_kw",
    "status",
    "target_date",
    "permit_number",
    "external_id",
)
REQUIRED_PROJECT_FIELDS = {"name", "status"}


def get_project(project_id: int, company_id: int) -> Project:
    project = Project.active().filter(
        Project.id == project_id,
        Project.company_id == company_id,
    ).one_or_none()
    if project is None:
        raise LookupError("Project not found.")
    return project


def calculate_progress(project: Project) -> dict[str, int]:
    """Completion of active tasks in active stages, as a whole percentage."""

    tasks = [
        task
        for stage in project.active_stages()
        if stage.is_active
        for task in stage.active_tasks()
    ]
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED.value)
    progress = round_half_up(completed / len(tasks) * 100) if tasks else 0
    return {"progress": progress, "total_tasks": len(tasks), "completed_tasks": completed}


def create_project(data: Mapping[str, Any], company_id: int) -> Project:
    """Create a project and instantiate the company's stage and task templates."""

    project = Project(company_id=company_id)
    for field in PROJECT_FIELDS:
        if data.get(field) is not None:
            setattr(project, field, data[field])
    if data.get("site_password"):
        project.set_site_password(data["site_password"])
    db.session.add(project)
    db.session.flush()

    templates = (
        StageTemplate.active()
        .filter(StageTemplate.company_id == company_id)
        .order_by(StageTemplate.order.asc(), StageTemplate.id.asc())
        .all()
    )
    for template in templates:
        stage = ProjectStage(
            project_id=project.id,
            template_id=template.id,
            status=StageStatus.PENDING.value,
            is_active=template.is_default_active,
        )
        db.session.add(stage)
        db.session.flush()

        for task_template in template.active_task_templates():
            due_date = None
            if project.target_date is not None and task_template.default_due_days:
                due_date = project.target_date + timedelta(days=task_template.default_due_days)
            task = Task(
                project_stage_id=stage.id,
                template_id=task_template.id,
                title=task_template.title,
                description=task_template.description,
                is_mandatory=task_template.is_mandatory,
                is_active=task_template.is_default_active,
                due_date=due_date,
            )
            db.session.add(task)
            if task_template.checklist_template is not None:
                db.session.flush()
                add_items_from_template(task, task_template.checklist_template)

    db.session.flush()
    db.session.refresh(project)
    logging.info("Project %s created with %s stages", project.id, len(templates))
    return project


def list_projects(company_id: int) -> list[dict[str, Any]]:
    projects = (
        Project.active()
        .filter(Project.company_id == company_id)
        .order_by(Project.updated_at.desc(), Project.id.desc())
        .all()
    )
    results = []
    for project in projects:
        payload = project.to_dict()
        payload.update(calculate_progress(project))
        payload["stage_count"] = len(project.active_stages())
        results.append(payload)
    return results


def serialize_project_detail(project: Project) -> dict[str, Any]:
    payload = project.to_dict()
    payload.update(calculate_progress(project))
    payload["stages"] = [stage.to_dict(include_tasks=True) for stage in project.active_stages()]
    return payload


def update_project(project_id: int, changes: Mapping[str, Any], company_id: int) -> Project:
    project = get_project(project_id, company_id)
    for field in PROJECT_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None and field in REQUIRED_PROJECT_FIELDS:
            continue
        setattr(project, field, changes[field])
    if "site_password" in changes:
        project.set_site_password(changes["site_password"])
    return project


def delete_project(project_id: int, company_id: int) -> Project:
    project = get_project(project_id, company_id)
    project.soft_delete()
    return project


def clone_project(project_id: int, company_id: int) -> Project:
    """Copy the project header, its stages and tasks with schedules reset.

    Everything is staged in one session and committed by the caller, so a
    failure part way leaves no partial copy behind.
    """

    source = get_project(project_id, company_id)
    clone = Project(
        company_id=company_id,
        name=f"{source.name} (복제)",
        address=source.address,
        capacity_kw=source.capacity_kw,
        status=ProjectStatus.IN_PROGRESS.value,
        target_date=source.target_date,
        permit_number=source.permit_number,
        external_id=source.external_id,
    )
    db.session.add(clone)
    db.session.flush()

    for stage in source.active_stages():
        stage_copy = ProjectStage(
            project_id=clone.id,
            template_id=stage.template_id,
            status=StageStatus.PENDING.value,
            is_active=stage.is_active,
        )
        db.session.add(stage_copy)
        db.session.flush()
        for task in stage.tasks:
            if task.deleted_at is not None:
                continue
            db.session.add(
                Task(
                    project_stage_id=stage_copy.id,
                    template_id=task.template_id,
                    title=task.title,
                    description=task.description,
                    is_mandatory=task.is_mandatory,
                    is_active=task.is_active,
                    status=TaskStatus.PENDING.value,
                    due_date=None,
                    assignee_id=None,
                )
            )

    db.session.flush()
    db.session.refresh(clone)
    logging.info("Project %s cloned into %s", source.id, clone.id)
    return clone


def get_activity_log(project_id: int, company_id: int, limit: int = ACTIVITY_LOG_LIMIT) -> list[dict[str, Any]]:
    project = get_project(project_id, company_id)
    histories = (
        TaskHistory.query.join(Task, TaskHistory.task_id == Task.id)
        .join(ProjectStage, Task.project_stage_id == ProjectStage.id)
        .filter(
            ProjectStage.project_id == project.id,
            ProjectStage.deleted_at.is_(None),
            Task.deleted_at.is_(None),
        )
        .order_by(TaskHistory.created_at.desc(), TaskHistory.id.desc())
        .limit(limit)
        .all()
    )
    entries = []
    for history in histories:
        entry = history.to_dict()
        entry["task"] = {"id": history.task.id, "title": history.task.title}
        entries.append(entry)
    return entries


def get_site_password(project_id: int, company_id: int) -> str | None:
    return get_project(project_id, company_id).get_site_password()


def rotate_site_passwords() -> dict[str, int]:
    """Re-encrypt every stored site password with the newest key.

    Passwords no configured key can open are left as they are and counted as
    unreadable; the caller commits.
    """

    rotated = 0
    unreadable = 0
    projects = Project.query.filter(Project.site_password_encrypted.isnot(None)).all()
    for project in projects:
        try:
            project.site_password_encrypted = rotate_ciphertext(project.site_password_encrypted)
        except InvalidToken:
            logging.warning("Site password of project %s could not be rotated", project.id)
            unreadable += 1
            continue
        rotated += 1
    db.session.flush()
    return {"rotated": rotated, "unreadable": unreadable}
