"""Editing a company's stage templates and the task templates inside them.

Stage template ``order`` starts at 1 because it doubles as the stage weight in
delay-risk scoring. Changes only affect projects created afterwards.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import func

from database import db
from models.template import StageTemplate, TaskTemplate
from services.checklist_template_service import get_checklist_template


def _stage_query(company_id: int):
    return StageTemplate.active().filter(StageTemplate.company_id == company_id)


def get_stage_template(template_id: int, company_id: int) -> StageTemplate:
    template = _stage_query(company_id).filter(StageTemplate.id == template_id).one_or_none()
    if template is None:
        raise LookupError("Stage template not found.")
    return template


def list_stage_templates(company_id: int) -> list[StageTemplate]:
    return _stage_query(company_id).order_by(StageTemplate.order.asc(), StageTemplate.id.asc()).all()


def create_stage_template(data: Mapping[str, Any], company_id: int) -> StageTemplate:
    current = (
        db.session.query(func.max(StageTemplate.order))
        .filter(StageTemplate.company_id == company_id, StageTemplate.deleted_at.is_(None))
        .scalar()
    )
    template = StageTemplate(
        company_id=company_id,
        name=data["name"],
        description=data.get("description"),
        order=(current or 0) + 1,
        is_default_active=data.get("is_default_active", True) is not False,
    )
    db.session.add(template)
    db.session.flush()
    return template


def update_structure(
    template_id: int,
    stage: Mapping[str, Any],
    tasks: Sequence[Mapping[str, Any]],
    company_id: int,
) -> StageTemplate:
    """Replace a stage template's details and task list in one unit of work.

    Tasks carrying the id of one of this stage's live task templates are
    updated; tasks without one are created; live task templates missing from
    ``tasks`` are soft deleted. Unknown ids are treated as new tasks.
    """

    template = get_stage_template(template_id, company_id)
    for field in ("name", "description", "order", "is_default_active"):
        if field in stage and (stage[field] is not None or field == "description"):
            setattr(template, field, stage[field])

    existing = {task.id: task for task in template.active_task_templates()}
    kept = set()
    for index, data in enumerate(tasks):
        order = data.get("order")
        if order is None:
            order = index
        task = existing.get(data.get("id"))
        if task is None:
            task = TaskTemplate(stage_template_id=template.id)
            db.session.add(task)
        else:
            kept.add(task.id)
        task.title = data["title"]
        task.description = data.get("description")
        task.is_mandatory = bool(data.get("is_mandatory"))
        task.is_default_active = data.get("is_default_active", True) is not False
        task.default_due_days = data.get("default_due_days")
        task.order = order

    for task_id, task in existing.items():
        if task_id not in kept:
            task.soft_delete()

    db.session.flush()
    db.session.expire(template, ["task_templates"])
    return template


def reorder_stage_templates(template_ids: Sequence[int], company_id: int) -> list[StageTemplate]:
    """Number the stage templates 1..n in the given order, all or nothing."""

    if len(set(template_ids)) != len(template_ids):
        raise ValueError("Stage template ids must be unique.")
    by_id = {template.id: template for template in _stage_query(company_id).all()}
    unknown = [template_id for template_id in template_ids if template_id not in by_id]
    if unknown:
        raise ValueError(f"Unknown stage templates: {unknown}")

    for position, template_id in enumerate(template_ids, start=1):
        by_id[template_id].order = position
    db.session.flush()
    return list_stage_templates(company_id)


def delete_stage_template(template_id: int, company_id: int) -> StageTemplate:
    """Soft delete the stage template together with its task templates."""

    template = get_stage_template(template_id, company_id)
    template.soft_delete()
    for task in template.active_task_templates():
        task.soft_delete()
    return template


def get_task_template(task_template_id: int, company_id: int) -> TaskTemplate:
    task = (
        TaskTemplate.active()
        .join(StageTemplate, TaskTemplate.stage_template_id == StageTemplate.id)
        .filter(
            TaskTemplate.id == task_template_id,
            StageTemplate.company_id == company_id,
            StageTemplate.deleted_at.is_(None),
        )
        .one_or_none()
    )
    if task is None:
        raise LookupError("Task template not found.")
    return task


def link_checklist_template(
    task_template_id: int,
    checklist_template_id: int | None,
    company_id: int,
) -> TaskTemplate:
    """Attach a checklist template to a task template, or detach with ``None``."""

    task = get_task_template(task_template_id, company_id)
    if checklist_template_id is None:
        task.checklist_template = None
    else:
        task.checklist_template = get_checklist_template(checklist_template_id, company_id)
    db.session.flush()
    return task
