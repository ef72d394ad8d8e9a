"""Reusable checklist templates and applying them to tasks."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import func

from database import db
from models.checklist import ChecklistItem, ChecklistStatus, ChecklistTemplate, ChecklistTemplateItem
from models.task import Task
from models.template import TaskTemplate
from services.checklist_service import get_checklist, next_checklist_order
from services.task_service import get_task

TEMPLATE_FIELDS = ("name", "description")
TEMPLATE_ITEM_FIELDS = ("title", "has_expiry", "order")


def get_checklist_template(template_id: int, company_id: int) -> ChecklistTemplate:
    template = ChecklistTemplate.query.filter(
        ChecklistTemplate.id == template_id,
        ChecklistTemplate.company_id == company_id,
    ).one_or_none()
    if template is None:
        raise LookupError("Checklist template not found.")
    return template


def list_checklist_templates(company_id: int) -> list[ChecklistTemplate]:
    return (
        ChecklistTemplate.query.filter(ChecklistTemplate.company_id == company_id)
        .order_by(ChecklistTemplate.name.asc(), ChecklistTemplate.id.asc())
        .all()
    )


def create_checklist_template(
    data: Mapping[str, Any],
    company_id: int,
    items: Iterable[Mapping[str, Any]] = (),
) -> ChecklistTemplate:
    template = ChecklistTemplate(
        company_id=company_id,
        name=data["name"],
        description=data.get("description"),
    )
    db.session.add(template)
    for index, item in enumerate(items):
        order = item.get("order")
        template.items.append(
            ChecklistTemplateItem(
                title=item["title"],
                has_expiry=bool(item.get("has_expiry")),
                order=index if order is None else order,
            )
        )
    db.session.flush()
    return template


def update_checklist_template(template_id: int, changes: Mapping[str, Any], company_id: int) -> ChecklistTemplate:
    template = get_checklist_template(template_id, company_id)
    for field in TEMPLATE_FIELDS:
        if field not in changes:
            continue
        if field == "name" and changes[field] is None:
            continue
        setattr(template, field, changes[field])
    return template


def delete_checklist_template(template_id: int, company_id: int) -> None:
    """Delete the template and its items; linked task templates are unlinked."""

    template = get_checklist_template(template_id, company_id)
    TaskTemplate.query.filter(TaskTemplate.checklist_template_id == template.id).update(
        {TaskTemplate.checklist_template_id: None}, synchronize_session="fetch"
    )
    db.session.delete(template)


def _next_item_order(template_id: int) -> int:
    current = (
        db.session.query(func.max(ChecklistTemplateItem.order))
        .filter(ChecklistTemplateItem.template_id == template_id)
        .scalar()
    )
    return 0 if current is None else current + 1


def add_template_item(template_id: int, data: Mapping[str, Any], company_id: int) -> ChecklistTemplateItem:
    template = get_checklist_template(template_id, company_id)
    item = ChecklistTemplateItem(
        template_id=template.id,
        title=data["title"],
        has_expiry=bool(data.get("has_expiry")),
        order=_next_item_order(template.id),
    )
    db.session.add(item)
    db.session.flush()
    return item


def get_template_item(item_id: int, company_id: int) -> ChecklistTemplateItem:
    item = db.session.get(ChecklistTemplateItem, item_id)
    if item is None or item.template.company_id != company_id:
        raise LookupError("Checklist template item not found.")
    return item


def update_template_item(item_id: int, changes: Mapping[str, Any], company_id: int) -> ChecklistTemplateItem:
    item = get_template_item(item_id, company_id)
    for field in TEMPLATE_ITEM_FIELDS:
        if field not in changes or changes[field] is None:
            continue
        setattr(item, field, changes[field])
    return item


def delete_template_item(item_id: int, company_id: int) -> None:
    item = get_template_item(item_id, company_id)
    item.template.items.remove(item)
    db.session.flush()


def reorder_template_items(template_id: int, item_ids: Sequence[int], company_id: int) -> ChecklistTemplate:
    """Renumber the template's items in the given order, all or nothing."""

    template = get_checklist_template(template_id, company_id)
    if len(set(item_ids)) != len(item_ids):
        raise ValueError("Checklist template item ids must be unique.")
    by_id = {item.id: item for item in template.items}
    unknown = [item_id for item_id in item_ids if item_id not in by_id]
    if unknown:
        raise ValueError(f"Items do not belong to checklist template {template_id}: {unknown}")

    for index, item_id in enumerate(item_ids):
        by_id[item_id].order = index
    db.session.flush()
    db.session.expire(template, ["items"])
    return template


def add_items_from_template(task: Task, template: ChecklistTemplate) -> int:
    """Append the template's items to the task's checklist; returns how many."""

    start = next_checklist_order(task.id)
    for offset, template_item in enumerate(template.items):
        db.session.add(
            ChecklistItem(
                task_id=task.id,
                title=template_item.title,
                status=ChecklistStatus.PENDING.value,
                order=start + offset,
            )
        )
    db.session.flush()
    return len(template.items)


def apply_template_to_task(template_id: int, task_id: int, company_id: int) -> dict[str, Any]:
    template = get_checklist_template(template_id, company_id)
    task = get_task(task_id, company_id)
    applied = add_items_from_template(task, template)
    checklist = get_checklist(task.id, company_id)
    return {"applied": applied, "total": checklist["summary"]["total"], **checklist}
