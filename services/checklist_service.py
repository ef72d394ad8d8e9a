"""Checklist items for a task (documents to collect, site checks)."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import func

from database import db
from models.checklist import ChecklistItem, ChecklistStatus
from services.risk_service import round_half_up
from services.task_service import get_task

CHECKLIST_FIELDS = ("title", "status", "memo", "order", "issued_at", "expires_at")
REQUIRED_CHECKLIST_FIELDS = {"title", "status", "order"}


def next_checklist_order(task_id: int) -> int:
    current = (
        db.session.query(func.max(ChecklistItem.order))
        .filter(ChecklistItem.task_id == task_id)
        .scalar()
    )
    return 0 if current is None else current + 1


def get_checklist_item(item_id: int, company_id: int) -> ChecklistItem:
    item = db.session.get(ChecklistItem, item_id)
    if item is None:
        raise LookupError("Checklist item not found.")
    # Scoped through the owning task so other tenants' items stay invisible.
    try:
        get_task(item.task_id, company_id)
    except LookupError as exc:
        raise LookupError("Checklist item not found.") from exc
    return item


def summarize(items: Sequence[ChecklistItem]) -> dict[str, int]:
    total = len(items)
    completed = sum(1 for item in items if item.status == ChecklistStatus.COMPLETED.value)
    progress = round_half_up(completed / total * 100) if total else 0
    return {"total": total, "completed": completed, "progress": progress}


def get_checklist(task_id: int, company_id: int) -> dict[str, Any]:
    get_task(task_id, company_id)
    items = (
        ChecklistItem.query.filter(ChecklistItem.task_id == task_id)
        .order_by(ChecklistItem.order.asc(), ChecklistItem.id.asc())
        .all()
    )
    return {"items": [item.to_dict() for item in items], "summary": summarize(items)}


def _build_item(task_id: int, data: Mapping[str, Any], order: int) -> ChecklistItem:
    return ChecklistItem(
        task_id=task_id,
        title=data["title"],
        status=data.get("status") or ChecklistStatus.PENDING.value,
        memo=data.get("memo"),
        order=order,
        issued_at=data.get("issued_at"),
        expires_at=data.get("expires_at"),
    )


def create_checklist_item(task_id: int, data: Mapping[str, Any], company_id: int) -> ChecklistItem:
    get_task(task_id, company_id)
    order = data.get("order")
    if order is None:
        order = next_checklist_order(task_id)
    item = _build_item(task_id, data, order)
    db.session.add(item)
    db.session.flush()
    return item


def create_checklist_items(task_id: int, items: Iterable[Mapping[str, Any]], company_id: int) -> dict[str, Any]:
    get_task(task_id, company_id)
    order = next_checklist_order(task_id)
    for offset, data in enumerate(items):
        db.session.add(_build_item(task_id, data, order + offset))
    db.session.flush()
    return get_checklist(task_id, company_id)


def update_checklist_item(item_id: int, changes: Mapping[str, Any], company_id: int) -> ChecklistItem:
    item = get_checklist_item(item_id, company_id)
    for field in CHECKLIST_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None and field in REQUIRED_CHECKLIST_FIELDS:
            continue
        setattr(item, field, changes[field])
    return item


def delete_checklist_item(item_id: int, company_id: int) -> None:
    item = get_checklist_item(item_id, company_id)
    db.session.delete(item)


def reorder_checklist(task_id: int, item_ids: Sequence[int], company_id: int) -> dict[str, Any]:
    """Renumber the task's items in the given order.

    Ids that do not belong to the task reject the whole request before any row
    is touched; the caller commits all positions together.
    """

    get_task(task_id, company_id)
    if len(set(item_ids)) != len(item_ids):
        raise ValueError("Checklist item ids must be unique.")
    items = ChecklistItem.query.filter(ChecklistItem.task_id == task_id).all()
    by_id = {item.id: item for item in items}
    unknown = [item_id for item_id in item_ids if item_id not in by_id]
    if unknown:
        raise ValueError(f"Checklist items do not belong to task {task_id}: {unknown}")

    for index, item_id in enumerate(item_ids):
        by_id[item_id].order = index
    db.session.flush()
    return get_checklist(task_id, company_id)
