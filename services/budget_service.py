"""Budget categories per company and budget lines per project.

A budget line's vendor is its explicit override, else the vendor holding the
category's ``vendor_role`` on the project. Totals are summed on read.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import func

from database import db
from models.budget import BudgetCategory, ProjectBudgetItem, amount_value
from models.vendor import ProjectVendor, VendorRole
from services.project_service import get_project
from services.vendor_service import get_vendor

CATEGORY_FIELDS = ("name", "vendor_role", "is_default", "order")
AMOUNT_FIELDS = ("contract_amount", "planned_amount", "actual_amount")


def _category_query(company_id: int):
    return BudgetCategory.active().filter(BudgetCategory.company_id == company_id)


def get_category(category_id: int, company_id: int) -> BudgetCategory:
    category = _category_query(company_id).filter(BudgetCategory.id == category_id).one_or_none()
    if category is None:
        raise LookupError("Budget category not found.")
    return category


def list_categories(company_id: int) -> list[BudgetCategory]:
    return _category_query(company_id).order_by(BudgetCategory.order.asc(), BudgetCategory.id.asc()).all()


def _validate_role(role):
    if role is None:
        return None
    return VendorRole(role).value


def create_category(data: Mapping[str, Any], company_id: int) -> BudgetCategory:
    order = data.get("order")
    if order is None:
        current = (
            db.session.query(func.max(BudgetCategory.order))
            .filter(BudgetCategory.company_id == company_id, BudgetCategory.deleted_at.is_(None))
            .scalar()
        )
        order = (current or 0) + 1
    category = BudgetCategory(
        company_id=company_id,
        name=data["name"],
        vendor_role=_validate_role(data.get("vendor_role")),
        is_default=bool(data.get("is_default")),
        order=order,
    )
    db.session.add(category)
    db.session.flush()
    return category


def update_category(category_id: int, changes: Mapping[str, Any], company_id: int) -> BudgetCategory:
    category = get_category(category_id, company_id)
    for field in CATEGORY_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is None and field in {"name", "is_default", "order"}:
            continue
        if field == "vendor_role":
            value = _validate_role(value)
        setattr(category, field, value)
    return category


def delete_category(category_id: int, company_id: int) -> BudgetCategory:
    category = get_category(category_id, company_id)
    category.soft_delete()
    return category


def reorder_categories(category_ids: Sequence[int], company_id: int) -> list[BudgetCategory]:
    """Number the categories 1..n in the given order.

    Every id is checked before any position changes, so a stale or foreign id
    rejects the whole request and the caller's rollback leaves nothing moved.
    """

    if len(set(category_ids)) != len(category_ids):
        raise ValueError("Budget category ids must be unique.")
    by_id = {category.id: category for category in _category_query(company_id).all()}
    unknown = [category_id for category_id in category_ids if category_id not in by_id]
    if unknown:
        raise ValueError(f"Unknown budget categories: {unknown}")

    for position, category_id in enumerate(category_ids, start=1):
        by_id[category_id].order = position
    db.session.flush()
    return list_categories(company_id)


def _item_vendor(item: ProjectBudgetItem, vendors_by_role: Mapping[str, ProjectVendor]):
    if item.vendor_override is not None and item.vendor_override.deleted_at is None:
        return item.vendor_override
    role = item.category.vendor_role if item.category is not None else None
    assignment = vendors_by_role.get(role) if role else None
    return assignment.vendor if assignment is not None else None


def get_project_budget(project_id: int, company_id: int) -> dict[str, Any]:
    project = get_project(project_id, company_id)
    items = (
        ProjectBudgetItem.active()
        .filter(ProjectBudgetItem.project_id == project.id)
        .order_by(ProjectBudgetItem.created_at.asc(), ProjectBudgetItem.id.asc())
        .all()
    )
    vendors_by_role = {
        assignment.role: assignment
        for assignment in ProjectVendor.active().filter(ProjectVendor.project_id == project.id)
    }

    totals = {field: Decimal(0) for field in AMOUNT_FIELDS}
    payload_items = []
    for item in items:
        payload = item.to_dict()
        vendor = _item_vendor(item, vendors_by_role)
        payload["vendor_id"] = vendor.id if vendor is not None else None
        payload["vendor"] = vendor.to_dict() if vendor is not None else None
        payload_items.append(payload)
        for field in AMOUNT_FIELDS:
            totals[field] += getattr(item, field) or 0

    return {
        "items": payload_items,
        "contractTotal": amount_value(totals["contract_amount"]),
        "plannedTotal": amount_value(totals["planned_amount"]),
        "actualTotal": amount_value(totals["actual_amount"]),
        "actualProfit": amount_value(totals["contract_amount"] - totals["actual_amount"]),
    }


def initialize_project_budget(project_id: int, company_id: int) -> dict[str, Any]:
    """Add a zero line for every default category the project lacks."""

    project = get_project(project_id, company_id)
    existing = {
        item.category_id
        for item in ProjectBudgetItem.active().filter(ProjectBudgetItem.project_id == project.id)
    }
    defaults = (
        _category_query(company_id)
        .filter(BudgetCategory.is_default.is_(True))
        .order_by(BudgetCategory.order.asc(), BudgetCategory.id.asc())
        .all()
    )
    for category in defaults:
        if category.id in existing:
            continue
        db.session.add(ProjectBudgetItem(project_id=project.id, category_id=category.id))
    db.session.flush()
    return get_project_budget(project_id, company_id)


def _apply_amounts(item: ProjectBudgetItem, data: Mapping[str, Any], company_id: int) -> None:
    for field in AMOUNT_FIELDS:
        if field in data and data[field] is not None:
            setattr(item, field, data[field])
    if "vendor_override_id" in data:
        vendor_id = data["vendor_override_id"]
        item.vendor_override = get_vendor(vendor_id, company_id) if vendor_id is not None else None


def add_budget_item(project_id: int, data: Mapping[str, Any], company_id: int) -> ProjectBudgetItem:
    project = get_project(project_id, company_id)
    category = get_category(data["category_id"], company_id)
    duplicate = ProjectBudgetItem.active().filter(
        ProjectBudgetItem.project_id == project.id,
        ProjectBudgetItem.category_id == category.id,
    ).first()
    if duplicate is not None:
        raise ValueError("This category is already in the project budget.")

    item = ProjectBudgetItem(
        project_id=project.id,
        category_id=category.id,
        contract_amount=0,
        planned_amount=0,
        actual_amount=0,
    )
    item.category = category
    _apply_amounts(item, data, company_id)
    db.session.add(item)
    db.session.flush()
    return item


def get_budget_item(item_id: int, company_id: int) -> ProjectBudgetItem:
    item = ProjectBudgetItem.get_active_or_none(item_id)
    if item is None:
        raise LookupError("Budget item not found.")
    try:
        get_project(item.project_id, company_id)
    except LookupError as exc:
        raise LookupError("Budget item not found.") from exc
    return item


def update_budget_item(item_id: int, changes: Mapping[str, Any], company_id: int) -> ProjectBudgetItem:
    item = get_budget_item(item_id, company_id)
    _apply_amounts(item, changes, company_id)
    db.session.flush()
    return item


def delete_budget_item(item_id: int, company_id: int) -> ProjectBudgetItem:
    item = get_budget_item(item_id, company_id)
    item.soft_delete()
    return item
