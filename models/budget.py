"""Budget categories and the per-project budget lines built from them.

Amounts are KRW held as ``Numeric``; ``to_dict`` emits plain numbers.
"""
from __future__ import annotations

from decimal import Decimal

from database import db
from models.mixins import SoftDeleteMixin, TimestampMixin

AMOUNT = db.Numeric(15, 2)


def amount_value(value) -> float | int:
    if value is None:
        return 0
    value = Decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class BudgetCategory(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "budget_categories"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    vendor_role = db.Column(db.String(30), nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "vendor_role": self.vendor_role,
            "is_default": self.is_default,
            "order": self.order,
        }

    def __repr__(self):
        return f"<BudgetCategory {self.order}:{self.name}>"


class ProjectBudgetItem(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "project_budget_items"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("budget_categories.id"), nullable=False, index=True)
    contract_amount = db.Column(AMOUNT, nullable=False, default=0)
    planned_amount = db.Column(AMOUNT, nullable=False, default=0)
    actual_amount = db.Column(AMOUNT, nullable=False, default=0)
    vendor_override_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)

    category = db.relationship("BudgetCategory", lazy="joined")
    vendor_override = db.relationship("Vendor", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "contract_amount": amount_value(self.contract_amount),
            "planned_amount": amount_value(self.planned_amount),
            "actual_amount": amount_value(self.actual_amount),
            "vendor_override_id": self.vendor_override_id,
            "category": self.category.to_dict() if self.category is not None else None,
        }

    def __repr__(self):
        return f"<ProjectBudgetItem {self.project_id}:{self.category_id}>"
