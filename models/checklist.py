"""Checklist items attached to a task (permit documents to collect, etc.)."""
from __future__ import annotations

from enum import StrEnum

from database import db
from models.mixins import TimestampMixin
from utils.date_kst import isoformat_utc


class ChecklistStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ChecklistItem(TimestampMixin, db.Model):
    __tablename__ = "checklist_items"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ChecklistStatus.PENDING.value)
    memo = db.Column(db.Text, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    issued_at = db.Column(db.DateTime, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)

    task = db.relationship("Task", back_populates="checklist_items")

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "title": self.title,
            "status": self.status,
            "memo": self.memo,
            "order": self.order,
            "issued_at": isoformat_utc(self.issued_at),
            "expires_at": isoformat_utc(self.expires_at),
        }

    def __repr__(self):
        return f"<ChecklistItem {self.order}:{self.title}>"


class ChecklistTemplate(TimestampMixin, db.Model):
    """A reusable list of checklist items, applied to tasks on demand."""

    __tablename__ = "checklist_templates"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    items = db.relationship(
        "ChecklistTemplateItem",
        back_populates="template",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="[ChecklistTemplateItem.order, ChecklistTemplateItem.id]",
    )

    def to_dict(self, *, include_items: bool = True):
        payload = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "item_count": len(self.items),
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }
        if include_items:
            payload["items"] = [item.to_dict() for item in self.items]
        return payload

    def __repr__(self):
        return f"<ChecklistTemplate {self.name}>"


class ChecklistTemplateItem(TimestampMixin, db.Model):
    __tablename__ = "checklist_template_items"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("checklist_templates.id"), nullable=False, index=True
    )
    title = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    has_expiry = db.Column(db.Boolean, nullable=False, default=False)

    template = db.relationship("ChecklistTemplate", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "title": self.title,
            "order": self.order,
            "has_expiry": self.has_expiry,
        }

    def __repr__(self):
        return f"<ChecklistTemplateItem {self.order}:{self.title}>"
