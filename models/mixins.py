"""Shared column sets for models."""
from __future__ import annotations

from datetime import datetime

from database import db


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


class SoftDeleteMixin:
    """Rows are never destroyed; ``deleted_at`` hides them from every read path.

    Use ``Model.active()`` instead of ``Model.query`` whenever reading, so the
    ``deleted_at IS NULL`` filter cannot be forgotten at a call site.
    """

    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    @classmethod
    def active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    @classmethod
    def get_active_or_none(cls, item_id):
        if item_id is None:
            return None
        return cls.active().filter(cls.id == item_id).one_or_none()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = datetime.utcnow()
