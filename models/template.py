"""Stage and task templates a project is instantiated from.

Each company keeps an ordered list of permitting stages. The ``order`` of a
stage template doubles as the stage weight used when scoring delay risk.
"""
from database import db
from models.mixins import SoftDeleteMixin, TimestampMixin
from utils.date_kst import isoformat_utc

# Default permitting workflow for a solar power plant.
DEFAULT_STAGE_TEMPLATES = (
    ("사업타당성 검토", 1),
    ("발전사업허가", 2),
    ("개발행위허가", 3),
    ("건축/공작물 허가", 4),
    ("착공신고", 5),
    ("전력수급계약", 6),
    ("사용전검사", 7),
    ("상업운전", 8),
)


class StageTemplate(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "stage_templates"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=1)
    is_default_active = db.Column(db.Boolean, nullable=False, default=True)

    company = db.relationship("Company", back_populates="stage_templates")
    task_templates = db.relationship(
        "TaskTemplate",
        back_populates="stage_template",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="[TaskTemplate.order, TaskTemplate.id]",
    )

    def active_task_templates(self) -> list["TaskTemplate"]:
        return [task for task in self.task_templates if task.deleted_at is None]

    def to_dict(self, *, include_tasks: bool = False):
        tasks = self.active_task_templates()
        payload = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "is_default_active": self.is_default_active,
            "task_count": len(tasks),
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }
        if include_tasks:
            payload["tasks"] = [task.to_dict() for task in tasks]
        return payload

    def __repr__(self):
        return f"<StageTemplate {self.order}:{self.name}>"


class TaskTemplate(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "task_templates"

    id = db.Column(db.Integer, primary_key=True)
    stage_template_id = db.Column(
        db.Integer, db.ForeignKey("stage_templates.id"), nullable=False, index=True
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_mandatory = db.Column(db.Boolean, nullable=False, default=False)
    is_default_active = db.Column(db.Boolean, nullable=False, default=True)
    default_due_days = db.Column(db.Integer, nullable=True)
    checklist_template_id = db.Column(
        db.Integer, db.ForeignKey("checklist_templates.id", ondelete="SET NULL"), nullable=True
    )

    stage_template = db.relationship("StageTemplate", back_populates="task_templates")
    checklist_template = db.relationship("ChecklistTemplate", lazy="joined")

    def to_dict(self):
        checklist = self.checklist_template
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "is_mandatory": self.is_mandatory,
            "is_default_active": self.is_default_active,
            "default_due_days": self.default_due_days,
            "checklist_template_id": checklist.id if checklist is not None else None,
            "checklist_template_name": checklist.name if checklist is not None else None,
        }

    def __repr__(self):
        return f"<TaskTemplate {self.title}>"
