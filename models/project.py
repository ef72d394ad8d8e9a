"""A Project is one solar power plant moving through the permitting workflow.

A Project belongs to exactly one Company
A Project owns an ordered list of ProjectStages (ordered by template order)
A ProjectStage owns the Tasks of that stage
A ProjectStage status is derived from its active tasks, never set directly
Progress and delay risk are computed on read

"""
from __future__ import annotations

from enum import StrEnum

from database import db
from models.mixins import SoftDeleteMixin, TimestampMixin
from services.site_password import decrypt_site_password, encrypt_site_password
from utils.date_kst import isoformat_utc


class ProjectStatus(StrEnum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class StageStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class Project(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    capacity_kw = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ProjectStatus.PLANNING.value)
    target_date = db.Column(db.DateTime, nullable=True)
    permit_number = db.Column(db.String(120), nullable=True)
    external_id = db.Column(db.String(120), nullable=True)
    site_password_encrypted = db.Column(db.LargeBinary, nullable=True)

    company = db.relationship("Company", back_populates="projects")
    stages = db.relationship(
        "ProjectStage",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def status_enum(self) -> ProjectStatus:
        return ProjectStatus(self.status)

    def active_stages(self) -> list["ProjectStage"]:
        """Non-deleted stages in template order."""

        stages = [stage for stage in self.stages if stage.deleted_at is None]
        stages.sort(key=lambda stage: ((stage.order or 0), stage.id or 0))
        return stages

    def set_site_password(self, password: str | None) -> None:
        """Store ``password`` encrypted; ``None`` or an empty string clears it."""

        if password is None or password == "":
            self.site_password_encrypted = None
            return
        self.site_password_encrypted = encrypt_site_password(password)

    def get_site_password(self) -> str | None:
        """Plaintext password, ``None`` when unset.

        Raises ``SitePasswordUnreadable`` when the keys it was stored with are gone.
        """

        if self.site_password_encrypted is None:
            return None
        return decrypt_site_password(self.site_password_encrypted, self.id)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "address": self.address,
            "capacity_kw": self.capacity_kw,
            "status": self.status,
            "target_date": isoformat_utc(self.target_date),
            "permit_number": self.permit_number,
            "external_id": self.external_id,
            "has_site_password": self.site_password_encrypted is not None,
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.name}>"


class ProjectStage(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "project_stages"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey("stage_templates.id"), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=StageStatus.PENDING.value)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    start_date = db.Column(db.DateTime, nullable=True)
    received_date = db.Column(db.DateTime, nullable=True)
    completed_date = db.Column(db.DateTime, nullable=True)

    project = db.relationship("Project", back_populates="stages")
    template = db.relationship("StageTemplate", lazy="joined")
    tasks = db.relationship(
        "Task",
        back_populates="stage",
        lazy="selectin",
        order_by="Task.id",
    )

    @property
    def name(self) -> str:
        if self.template is not None:
            return self.template.name
        return f"Stage {self.id}"

    @property
    def order(self) -> int | None:
        return self.template.order if self.template is not None else None

    def active_tasks(self) -> list["Task"]:
        """Tasks that take part in status aggregation."""

        return [task for task in self.tasks if task.deleted_at is None and task.is_active]

    def to_dict(self, *, include_tasks: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "order": self.order,
            "status": self.status,
            "is_active": self.is_active,
            "start_date": isoformat_utc(self.start_date),
            "received_date": isoformat_utc(self.received_date),
            "completed_date": isoformat_utc(self.completed_date),
        }
        if include_tasks:
            payload["tasks"] = [
                task.to_dict() for task in self.tasks if task.deleted_at is None
            ]
        return payload

    def __repr__(self):
        return f"<ProjectStage {self.id} {self.status}>"
