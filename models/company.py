"""A Company is the tenant every project, template and user belongs to.

Companies are provisioned explicitly (``flask create-company``); requests that
carry no company are rejected unless development auto-provisioning is on.
"""
from database import db
from models.mixins import TimestampMixin


class Company(TimestampMixin, db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    users = db.relationship("User", back_populates="company", lazy="selectin")
    projects = db.relationship("Project", back_populates="company", lazy=True)
    stage_templates = db.relationship(
        "StageTemplate",
        back_populates="company",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<Company {self.name}>"
