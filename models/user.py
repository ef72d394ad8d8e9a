""" Represents a member of a company.

Users can be assigned to tasks.
Users receive push reminders on the device registered through ``fcm_token``.
Users own in-app notifications.

"""
from database import db
from models.mixins import TimestampMixin


class User(TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    fcm_token = db.Column(db.Text, nullable=True)

    company = db.relationship("Company", back_populates="users")
    assigned_tasks = db.relationship("Task", back_populates="assignee", lazy=True)
    notifications = db.relationship(
        "Notification",
        back_populates="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_summary(self):
        return {"id": self.id, "name": self.name, "email": self.email}

    def __repr__(self):
        return f"<User {self.id}>"
