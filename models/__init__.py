"""Import every model so metadata is complete before create_all/migrations."""

from models.company import Company
from models.user import User
from models.template import StageTemplate, TaskTemplate
from models.project import Project, ProjectStage, ProjectStatus, StageStatus
from models.task import Task, TaskHistory, TaskStatus
from models.checklist import ChecklistItem, ChecklistStatus, ChecklistTemplate, ChecklistTemplateItem
from models.vendor import ProjectVendor, Vendor, VendorRole
from models.budget import BudgetCategory, ProjectBudgetItem
from models.notification import Notification, NotificationType

__all__ = [
    "BudgetCategory",
    "ChecklistItem",
    "ChecklistStatus",
    "ChecklistTemplate",
    "ChecklistTemplateItem",
    "Company",
    "Notification",
    "NotificationType",
    "Project",
    "ProjectBudgetItem",
    "ProjectStage",
    "ProjectStatus",
    "ProjectVendor",
    "StageStatus",
    "StageTemplate",
    "Task",
    "TaskHistory",
    "TaskStatus",
    "TaskTemplate",
    "User",
    "Vendor",
    "VendorRole",
]
