"""Shared setup for database-backed tests."""
import unittest
from datetime import datetime

from app import app, db
from models.company import Company
from models.project import Project, ProjectStage, ProjectStatus
from models.task import Task
from models.template import StageTemplate
from models.user import User
from utils.capabilities import Capabilities, set_capabilities
from utils.date_kst import KST, to_db

CONFIG_KEYS = (
    "SECRET_KEY",
    "SITE_PASSWORD_KEYS",
    "CRON_SECRET",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "TELEGRAM_QUIET_HOURS_START",
    "TELEGRAM_QUIET_HOURS_END",
    "TELEGRAM_TEST_REQUIRE_SECRET",
    "FIREBASE_PROJECT_ID",
    "FIREBASE_CLIENT_EMAIL",
    "FIREBASE_PRIVATE_KEY",
    "DEV_AUTO_PROVISION_TENANT",
)


def kst(year, month, day, hour=0, minute=0):
    """Naive UTC value for a KST wall-clock time, as stored in the database."""
    return to_db(datetime(year, month, day, hour, minute, tzinfo=KST))


def make_company(name="Sunrise Energy"):
    company = Company(name=name)
    db.session.add(company)
    db.session.flush()
    return company


def make_user(company, name="Kim", email=None, fcm_token=None):
    user = User(
        company_id=company.id,
        name=name,
        email=email or f"{name.lower()}-{company.id}@example.com",
        fcm_token=fcm_token,
    )
    db.session.add(user)
    db.session.flush()
    return user


def make_project(company, name="Haenam Solar", status=ProjectStatus.IN_PROGRESS.value, **fields):
    project = Project(company_id=company.id, name=name, status=status, **fields)
    db.session.add(project)
    db.session.flush()
    return project


def make_stage(project, order=1, name=None, status="pending", is_active=True):
    template = StageTemplate(company_id=project.company_id, name=name or f"Stage {order}", order=order)
    db.session.add(template)
    db.session.flush()
    stage = ProjectStage(project_id=project.id, template_id=template.id, status=status, is_active=is_active)
    db.session.add(stage)
    db.session.flush()
    return stage


def make_task(stage, title="Submit permit", status="pending", due_date=None, **fields):
    task = Task(project_stage_id=stage.id, title=title, status=status, due_date=due_date, **fields)
    db.session.add(task)
    db.session.flush()
    return task


class AppTestCase(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        self._saved_config = {key: app.config.get(key) for key in CONFIG_KEYS}
        app.config["DEV_AUTO_PROVISION_TENANT"] = False

        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.create_all()

        set_capabilities(app, Capabilities())
        self.app = app
        self.client = app.test_client()

    def tearDown(self):
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        app.config.update(self._saved_config)

    def headers(self, company_id, user_id=None, **extra):
        headers = {"X-Company-Id": str(company_id)}
        if user_id is not None:
            headers["X-User-Id"] = str(user_id)
        headers.update(extra)
        return headers
