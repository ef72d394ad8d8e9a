from types import SimpleNamespace

from app import app, db
from models.project import ProjectStage, StageStatus
from services.stage_status import derive_stage_status, refresh_stage_status
from support import AppTestCase, make_company, make_project, make_stage, make_task


def tasks(*statuses):
    return [SimpleNamespace(status=status) for status in statuses]


class TestDeriveStageStatus:
    def test_no_tasks_is_pending(self):
        assert derive_stage_status([]) is StageStatus.PENDING

    def test_all_completed(self):
        assert derive_stage_status(tasks("completed", "completed")) is StageStatus.COMPLETED

    def test_any_in_progress(self):
        assert derive_stage_status(tasks("pending", "in_progress")) is StageStatus.ACTIVE

    def test_partial_completion_counts_as_progress(self):
        assert derive_stage_status(tasks("pending", "completed")) is StageStatus.ACTIVE

    def test_waiting_and_pending_only(self):
        assert derive_stage_status(tasks("pending", "waiting", "delayed")) is StageStatus.PENDING


class RefreshStageStatusTestCase(AppTestCase):
    def test_refresh_persists_derived_status(self):
        with app.app_context():
            project = make_project(make_company())
            stage = make_stage(project)
            make_task(stage, status="completed")
            make_task(stage, status="completed")
            db.session.commit()

            self.assertEqual(refresh_stage_status(stage.id), StageStatus.COMPLETED.value)
            db.session.commit()
            self.assertEqual(db.session.get(ProjectStage, stage.id).status, "completed")

    def test_inactive_and_deleted_tasks_are_ignored(self):
        with app.app_context():
            project = make_project(make_company())
            stage = make_stage(project)
            make_task(stage, status="completed")
            make_task(stage, status="pending", is_active=False)
            deleted = make_task(stage, status="in_progress")
            deleted.soft_delete()
            db.session.commit()

            self.assertEqual(refresh_stage_status(stage.id), "completed")

    def test_inactive_stage_is_left_alone(self):
        with app.app_context():
            project = make_project(make_company())
            stage = make_stage(project, status="pending", is_active=False)
            make_task(stage, status="completed")
            db.session.commit()

            self.assertEqual(refresh_stage_status(stage.id), "pending")
            db.session.commit()
            self.assertEqual(db.session.get(ProjectStage, stage.id).status, "pending")

    def test_unknown_stage(self):
        with app.app_context():
            self.assertIsNone(refresh_stage_status(999))
            self.assertIsNone(refresh_stage_status(None))
