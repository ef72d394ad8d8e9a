from app import app, db
from models.notification import Notification
from models.project import ProjectStage
from models.task import Task, TaskHistory
from support import AppTestCase, kst, make_company, make_project, make_stage, make_task, make_user


class TaskApiTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = make_company()
            self.company_id = company.id
            self.actor_id = make_user(company, name="Kim").id
            self.assignee_id = make_user(company, name="Lee").id
            stage = make_stage(make_project(company), order=2)
            self.stage_id = stage.id
            self.first_id = make_task(stage, title="Site survey", assignee_id=self.assignee_id).id
            self.second_id = make_task(stage, title="Submit EIA", due_date=kst(2024, 6, 15)).id

            other = make_company("Other Energy")
            self.other_company_id = other.id
            self.outsider_id = make_user(other, name="Choi").id
            db.session.commit()

    def _stage_status(self):
        with app.app_context():
            return db.session.get(ProjectStage, self.stage_id).status

    def test_create_task(self):
        response = self.client.post(
            "/api/tasks",
            json={
                "project_stage_id": self.stage_id,
                "title": "Grid connection request",
                "due_date": "2024-07-01",
                "assignee_id": self.assignee_id,
                "is_mandatory": True,
            },
            headers=self.headers(self.company_id, self.actor_id),
        )

        self.assertEqual(response.status_code, 201)
        task = response.get_json()["task"]
        self.assertEqual(task["title"], "Grid connection request")
        self.assertEqual(task["status"], "pending")
        self.assertEqual(task["due_date"], "2024-06-30T15:00:00Z")
        self.assertTrue(task["is_mandatory"])
        self.assertTrue(task["notification_enabled"])
        self.assertEqual(task["reminder_interval_min"], 60)
        self.assertEqual(task["stage"]["id"], self.stage_id)
        self.assertEqual(task["histories"][0]["action"], "created")

        with app.app_context():
            notification = Notification.query.filter_by(user_id=self.assignee_id).one()
            self.assertEqual(notification.notification_type, "task_assigned")
            self.assertEqual(notification.task_id, task["id"])

    def test_create_task_requires_stage_and_title(self):
        response = self.client.post(
            "/api/tasks",
            json={"title": "No stage"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("project_stage_id", response.get_json()["errors"])

        response = self.client.post(
            "/api/tasks",
            json={"project_stage_id": self.stage_id},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("title", response.get_json()["errors"])

    def test_create_task_rejects_outside_assignee(self):
        response = self.client.post(
            "/api/tasks",
            json={"project_stage_id": self.stage_id, "title": "Permit", "assignee_id": self.outsider_id},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 400)
        with app.app_context():
            self.assertEqual(Task.query.count(), 2)

    def test_status_changes_drive_stage_status(self):
        headers = self.headers(self.company_id, self.actor_id)

        response = self.client.patch(f"/api/tasks/{self.first_id}/status", json={"status": "in_progress"}, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["stage_status"], "active")

        response = self.client.patch(f"/api/tasks/{self.first_id}/status", json={"status": "completed"}, headers=headers)
        payload = response.get_json()
        self.assertEqual(payload["stage_status"], "active")
        self.assertIsNotNone(payload["task"]["completed_date"])

        response = self.client.patch(f"/api/tasks/{self.second_id}/status", json={"status": "completed"}, headers=headers)
        self.assertEqual(response.get_json()["stage_status"], "completed")
        self.assertEqual(self._stage_status(), "completed")

        response = self.client.patch(f"/api/tasks/{self.second_id}/status", json={"status": "waiting", "waiting_for": "KEPCO reply"}, headers=headers)
        payload = response.get_json()
        self.assertEqual(payload["stage_status"], "active")
        self.assertIsNone(payload["task"]["completed_date"])
        self.assertEqual(payload["task"]["waiting_for"], "KEPCO reply")

    def test_status_change_is_logged_and_notifies_assignee(self):
        self.client.patch(
            f"/api/tasks/{self.first_id}/status",
            json={"status": "in_progress"},
            headers=self.headers(self.company_id, self.actor_id),
        )
        self.client.patch(
            f"/api/tasks/{self.first_id}/status",
            json={"status": "completed", "memo": "Surveyor report received"},
            headers=self.headers(self.company_id, self.assignee_id),
        )

        with app.app_context():
            histories = TaskHistory.query.filter_by(task_id=self.first_id).order_by(TaskHistory.id).all()
            self.assertEqual([h.action for h in histories], ["status_changed", "status_changed"])
            self.assertEqual(histories[0].comment, "상태 변경: 대기 → 진행중")
            self.assertEqual(histories[1].comment, "Surveyor report received")
            self.assertEqual((histories[1].old_value, histories[1].new_value), ("in_progress", "completed"))

            notifications = Notification.query.filter_by(user_id=self.assignee_id).all()
            self.assertEqual(len(notifications), 1)
            self.assertEqual(notifications[0].notification_type, "task_status_changed")

    def test_invalid_status(self):
        response = self.client.patch(
            f"/api/tasks/{self.first_id}/status",
            json={"status": "done"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["statusCode"], 400)

    def test_deactivating_a_task_rederives_the_stage(self):
        headers = self.headers(self.company_id)
        self.client.patch(f"/api/tasks/{self.first_id}/status", json={"status": "completed"}, headers=headers)

        response = self.client.patch(f"/api/tasks/{self.second_id}/active", json={"is_active": False}, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()["task"]["is_active"])
        self.assertEqual(response.get_json()["stage_status"], "completed")

        response = self.client.patch(f"/api/tasks/{self.second_id}/active", json={"is_active": True}, headers=headers)
        self.assertEqual(response.get_json()["stage_status"], "active")

    def test_active_flag_is_required(self):
        response = self.client.patch(
            f"/api/tasks/{self.first_id}/active",
            json={},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_partial_update_keeps_absent_fields(self):
        response = self.client.patch(
            f"/api/tasks/{self.second_id}",
            json={"description": "Environmental impact assessment"},
            headers=self.headers(self.company_id, self.actor_id),
        )

        self.assertEqual(response.status_code, 200)
        task = response.get_json()["task"]
        self.assertEqual(task["title"], "Submit EIA")
        self.assertEqual(task["description"], "Environmental impact assessment")
        self.assertEqual(task["due_date"], "2024-06-14T15:00:00Z")

    def test_update_title_assignee_and_clear_due_date(self):
        response = self.client.patch(
            f"/api/tasks/{self.second_id}",
            json={"title": "Submit EIA v2", "assignee_id": self.assignee_id, "due_date": None},
            headers=self.headers(self.company_id, self.actor_id),
        )

        task = response.get_json()["task"]
        self.assertEqual(task["title"], "Submit EIA v2")
        self.assertIsNone(task["due_date"])
        self.assertEqual(task["assignee"]["id"], self.assignee_id)
        self.assertEqual(task["histories"][0]["action"], "updated")
        self.assertEqual(task["histories"][0]["comment"], "제목: Submit EIA → Submit EIA v2, 담당자 변경")

    def test_reminder_interval_must_be_positive(self):
        response = self.client.patch(
            f"/api/tasks/{self.second_id}",
            json={"reminder_interval_min": 0},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_other_company_cannot_see_the_task(self):
        response = self.client.get(f"/api/tasks/{self.first_id}", headers=self.headers(self.other_company_id))
        self.assertEqual(response.status_code, 404)

        response = self.client.patch(
            f"/api/tasks/{self.first_id}/status",
            json={"status": "completed"},
            headers=self.headers(self.other_company_id),
        )
        self.assertEqual(response.status_code, 404)

    def test_company_is_required(self):
        response = self.client.get(f"/api/tasks/{self.first_id}")
        self.assertEqual(response.status_code, 400)

        response = self.client.get(f"/api/tasks/{self.first_id}", headers=self.headers(9999))
        self.assertEqual(response.status_code, 404)

    def test_unknown_actor(self):
        response = self.client.patch(
            f"/api/tasks/{self.first_id}/status",
            json={"status": "completed"},
            headers=self.headers(self.company_id, self.outsider_id),
        )
        self.assertEqual(response.status_code, 404)

    def test_delete_is_soft(self):
        headers = self.headers(self.company_id)
        self.client.patch(f"/api/tasks/{self.first_id}/status", json={"status": "completed"}, headers=headers)

        response = self.client.delete(f"/api/tasks/{self.second_id}", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/api/tasks/{self.second_id}", headers=headers).status_code, 404)
        self.assertEqual(self._stage_status(), "completed")

        with app.app_context():
            self.assertIsNotNone(db.session.get(Task, self.second_id).deleted_at)
