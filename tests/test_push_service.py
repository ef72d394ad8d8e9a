import warnings
from datetime import datetime, timezone
from unittest.mock import patch

from app import app, db
from models.project import ProjectStage
from models.task import Task
from models.user import User
from services.push_service import build_push_message, send_due_notifications
from support import AppTestCase, kst, make_company, make_project, make_stage, make_task, make_user

# 2024-06-08 12:00 KST
NOW = datetime(2024, 6, 8, 3, 0, tzinfo=timezone.utc)
FIREBASE_APP = object()


class PushServiceTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = make_company()
            make_user(company, name="Lee", fcm_token="device-1")
            make_user(company, name="Park")
            other = make_company("Other")
            make_user(other, name="Choi", fcm_token="device-other")
            self.stage_id = make_stage(make_project(company, name="Yeongam Solar")).id
            db.session.commit()

    def _task(self, title, due_date, **fields):
        with app.app_context():
            task = make_task(db.session.get(ProjectStage, self.stage_id), title=title, due_date=due_date, **fields)
            db.session.commit()
            return task.id

    def test_disabled_without_firebase_configuration(self):
        app.config["FIREBASE_PROJECT_ID"] = None
        self._task("Submit EIA", kst(2024, 6, 9, 10))

        with app.app_context(), patch("services.push_service.messaging.send") as mock_send:
            result = send_due_notifications(now=NOW)

        self.assertEqual(result, {"success": True, "disabled": True, "sent": 0})
        mock_send.assert_not_called()

    def test_sends_reminders_to_company_devices(self):
        due_tomorrow = self._task("Grid application", kst(2024, 6, 9, 10))
        self._task("Far away", kst(2024, 6, 12, 10))

        with app.app_context(), patch(
            "services.push_service._get_firebase_app", return_value=FIREBASE_APP
        ), patch("services.push_service.messaging.send") as mock_send:
            result = send_due_notifications(now=NOW)
            notified_at = db.session.get(Task, due_tomorrow).last_notified_at

        self.assertTrue(result["success"])
        self.assertEqual(result["sent"], 1)
        self.assertEqual(notified_at, datetime(2024, 6, 8, 3, 0))
        message = mock_send.call_args.args[0]
        self.assertEqual(message.fid, "device-1")
        self.assertIsNone(message.token)
        self.assertEqual(mock_send.call_args.kwargs["app"], FIREBASE_APP)

    def test_overdue_tasks_are_always_sent(self):
        self._task("Overdue", kst(2024, 6, 1, 10), last_notified_at=kst(2024, 6, 8, 11, 50))

        with app.app_context(), patch(
            "services.push_service._get_firebase_app", return_value=FIREBASE_APP
        ), patch("services.push_service.messaging.send") as mock_send:
            result = send_due_notifications(now=NOW)

        self.assertEqual(result["sent"], 1)
        mock_send.assert_called_once()

    def test_due_today_respects_reminder_interval(self):
        self._task("Recently pushed", kst(2024, 6, 8, 18), last_notified_at=kst(2024, 6, 8, 11, 30))
        self._task("Not pushed yet", kst(2024, 6, 8, 17))

        with app.app_context(), patch(
            "services.push_service._get_firebase_app", return_value=FIREBASE_APP
        ), patch("services.push_service.messaging.send") as mock_send:
            result = send_due_notifications(now=NOW)

        self.assertEqual(result["sent"], 1)
        self.assertEqual(mock_send.call_args.args[0].notification.body, "[Yeongam Solar] Not pushed yet")

    def test_delivery_errors_do_not_stop_the_run(self):
        self._task("First", kst(2024, 6, 9, 9))
        self._task("Second", kst(2024, 6, 9, 10))

        with app.app_context(), patch(
            "services.push_service._get_firebase_app", return_value=FIREBASE_APP
        ), patch("services.push_service.messaging.send", side_effect=[ValueError("bad token"), "msg-id"]):
            result = send_due_notifications(now=NOW)

        self.assertEqual(result["sent"], 1)

    def test_message_payload(self):
        with app.app_context():
            task = db.session.get(Task, self._task("Grid application", kst(2024, 6, 15, 10)))
            with warnings.catch_warnings():
                warnings.simplefilter("error", DeprecationWarning)
                message = build_push_message(task, "device-1", 7)

            self.assertEqual(message.notification.title, "🔔 Solar PM: D-7")
            self.assertEqual(message.notification.body, "[Yeongam Solar] Grid application")
            self.assertEqual(message.data["taskId"], str(task.id))
            self.assertEqual(message.data["dDay"], "7")
            self.assertEqual(message.android.priority, "high")
            self.assertEqual(message.android.notification.channel_id, "task_reminder")


class RegisterTokenEndpointTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = make_company()
            self.company_id = company.id
            self.user_id = make_user(company).id
            db.session.commit()

    def test_registers_token_for_the_acting_user(self):
        response = self.client.post(
            "/api/notifications/push/register-token",
            json={"token": "device-xyz"},
            headers=self.headers(self.company_id, self.user_id),
        )

        self.assertEqual(response.status_code, 200)
        with app.app_context():
            self.assertEqual(db.session.get(User, self.user_id).fcm_token, "device-xyz")

    def test_token_is_required(self):
        response = self.client.post(
            "/api/notifications/push/register-token",
            json={"token": ""},
            headers=self.headers(self.company_id, self.user_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_user_is_required(self):
        response = self.client.post(
            "/api/notifications/push/register-token",
            json={"token": "device-xyz"},
            headers=self.headers(self.company_id),
        )
        self.assertEqual(response.status_code, 400)

    def test_push_trigger_requires_cron_secret(self):
        app.config["CRON_SECRET"] = "cron-secret"
        response = self.client.post("/api/notifications/push/trigger")
        self.assertEqual(response.status_code, 401)

        with patch("routes.notifications.send_due_notifications", return_value={"success": True, "sent": 0}):
            response = self.client.post(
                "/api/notifications/push/trigger",
                headers={"X-Cron-Secret": "cron-secret"},
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["sent"], 0)
