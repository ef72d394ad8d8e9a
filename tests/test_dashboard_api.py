from datetime import timedelta

from app import app, db
from support import AppTestCase, make_company, make_project, make_stage, make_task, make_user
from utils.date_kst import format_kst_date, kst_start_of_day, to_db


def kst_day(offset_days, hour=10):
    """Naive UTC value for ``hour`` o'clock KST, ``offset_days`` from today."""
    return to_db(kst_start_of_day(None, offset_days) + timedelta(hours=hour))


class DashboardApiTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = make_company()
            self.company_id = company.id
            lee = make_user(company, name="Lee")
            self.lee_id = lee.id

            haenam = make_project(company, name="Haenam Solar")
            stage = make_stage(haenam, order=1, name="사업타당성 검토")
            self.today_id = make_task(stage, title="Call county office", due_date=kst_day(0, 23), assignee_id=lee.id).id
            make_task(stage, title="Unassigned today", due_date=kst_day(0, 23.5))
            make_task(stage, title="Tomorrow", due_date=kst_day(1), assignee_id=lee.id)
            make_task(stage, title="In three days", due_date=kst_day(3), assignee_id=lee.id)
            make_task(stage, title="Next fortnight", due_date=kst_day(9), assignee_id=lee.id)
            make_task(stage, title="Already done", due_date=kst_day(0), status="completed", assignee_id=lee.id)
            make_task(stage, title="Awaiting KEPCO", status="waiting", waiting_for="KEPCO", assignee_id=lee.id)

            critical = make_project(company, name="Critical Plant")
            make_task(make_stage(critical, order=8, status="active"), title="Overdue inspection", due_date=kst_day(-10))

            medium = make_project(company, name="Medium Plant")
            make_task(make_stage(medium, order=1), title="Late paperwork", due_date=kst_day(-2))

            planning = make_project(company, name="Planning Plant", status="planning")
            make_task(make_stage(planning, order=8, status="active"), status="completed", due_date=kst_day(-30))

            hidden = make_project(company, name="Deleted Plant")
            make_task(make_stage(hidden, order=8, status="active"), due_date=kst_day(0))
            hidden.soft_delete()

            other = make_project(make_company("Other"), name="Other Tenant")
            make_task(make_stage(other), due_date=kst_day(0))
            db.session.commit()

    def test_full_summary_for_a_user(self):
        response = self.client.get("/api/dashboard/full-summary", headers=self.headers(self.company_id, self.lee_id))

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(set(payload), {"todayTasks", "upcoming7Days", "riskProjects", "stats"})

        self.assertEqual([task["title"] for task in payload["todayTasks"]], ["Call county office"])
        today = payload["todayTasks"][0]
        self.assertEqual(today["id"], self.today_id)
        self.assertEqual(today["projectName"], "Haenam Solar")
        self.assertEqual(today["stageName"], "사업타당성 검토")
        self.assertFalse(today["isMandatory"])

        self.assertEqual([task["title"] for task in payload["upcoming7Days"]], ["Tomorrow", "In three days"])
        self.assertEqual([item["projectName"] for item in payload["riskProjects"]], ["Critical Plant", "Medium Plant"])

        self.assertEqual(
            payload["stats"],
            {
                "totalProjects": 4,
                "inProgressProjects": 3,
                "totalMyTasks": 6,
                "completedMyTasks": 1,
                "todayDueCount": 1,
                "riskProjectCount": 1,
            },
        )

    def test_full_summary_for_the_whole_company(self):
        payload = self.client.get("/api/dashboard/full-summary", headers=self.headers(self.company_id)).get_json()

        self.assertEqual(
            [task["title"] for task in payload["todayTasks"]],
            ["Call county office", "Unassigned today"],
        )
        self.assertEqual(payload["stats"]["todayDueCount"], 2)

    def test_risk_projects(self):
        response = self.client.get("/api/dashboard/risk-projects", headers=self.headers(self.company_id))

        self.assertEqual(response.status_code, 200)
        projects = response.get_json()
        self.assertEqual([item["projectName"] for item in projects], ["Critical Plant", "Medium Plant"])
        self.assertEqual(projects[0]["riskScore"], 100)
        self.assertEqual(projects[0]["severity"], "critical")
        self.assertEqual(projects[1]["severity"], "medium")
        self.assertEqual(projects[1]["overdueTaskCount"], 1)

    def test_summary_counts(self):
        payload = self.client.get("/api/dashboard/summary", headers=self.headers(self.company_id, self.lee_id)).get_json()

        self.assertEqual(payload["projects"]["total"], 4)
        self.assertEqual(payload["projects"]["byStatus"], {"in_progress": 3, "planning": 1})
        self.assertEqual(payload["myTasks"]["byStatus"], {"pending": 4, "completed": 1, "waiting": 1})
        self.assertEqual(payload["todayDue"], 1)
        self.assertEqual(payload["riskProjectCount"], 2)

    def test_tomorrow_planner(self):
        payload = self.client.get("/api/dashboard/tomorrow", headers=self.headers(self.company_id)).get_json()

        self.assertEqual(payload["date"], format_kst_date(kst_start_of_day(None, 1)))
        self.assertEqual([task["title"] for task in payload["overdue"]], ["Overdue inspection", "Late paperwork"])
        self.assertEqual([task["title"] for task in payload["dueToday"]], ["Call county office", "Unassigned today"])
        self.assertEqual([task["title"] for task in payload["dueTomorrow"]], ["Tomorrow"])
        self.assertEqual(
            [task["title"] for task in payload["big3"]],
            ["Overdue inspection", "Late paperwork", "Call county office"],
        )
        self.assertEqual(payload["big3"][0]["project"]["name"], "Critical Plant")

    def test_my_work_tabs(self):
        headers = self.headers(self.company_id, self.lee_id)

        today = self.client.get("/api/dashboard/my-work?tab=today", headers=headers).get_json()
        self.assertEqual([item["taskTitle"] for item in today], ["Call county office", "Unassigned today"])
        self.assertEqual(today[0]["dDay"], 0)

        overdue = self.client.get("/api/dashboard/my-work?tab=overdue", headers=headers).get_json()
        self.assertEqual([item["dDay"] for item in overdue], [-10, -2])

        waiting = self.client.get("/api/dashboard/my-work?tab=waiting", headers=headers).get_json()
        self.assertEqual(len(waiting), 1)
        self.assertEqual(waiting[0]["waitingFor"], "KEPCO")
        self.assertIsNone(waiting[0]["dDay"])

        response = self.client.get("/api/dashboard/my-work?tab=someday", headers=headers)
        self.assertEqual(response.status_code, 400)

    def test_requires_a_company(self):
        response = self.client.get("/api/dashboard/full-summary")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["path"], "/api/dashboard/full-summary")

    def test_dev_auto_provisioning(self):
        app.config["DEV_AUTO_PROVISION_TENANT"] = True
        response = self.client.get("/api/dashboard/risk-projects")

        # Falls back to the first existing company.
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()), 2)
