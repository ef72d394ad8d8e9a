from app import app, db
from models.company import Company
from models.project import Project
from models.task import Task
from models.template import StageTemplate, TaskTemplate
from services.tenant_service import provision_company
from support import AppTestCase, kst, make_company, make_project, make_stage, make_task, make_user


class ProjectApiTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        with app.app_context():
            company = provision_company("Sunrise Energy")
            self.company_id = company.id
            permit = StageTemplate.query.filter_by(company_id=company.id, order=2).one()
            db.session.add_all(
                [
                    TaskTemplate(stage_template_id=permit.id, title="발전사업허가 신청", is_mandatory=True, default_due_days=30),
                    TaskTemplate(stage_template_id=permit.id, title="주민설명회", is_default_active=False),
                ]
            )
            self.other_company_id = make_company("Other").id
            db.session.commit()

    def _create(self, **payload):
        body = {"name": "Yeosu Solar", "status": "in_progress"}
        body.update(payload)
        return self.client.post("/api/projects", json=body, headers=self.headers(self.company_id))

    def test_create_instantiates_templates(self):
        response = self._create(target_date="2024-09-01", capacity_kw=998.5, site_password="gate-1234")

        self.assertEqual(response.status_code, 201)
        project = response.get_json()["project"]
        self.assertEqual(project["name"], "Yeosu Solar")
        self.assertEqual(project["capacity_kw"], 998.5)
        self.assertEqual(project["target_date"], "2024-08-31T15:00:00Z")
        self.assertTrue(project["has_site_password"])
        self.assertNotIn("site_password", project)
        self.assertEqual(len(project["stages"]), 8)
        self.assertEqual([stage["order"] for stage in project["stages"]], list(range(1, 9)))

        permit_stage = project["stages"][1]
        self.assertEqual(permit_stage["name"], "발전사업허가")
        self.assertEqual(permit_stage["status"], "pending")
        tasks = {task["title"]: task for task in permit_stage["tasks"]}
        self.assertEqual(tasks["발전사업허가 신청"]["due_date"], "2024-09-30T15:00:00Z")
        self.assertTrue(tasks["발전사업허가 신청"]["is_mandatory"])
        self.assertFalse(tasks["주민설명회"]["is_active"])
        self.assertEqual((project["progress"], project["total_tasks"]), (0, 1))

        with app.app_context():
            self.assertEqual(db.session.get(Project, project["id"]).get_site_password(), "gate-1234")

    def test_create_defaults_to_planning(self):
        response = self.client.post("/api/projects", json={"name": "Gochang"}, headers=self.headers(self.company_id))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["project"]["status"], "planning")

    def test_create_validation(self):
        self.assertEqual(self._create(name="").status_code, 400)
        self.assertEqual(self._create(status="finished").status_code, 400)
        self.assertEqual(self._create(target_date="someday").status_code, 400)
        self.assertEqual(self._create(capacity_kw=-1).status_code, 400)

    def test_list_and_get(self):
        project_id = self._create().get_json()["project"]["id"]

        projects = self.client.get("/api/projects", headers=self.headers(self.company_id)).get_json()["projects"]
        self.assertEqual([p["id"] for p in projects], [project_id])
        self.assertEqual(projects[0]["stage_count"], 8)
        self.assertEqual(projects[0]["progress"], 0)

        response = self.client.get(f"/api/projects/{project_id}", headers=self.headers(self.other_company_id))
        self.assertEqual(response.status_code, 404)

    def test_partial_update(self):
        project_id = self._create(address="Yeosu").get_json()["project"]["id"]

        response = self.client.patch(
            f"/api/projects/{project_id}",
            json={"status": "on_hold", "name": None, "permit_number": "2024-REN-0042"},
            headers=self.headers(self.company_id),
        )

        self.assertEqual(response.status_code, 200)
        project = response.get_json()["project"]
        self.assertEqual(project["name"], "Yeosu Solar")
        self.assertEqual(project["status"], "on_hold")
        self.assertEqual(project["address"], "Yeosu")
        self.assertEqual(project["permit_number"], "2024-REN-0042")

    def test_clearing_the_site_password(self):
        project_id = self._create(site_password="gate-1234").get_json()["project"]["id"]

        response = self.client.patch(
            f"/api/projects/{project_id}",
            json={"site_password": None},
            headers=self.headers(self.company_id),
        )
        self.assertFalse(response.get_json()["project"]["has_site_password"])

    def test_delete_hides_the_project(self):
        project_id = self._create().get_json()["project"]["id"]

        response = self.client.delete(f"/api/projects/{project_id}", headers=self.headers(self.company_id))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/api/projects/{project_id}", headers=self.headers(self.company_id)).status_code, 404)
        self.assertEqual(self.client.get("/api/projects", headers=self.headers(self.company_id)).get_json()["projects"], [])

    def test_clone_resets_schedule(self):
        with app.app_context():
            company = db.session.get(Company, self.company_id)
            source = make_project(company, name="Source Plant", target_date=kst(2024, 9, 1))
            stage = make_stage(source, order=1, status="completed")
            user = make_user(company, name="Lee")
            make_task(stage, title="Survey", status="completed", due_date=kst(2024, 6, 1), assignee_id=user.id)
            removed = make_task(stage, title="Removed")
            removed.soft_delete()
            db.session.commit()
            source_id = source.id

        response = self.client.post(f"/api/projects/{source_id}/clone", headers=self.headers(self.company_id))

        self.assertEqual(response.status_code, 201)
        clone = response.get_json()["project"]
        self.assertEqual(clone["name"], "Source Plant (복제)")

        with app.app_context():
            copy = db.session.get(Project, clone["id"])
            self.assertEqual(copy.status, "in_progress")
            stages = copy.active_stages()
            self.assertEqual(len(stages), 1)
            self.assertEqual(stages[0].status, "pending")
            tasks = Task.active().filter_by(project_stage_id=stages[0].id).all()
            self.assertEqual([task.title for task in tasks], ["Survey"])
            self.assertEqual(tasks[0].status, "pending")
            self.assertIsNone(tasks[0].due_date)
            self.assertIsNone(tasks[0].assignee_id)

    def test_activity_log(self):
        project = self._create().get_json()["project"]
        task_id = project["stages"][1]["tasks"][0]["id"]
        headers = self.headers(self.company_id)
        self.client.patch(f"/api/tasks/{task_id}/status", json={"status": "in_progress"}, headers=headers)
        self.client.patch(f"/api/tasks/{task_id}/status", json={"status": "completed", "memo": "허가증 수령"}, headers=headers)

        response = self.client.get(f"/api/projects/{project['id']}/activity-log", headers=headers)

        self.assertEqual(response.status_code, 200)
        activity = response.get_json()["activity"]
        self.assertEqual([entry["comment"] for entry in activity], ["허가증 수령", "상태 변경: 대기 → 진행중"])
        self.assertEqual(activity[0]["task"], {"id": task_id, "title": "발전사업허가 신청"})

        detail = self.client.get(f"/api/projects/{project['id']}", headers=headers).get_json()["project"]
        self.assertEqual((detail["progress"], detail["completed_tasks"]), (100, 1))
        self.assertEqual(detail["stages"][1]["status"], "completed")
